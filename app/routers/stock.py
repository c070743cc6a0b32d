import datetime
import logging
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlmodel import Session, func, select
from sqlalchemy.exc import SQLAlchemyError
from app.models.database import get_db
from app.models.movement import Movement as MovementRow
from app.schemas.inventory import BatchStatus, MovementResult, Severity
from app.schemas.stock import (
    BatchWithExpiration,
    ExpirationQueryResponse,
    MovementAcceptedResponse,
    MovementRejectedDetail,
    PaginatedMovementHistory,
    StockSnapshotResponse,
)
from app.routers.websocket import notify
from app.services.alerts import StockAlert, check_alerts
from app.services.batch_classifier import classify, filter_batches, reclassify
from app.services.ledger import (
    StaleStockError,
    StockNotFoundError,
    get_product_and_warehouse,
    load_record,
    product_batch_numbers,
    refresh_batch_statuses,
    register_movement,
)
from app.services.movement_validator import parse_movement, validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock", tags=["Stock"])


def _db_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Error de conexión con la base de datos",
    )


def _not_found(exc: StockNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _rejected(errors) -> HTTPException:
    detail = MovementRejectedDetail(
        message="El movimiento no es válido", errors=errors
    )
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=detail.model_dump(),
    )


def _with_expiration(batches, today: datetime.date) -> List[BatchWithExpiration]:
    response = []
    for batch in batches:
        expiration = classify(batch.expiration_date, today)
        response.append(
            BatchWithExpiration(
                **batch.model_dump(),
                days_to_expiration=expiration.days,
                expiration_severity=expiration.severity.value,
            )
        )
    return response


@router.get("/movimientos", response_model=PaginatedMovementHistory)
def get_movements(
    db: Session = Depends(get_db),
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    tipo: Optional[str] = Query(None),
    codigo_producto: Optional[int] = Query(None),
    codigo_almacen: Optional[int] = Query(None),
    fecha_desde: Optional[datetime.date] = Query(None),
    fecha_hasta: Optional[datetime.date] = Query(None),
):
    """Histórico de movimientos aceptados, del más reciente al más antiguo."""
    try:
        statement = select(MovementRow)

        if tipo:
            statement = statement.where(MovementRow.tipo == tipo.upper())

        if codigo_producto:
            statement = statement.where(MovementRow.codigo_producto == codigo_producto)

        if codigo_almacen:
            statement = statement.where(MovementRow.codigo_almacen == codigo_almacen)

        if fecha_desde:
            statement = statement.where(MovementRow.fecha >= fecha_desde)

        if fecha_hasta:
            statement = statement.where(
                MovementRow.fecha
                <= datetime.datetime.combine(fecha_hasta, datetime.time.max)
            )

        results = db.exec(
            statement.order_by(MovementRow.fecha.desc(), MovementRow.id_mov.desc())
            .limit(limit)
            .offset(offset)
        ).all()

        total_records = (
            db.exec(select(func.count()).select_from(statement.subquery())).first() or 0
        )

    except SQLAlchemyError:
        raise _db_error()

    return {
        "data": results,
        "total": total_records,
        "limit": limit,
        "offset": offset,
    }


@router.get("/caducidad", response_model=ExpirationQueryResponse)
def get_expiration_status(
    fecha_cad: Optional[str] = Query(None, description="Fecha de caducidad (ISO 8601)"),
    fecha_referencia: Optional[datetime.date] = Query(None),
):
    """Días hasta la caducidad y cubeta de severidad de una fecha."""
    today = fecha_referencia or datetime.date.today()
    expiration = classify(fecha_cad, today)
    return ExpirationQueryResponse(
        days=expiration.days,
        severity=expiration.severity,
        today=today,
    )


@router.get("/{codigo_producto}/{codigo_almacen}", response_model=StockSnapshotResponse)
def get_stock(
    codigo_producto: int,
    codigo_almacen: int,
    db: Session = Depends(get_db),
):
    """Foto actual del stock de un producto en un almacén, con sus lotes."""
    try:
        record = load_record(db, codigo_producto, codigo_almacen)
    except StockNotFoundError as e:
        raise _not_found(e)
    except SQLAlchemyError:
        raise _db_error()

    return StockSnapshotResponse(
        codigo_producto=codigo_producto,
        codigo_almacen=codigo_almacen,
        record=record,
    )


@router.post(
    "/{codigo_producto}/{codigo_almacen}/movimientos/validar",
    response_model=MovementResult,
)
def validate_movement(
    codigo_producto: int,
    codigo_almacen: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    fecha_referencia: Optional[datetime.date] = Query(None),
):
    """Valida un movimiento sin registrarlo.

    Devuelve la decisión completa (aceptado o con todos sus errores), útil para
    mostrar los problemas en el formulario antes de enviarlo.
    """
    movement = parse_movement(payload)
    if isinstance(movement, list):
        raise _rejected(movement)

    try:
        record = load_record(db, codigo_producto, codigo_almacen)
        taken = product_batch_numbers(db, codigo_producto)
    except StockNotFoundError as e:
        raise _not_found(e)
    except SQLAlchemyError:
        raise _db_error()

    return validate(record, movement, today=fecha_referencia, taken_batch_numbers=taken)


@router.post(
    "/{codigo_producto}/{codigo_almacen}/movimientos",
    response_model=MovementAcceptedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_movement(
    codigo_producto: int,
    codigo_almacen: int,
    payload: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    fecha_referencia: Optional[datetime.date] = Query(None),
):
    """
    Registra un movimiento de stock (ENTRADA, SALIDA, TRANSFERENCIA, AJUSTE o MERMA).

    - Se valida contra el stock actual y solo después se confirma.
    - Si hay errores se devuelven todos juntos (422) y el stock no cambia.
    - Si otro movimiento modificó el mismo stock a la vez se responde 409.
    """
    movement = parse_movement(payload)
    if isinstance(movement, list):
        raise _rejected(movement)

    try:
        result, record, alerts = register_movement(
            db, codigo_producto, codigo_almacen, movement, today=fecha_referencia
        )
    except StockNotFoundError as e:
        raise _not_found(e)
    except StaleStockError as e:
        logger.warning(
            "Conflicto de versión en stock %s/%s", codigo_producto, codigo_almacen
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SQLAlchemyError as e:
        msg_error = (str(e.orig) if hasattr(e, "orig") else str(e)).split("\n")[0]
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error en la base de datos: {msg_error}",
        )

    if not result.accepted:
        raise _rejected(result.errors)

    notify(
        {
            "evento": "movimiento",
            "tipo": result.movement_type,
            "codigo_producto": codigo_producto,
            "codigo_almacen": codigo_almacen,
            "cantidad_disponible": result.new_available_quantity,
        }
    )
    for alert in alerts:
        notify({"evento": "alerta", **alert.model_dump(mode="json")})

    return MovementAcceptedResponse(result=result, record=record, alerts=alerts)


@router.get(
    "/{codigo_producto}/{codigo_almacen}/lotes",
    response_model=List[BatchWithExpiration],
)
def get_batches(
    codigo_producto: int,
    codigo_almacen: int,
    db: Session = Depends(get_db),
    severidad: Optional[Severity] = Query(None),
    estado: Optional[BatchStatus] = Query(None),
    fecha_referencia: Optional[datetime.date] = Query(None),
):
    """Lista los lotes con sus días hasta caducidad.

    Los lotes activos ya caducados se muestran como `expired`; para guardarlo
    usar `POST .../lotes/actualizar-estados`.
    """
    today = fecha_referencia or datetime.date.today()
    try:
        record = load_record(db, codigo_producto, codigo_almacen)
    except StockNotFoundError as e:
        raise _not_found(e)
    except SQLAlchemyError:
        raise _db_error()

    batches = [reclassify(batch, today) for batch in record.batches]
    return _with_expiration(
        filter_batches(batches, today, severity=severidad, status=estado), today
    )


@router.post(
    "/{codigo_producto}/{codigo_almacen}/lotes/actualizar-estados",
    response_model=List[BatchWithExpiration],
)
def refresh_batches(
    codigo_producto: int,
    codigo_almacen: int,
    db: Session = Depends(get_db),
    fecha_referencia: Optional[datetime.date] = Query(None),
):
    """Guarda como `expired` los lotes activos ya caducados y los devuelve todos."""
    today = fecha_referencia or datetime.date.today()
    try:
        record = refresh_batch_statuses(db, codigo_producto, codigo_almacen, today)
    except StockNotFoundError as e:
        raise _not_found(e)
    except SQLAlchemyError:
        raise _db_error()

    return _with_expiration(record.batches, today)


@router.get(
    "/{codigo_producto}/{codigo_almacen}/alertas",
    response_model=List[StockAlert],
)
def get_alerts(
    codigo_producto: int,
    codigo_almacen: int,
    db: Session = Depends(get_db),
    fecha_referencia: Optional[datetime.date] = Query(None),
):
    """Alertas vigentes (stock bajo, punto de reorden, caducidad) de un stock."""
    today = fecha_referencia or datetime.date.today()
    try:
        product, _ = get_product_and_warehouse(db, codigo_producto, codigo_almacen)
        record = load_record(db, codigo_producto, codigo_almacen)
    except StockNotFoundError as e:
        raise _not_found(e)
    except SQLAlchemyError:
        raise _db_error()

    return check_alerts(
        record,
        today,
        minimum=product.stock_minimo,
        reorder_point=product.punto_reorden,
    )
