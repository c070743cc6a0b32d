"""Frontera de persistencia del libro de stock.

Carga una foto consistente del registro (incluida su `version`), delega la
decisión en el validador y solo entonces confirma. La confirmación usa un
UPDATE condicionado por la versión leída: si otro proceso ha movido el mismo
stock entre la lectura y la escritura, no se actualiza ninguna fila y se
lanza `StaleStockError` sin aplicar nada.
"""

import datetime
import logging
from typing import List, Optional, Tuple
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select
from app.models.batch import Lote
from app.models.movement import Movement as MovementRow
from app.models.product import Product
from app.models.stock import Stock
from app.models.warehouse import Warehouse
from app.schemas.inventory import (
    Batch,
    BatchStatus,
    Movement,
    MovementResult,
    StockRecord,
)
from app.services.alerts import StockAlert, check_alerts
from app.services.batch_classifier import reclassify
from app.services.movement_validator import apply_movement

logger = logging.getLogger(__name__)


class StockNotFoundError(LookupError):
    """Producto o almacén inexistente o inactivo."""


class StaleStockError(Exception):
    """El stock cambió entre la lectura y la confirmación."""


def _batch_from_row(row: Lote, location: str) -> Batch:
    return Batch(
        batch_number=row.numero_lote,
        quantity=row.cantidad,
        unit=row.unidad,
        manufacturing_date=row.fecha_fabricacion,
        expiration_date=row.fecha_cad,
        status=BatchStatus(row.estado),
        location=location,
        cost_per_unit=row.costo_unitario,
    )


def get_product_and_warehouse(
    db: Session, codigo_producto: int, codigo_almacen: int
) -> Tuple[Product, Warehouse]:
    product = db.exec(
        select(Product).where(Product.codigo == codigo_producto, Product.activo == True)
    ).first()
    if not product:
        raise StockNotFoundError("Producto no encontrado")

    warehouse = db.exec(
        select(Warehouse).where(
            Warehouse.codigo == codigo_almacen, Warehouse.activo == True
        )
    ).first()
    if not warehouse:
        raise StockNotFoundError("Almacén no encontrado")
    return product, warehouse


def load_record(db: Session, codigo_producto: int, codigo_almacen: int) -> StockRecord:
    """Foto del stock de un producto en un almacén.

    Si todavía no hay fila de stock se devuelve un registro vacío en la unidad
    base del producto (versión 0); se crea al confirmar el primer movimiento.
    """
    product, warehouse = get_product_and_warehouse(db, codigo_producto, codigo_almacen)

    stock = db.exec(
        select(Stock).where(
            Stock.codigo_producto == codigo_producto,
            Stock.codigo_almacen == codigo_almacen,
        )
    ).first()

    lotes = db.exec(
        select(Lote)
        .where(
            Lote.codigo_producto == codigo_producto,
            Lote.codigo_almacen == codigo_almacen,
        )
        .order_by(Lote.id)
    ).all()
    batches = [_batch_from_row(row, warehouse.descripcion) for row in lotes]

    if stock is None:
        return StockRecord(
            product_id=codigo_producto,
            location=warehouse.descripcion,
            unit=product.unidad,
            batches=batches,
        )

    return StockRecord(
        product_id=codigo_producto,
        location=warehouse.descripcion,
        available_quantity=stock.cantidad_disponible,
        reserved_quantity=stock.cantidad_reservada,
        quarantine_quantity=stock.cantidad_cuarentena,
        unit=stock.unidad,
        batches=batches,
        version=stock.version,
    )


def product_batch_numbers(db: Session, codigo_producto: int) -> List[str]:
    """Números de lote del producto en todos los almacenes."""
    return db.exec(
        select(Lote.numero_lote).where(Lote.codigo_producto == codigo_producto)
    ).all()


def _write_stock(
    db: Session,
    codigo_producto: int,
    codigo_almacen: int,
    original: StockRecord,
    updated: StockRecord,
) -> None:
    if original.version == 0:
        exists = db.exec(
            select(Stock.version).where(
                Stock.codigo_producto == codigo_producto,
                Stock.codigo_almacen == codigo_almacen,
            )
        ).first()
        if exists is None:
            db.add(
                Stock(
                    codigo_producto=codigo_producto,
                    codigo_almacen=codigo_almacen,
                    cantidad_disponible=updated.available_quantity,
                    cantidad_reservada=updated.reserved_quantity,
                    cantidad_cuarentena=updated.quarantine_quantity,
                    unidad=updated.unit,
                    version=updated.version,
                )
            )
            db.flush()
            return

    statement = (
        update(Stock)
        .where(
            Stock.codigo_producto == codigo_producto,
            Stock.codigo_almacen == codigo_almacen,
            Stock.version == original.version,
        )
        .values(
            cantidad_disponible=updated.available_quantity,
            version=updated.version,
        )
    )
    outcome = db.execute(statement)
    if outcome.rowcount != 1:
        raise StaleStockError(
            "El stock fue modificado por otro movimiento. Vuelve a intentarlo."
        )


def register_movement(
    db: Session,
    codigo_producto: int,
    codigo_almacen: int,
    movement: Movement,
    today: Optional[datetime.date] = None,
) -> Tuple[MovementResult, StockRecord, List[StockAlert]]:
    """Valida y confirma un movimiento de forma atómica.

    - Un movimiento rechazado no escribe nada y devuelve el registro leído.
    - Un conflicto de versión deshace la transacción y lanza `StaleStockError`.
    - Los errores de base de datos se propagan tras el rollback.
    """
    today = today or datetime.date.today()
    product, _ = get_product_and_warehouse(db, codigo_producto, codigo_almacen)
    record = load_record(db, codigo_producto, codigo_almacen)

    result, updated = apply_movement(
        record,
        movement,
        today=today,
        taken_batch_numbers=product_batch_numbers(db, codigo_producto),
    )
    if not result.accepted:
        return result, record, []

    try:
        _write_stock(db, codigo_producto, codigo_almacen, record, updated)

        if result.new_batch is not None:
            db.add(
                Lote(
                    codigo_producto=codigo_producto,
                    codigo_almacen=codigo_almacen,
                    numero_lote=result.new_batch.batch_number,
                    cantidad=result.new_batch.quantity,
                    unidad=result.new_batch.unit,
                    fecha_cad=result.new_batch.expiration_date,
                    estado=result.new_batch.status.value,
                    costo_unitario=result.new_batch.cost_per_unit,
                )
            )

        db.add(
            MovementRow(
                tipo=result.movement_type,
                codigo_producto=codigo_producto,
                codigo_almacen=codigo_almacen,
                cantidad=movement.quantity,
                unidad=movement.unit,
                cantidad_anterior=result.previous_quantity,
                cantidad_nueva=result.new_available_quantity,
                motivo=movement.reason.strip(),
                notas=movement.notes,
                lote=result.new_batch.batch_number if result.new_batch else movement.batch_id,
                costo_unitario=movement.cost_per_unit,
            )
        )
        db.commit()
    except StaleStockError:
        db.rollback()
        raise
    except IntegrityError as exc:
        # Otro proceso creó la fila de stock o el lote a la vez
        db.rollback()
        raise StaleStockError(
            "El stock fue modificado por otro movimiento. Vuelve a intentarlo."
        ) from exc
    except Exception:
        db.rollback()
        logger.exception(
            "Error al confirmar el movimiento %s del producto %s en el almacén %s",
            result.movement_type,
            codigo_producto,
            codigo_almacen,
        )
        raise

    alerts = check_alerts(
        updated,
        today,
        minimum=product.stock_minimo,
        reorder_point=product.punto_reorden,
    )
    return result, updated, alerts


def refresh_batch_statuses(
    db: Session,
    codigo_producto: int,
    codigo_almacen: int,
    today: datetime.date,
) -> StockRecord:
    """Pasa a `expired` los lotes activos caducados y devuelve el registro actualizado."""
    record = load_record(db, codigo_producto, codigo_almacen)

    changed = []
    batches = []
    for batch in record.batches:
        refreshed = reclassify(batch, today)
        if refreshed.status != batch.status:
            changed.append(refreshed.batch_number)
        batches.append(refreshed)

    if changed:
        try:
            db.execute(
                update(Lote)
                .where(
                    Lote.codigo_producto == codigo_producto,
                    Lote.codigo_almacen == codigo_almacen,
                    Lote.numero_lote.in_(changed),
                )
                .values(estado=BatchStatus.EXPIRED.value)
            )
            db.commit()
        except Exception:
            db.rollback()
            raise

    return record.model_copy(update={"batches": batches})
