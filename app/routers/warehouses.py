from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session, func, select
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from app.models.database import get_db
from app.models.warehouse import Warehouse
from app.schemas.warehouse import (
    PaginatedWarehouseResponse,
    WarehouseCreate,
    WarehouseResponse,
)

router = APIRouter(prefix="/almacenes", tags=["Almacenes"])


@router.get("/", response_model=PaginatedWarehouseResponse)
def get_warehouses(
    db: Session = Depends(get_db),
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None),
    estado: Optional[bool] = Query(None),
):
    """Lista todos los almacenes (ubicaciones de stock)."""
    try:
        statement = select(Warehouse)

        if search:
            search_like = f"%{search.lower()}%"
            statement = statement.where(
                func.lower(Warehouse.descripcion).ilike(search_like)
            )

        if estado is not None:
            statement = statement.where(Warehouse.activo == estado)

        paginated = (
            statement.order_by(Warehouse.descripcion).limit(limit).offset(offset)
        )
        warehouses = db.exec(paginated).all()

        total_records = (
            db.exec(select(func.count()).select_from(statement.subquery())).first() or 0
        )

    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error de conexión con la base de datos",
        )
    return {
        "data": warehouses,
        "total": total_records,
        "limit": limit,
        "offset": offset,
    }


@router.get("/{codigo}", response_model=WarehouseResponse)
def get_warehouse(codigo: int, db: Session = Depends(get_db)):
    """Obtiene un almacén específico por su código."""
    try:
        warehouse = db.get(Warehouse, codigo)
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error de conexión con la base de datos",
        )
    if not warehouse:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Almacén no encontrado."
        )

    return warehouse


@router.post("/", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
def create_warehouse(warehouse_data: WarehouseCreate, db: Session = Depends(get_db)):
    """Crea un nuevo almacén. La descripción identifica la ubicación en las transferencias."""
    new_warehouse = Warehouse(**warehouse_data.model_dump())

    try:
        db.add(new_warehouse)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Ya existe un almacén con esa descripción.",
        )
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error interno del servidor al registrar el almacén.",
        )
    db.refresh(new_warehouse)
    return new_warehouse
