from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from app.models.database import get_db
from app.models.product import Product
from app.schemas.product import (
    PaginatedProductResponse,
    ProductCreate,
    ProductResponse,
)

router = APIRouter(prefix="/productos", tags=["Productos"])


@router.get("/", response_model=PaginatedProductResponse)
def get_products(
    db: Session = Depends(get_db),
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None),
    estado: Optional[bool] = Query(None),
):
    """Lista los productos, filtrando por nombre/SKU y estado."""
    try:
        statement = select(Product)

        if search:
            # Filtra por nombre o sku (mayúsculas o minúsculas)
            search_like = f"%{search.lower()}%"
            statement = statement.where(
                func.lower(Product.nombre_corto).ilike(search_like)
                | func.lower(Product.sku).ilike(search_like)
            )

        if estado is not None:
            statement = statement.where(Product.activo == estado)

        products = db.exec(
            statement.order_by(Product.nombre_corto).limit(limit).offset(offset)
        ).all()

        # Conteo total SIN paginar
        total_records = (
            db.exec(select(func.count()).select_from(statement.subquery())).first() or 0
        )

    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error de conexión con la base de datos",
        )

    return {
        "data": products,
        "total": total_records,
        "limit": limit,
        "offset": offset,
    }


@router.get("/{id}", response_model=ProductResponse)
def get_product(id: int, db: Session = Depends(get_db)):
    """Obtiene un producto específico por su ID."""
    try:
        product = db.get(Product, id)
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error de conexión con la base de datos",
        )

    if not product:
        raise HTTPException(status_code=404, detail="Producto no encontrado")

    return product


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(product_data: ProductCreate, db: Session = Depends(get_db)):
    """Crea un nuevo producto con su unidad base, precio y umbrales de stock."""

    # Verificar si el SKU ya existe
    try:
        statement = select(Product).where(Product.sku == product_data.sku)
        existing_product = db.exec(statement).first()
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error de conexión con la base de datos",
        )

    if existing_product:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="El SKU ya está registrado."
        )

    new_product = Product(**product_data.model_dump())

    try:
        db.add(new_product)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Error de integridad en la base de datos. Verifica los datos enviados.",
        )
    except SQLAlchemyError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error interno al registrar el producto.",
        )
    db.refresh(new_product)

    return new_product
