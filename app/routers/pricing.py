from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlmodel import Session, select
from sqlalchemy.exc import SQLAlchemyError
from app.models.database import get_db
from app.models.pricing_tier import NivelPrecio
from app.models.product import Product
from app.schemas.pricing import DiscountType, PricingTier, QuantityPrice
from app.services.pricing_tiers import (
    next_priority,
    price_for_quantity,
    sort_tiers,
    upsert_tier,
)

router = APIRouter(prefix="/precios", tags=["Precios"])


def _tier_from_row(row: NivelPrecio) -> PricingTier:
    return PricingTier(
        id=str(row.id),
        name=row.nombre,
        min_quantity=row.cantidad_min,
        max_quantity=row.cantidad_max,
        discount_type=DiscountType(row.tipo_descuento),
        discount_value=row.valor_descuento,
        priority=row.prioridad,
        is_active=row.activo,
    )


def _copy_to_row(tier: PricingTier, row: NivelPrecio) -> NivelPrecio:
    row.nombre = tier.name.strip()
    row.cantidad_min = tier.min_quantity
    row.cantidad_max = tier.max_quantity
    row.tipo_descuento = tier.discount_type.value
    row.valor_descuento = tier.discount_value
    row.prioridad = tier.priority
    row.activo = tier.is_active
    return row


def _get_product(db: Session, codigo_producto: int) -> Product:
    try:
        product = db.exec(
            select(Product).where(Product.codigo == codigo_producto)
        ).first()
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error de conexión con la base de datos",
        )
    if not product:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Producto no encontrado"
        )
    return product


def _load_rows(db: Session, codigo_producto: int) -> List[NivelPrecio]:
    try:
        return db.exec(
            select(NivelPrecio).where(NivelPrecio.codigo_producto == codigo_producto)
        ).all()
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error de conexión con la base de datos",
        )


def _save(db: Session):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        msg_error = (str(e.orig) if hasattr(e, "orig") else str(e)).split("\n")[0]
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Error de integridad: {msg_error}",
        )


@router.get("/{codigo_producto}/niveles", response_model=List[PricingTier])
def get_tiers(codigo_producto: int, db: Session = Depends(get_db)):
    """Niveles de precio del producto ordenados por prioridad."""
    _get_product(db, codigo_producto)
    return sort_tiers(_tier_from_row(row) for row in _load_rows(db, codigo_producto))


@router.get("/{codigo_producto}/niveles/siguiente-prioridad")
def get_next_priority(codigo_producto: int, db: Session = Depends(get_db)):
    """Prioridad propuesta para un nivel nuevo (la mayor existente + 1)."""
    _get_product(db, codigo_producto)
    tiers = [_tier_from_row(row) for row in _load_rows(db, codigo_producto)]
    return {"prioridad": next_priority(tiers)}


@router.post(
    "/{codigo_producto}/niveles",
    response_model=List[PricingTier],
    status_code=status.HTTP_201_CREATED,
)
def create_tier(
    codigo_producto: int,
    tier: PricingTier,
    db: Session = Depends(get_db),
):
    """
    Crea un nivel de precio.

    - Se rechaza (422) si algún dato no es válido o si el rango de cantidades
      se solapa con otro nivel activo del producto.
    - Devuelve la lista completa de niveles ya reordenada.
    """
    _get_product(db, codigo_producto)
    tiers = [_tier_from_row(row) for row in _load_rows(db, codigo_producto)]

    change = upsert_tier(tiers, tier.model_copy(update={"id": None}))
    if not change.accepted:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[error.model_dump() for error in change.errors],
        )

    row = _copy_to_row(tier, NivelPrecio(codigo_producto=codigo_producto))
    db.add(row)
    _save(db)

    return sort_tiers(_tier_from_row(r) for r in _load_rows(db, codigo_producto))


@router.put("/{codigo_producto}/niveles/{id}", response_model=List[PricingTier])
def update_tier(
    codigo_producto: int,
    id: int,
    tier: PricingTier,
    db: Session = Depends(get_db),
):
    """Edita un nivel. Su propio rango anterior no cuenta como solapamiento."""
    _get_product(db, codigo_producto)
    rows = _load_rows(db, codigo_producto)
    row = next((r for r in rows if r.id == id), None)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Nivel de precio no encontrado",
        )

    tiers = [_tier_from_row(r) for r in rows]
    candidate = tier.model_copy(update={"id": str(id)})
    change = upsert_tier(tiers, candidate, excluding_id=str(id))
    if not change.accepted:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=[error.model_dump() for error in change.errors],
        )

    _copy_to_row(candidate, row)
    db.add(row)
    _save(db)

    return change.tiers


@router.delete("/{codigo_producto}/niveles/{id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tier(codigo_producto: int, id: int, db: Session = Depends(get_db)):
    _get_product(db, codigo_producto)
    row = next((r for r in _load_rows(db, codigo_producto) if r.id == id), None)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Nivel de precio no encontrado",
        )
    db.delete(row)
    _save(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{codigo_producto}", response_model=QuantityPrice)
def get_price_for_quantity(
    codigo_producto: int,
    cantidad: int = Query(..., ge=1),
    db: Session = Depends(get_db),
):
    """Precio unitario para una cantidad: aplica el nivel activo de menor prioridad que la contiene."""
    product = _get_product(db, codigo_producto)
    tiers = [_tier_from_row(row) for row in _load_rows(db, codigo_producto)]
    return price_for_quantity(product.precio_base, tiers, cantidad)
