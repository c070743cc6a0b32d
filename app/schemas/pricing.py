from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from app.schemas.errors import StockError


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class PricingTier(BaseModel):
    """Nivel de precio por rango de cantidad.

    - `max_quantity` ausente significa rango sin límite superior.
    - Las restricciones de negocio (min > 0, descuento < 100 %, ...) se
      comprueban en `validate_tier`, no aquí, para poder informar de todas a la vez.
    """

    id: Optional[str] = None
    name: str = ""
    min_quantity: int = 1
    max_quantity: Optional[int] = None
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: float = 0
    priority: int = 1
    is_active: bool = True

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class TierPrice(BaseModel):
    final_price: float
    savings: float
    savings_percent: float

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class TierChange(BaseModel):
    """Resultado de insertar o editar un nivel."""

    accepted: bool
    tiers: List[PricingTier] = Field(default_factory=list)
    errors: List[StockError] = Field(default_factory=list)


class QuantityPrice(TierPrice):
    quantity: int
    base_price: float
    tier: Optional[PricingTier] = None
