import logging
import math
from typing import Iterable, List, Optional
from app.schemas.errors import ValidationError
from app.schemas.pricing import (
    DiscountType,
    PricingTier,
    QuantityPrice,
    TierChange,
    TierPrice,
)

logger = logging.getLogger(__name__)


def _upper_bound(tier: PricingTier) -> float:
    return math.inf if tier.max_quantity is None else tier.max_quantity


def ranges_overlap(a: PricingTier, b: PricingTier) -> bool:
    """Rangos cerrados; un máximo ausente es infinito."""
    return a.min_quantity <= _upper_bound(b) and b.min_quantity <= _upper_bound(a)


def overlapping_tiers(
    candidate: PricingTier,
    existing: Iterable[PricingTier],
    excluding_id: Optional[str] = None,
) -> List[PricingTier]:
    """Niveles activos cuyo rango se solapa con el del candidato.

    El nivel en edición (`excluding_id`) se descarta antes de comparar para que
    no choque con su propio rango anterior.
    """
    return [
        tier
        for tier in existing
        if tier.is_active
        and (excluding_id is None or tier.id != excluding_id)
        and ranges_overlap(candidate, tier)
    ]


def check_overlap(
    candidate: PricingTier,
    existing: Iterable[PricingTier],
    excluding_id: Optional[str] = None,
) -> bool:
    return bool(overlapping_tiers(candidate, existing, excluding_id))


def validate_tier(tier: PricingTier) -> List[ValidationError]:
    """Reglas de un nivel independientes del solapamiento."""
    errors = []
    if not tier.name.strip():
        errors.append(ValidationError(field="name", message="El nombre es requerido"))
    if tier.min_quantity <= 0:
        errors.append(
            ValidationError(
                field="minQuantity", message="La cantidad mínima debe ser mayor a 0"
            )
        )
    if tier.max_quantity is not None and tier.max_quantity <= tier.min_quantity:
        errors.append(
            ValidationError(
                field="maxQuantity",
                message="La cantidad máxima debe ser mayor a la cantidad mínima",
            )
        )
    if tier.discount_value <= 0:
        errors.append(
            ValidationError(
                field="discountValue", message="El descuento debe ser mayor a 0"
            )
        )
    elif tier.discount_type == DiscountType.PERCENTAGE and tier.discount_value >= 100:
        errors.append(
            ValidationError(
                field="discountValue",
                message="El descuento porcentual debe ser menor a 100%",
            )
        )
    return errors


def sort_tiers(tiers: Iterable[PricingTier]) -> List[PricingTier]:
    """Orden determinista: prioridad ascendente, después cantidad mínima."""
    return sorted(tiers, key=lambda tier: (tier.priority, tier.min_quantity))


def next_priority(tiers: Iterable[PricingTier]) -> int:
    return max((tier.priority for tier in tiers), default=0) + 1


def upsert_tier(
    tiers: List[PricingTier],
    candidate: PricingTier,
    excluding_id: Optional[str] = None,
) -> TierChange:
    """Inserta o reemplaza (por id) un nivel y devuelve la lista reordenada.

    Si hay errores la lista se devuelve sin cambios.
    """
    errors = validate_tier(candidate)

    if candidate.is_active:
        clashes = overlapping_tiers(candidate, tiers, excluding_id)
        if clashes:
            names = ", ".join(tier.name or str(tier.id) for tier in clashes)
            errors.append(
                ValidationError(
                    field="minQuantity",
                    message=f"Los rangos de cantidad no pueden solaparse (choca con: {names})",
                )
            )

    if errors:
        logger.warning(
            "Nivel de precio '%s' rechazado: %s",
            candidate.name,
            "; ".join(error.message for error in errors),
        )
        return TierChange(accepted=False, tiers=list(tiers), errors=errors)

    if excluding_id is not None:
        updated = [
            candidate if tier.id == excluding_id else tier for tier in tiers
        ]
        if not any(tier.id == excluding_id for tier in tiers):
            updated.append(candidate)
    else:
        updated = list(tiers) + [candidate]

    return TierChange(accepted=True, tiers=sort_tiers(updated))


def apply_tier(base_price: float, tier: PricingTier) -> TierPrice:
    if tier.discount_type == DiscountType.PERCENTAGE:
        final_price = base_price * (1 - tier.discount_value / 100)
    else:
        # Un descuento fijo nunca deja el precio en negativo
        final_price = max(0.0, base_price - tier.discount_value)

    savings = base_price - final_price
    savings_percent = savings / base_price * 100 if base_price else 0.0
    return TierPrice(
        final_price=final_price, savings=savings, savings_percent=savings_percent
    )


def tier_contains(tier: PricingTier, quantity: int) -> bool:
    return tier.min_quantity <= quantity <= _upper_bound(tier)


def select_tier(tiers: Iterable[PricingTier], quantity: int) -> Optional[PricingTier]:
    """Nivel activo de menor prioridad cuyo rango contiene la cantidad."""
    for tier in sort_tiers(tiers):
        if tier.is_active and tier_contains(tier, quantity):
            return tier
    return None


def price_for_quantity(
    base_price: float, tiers: Iterable[PricingTier], quantity: int
) -> QuantityPrice:
    tier = select_tier(tiers, quantity)
    if tier is None:
        price = TierPrice(final_price=base_price, savings=0.0, savings_percent=0.0)
    else:
        price = apply_tier(base_price, tier)
    return QuantityPrice(
        quantity=quantity,
        base_price=base_price,
        tier=tier,
        **price.model_dump(),
    )
