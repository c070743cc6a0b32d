"""Validación de movimientos de stock.

El validador recibe una foto del registro de stock y un movimiento propuesto y
devuelve una decisión. No escribe nada: quien llama confirma el nuevo estado
solo si el movimiento fue aceptado (validar y después confirmar).
"""

import datetime
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union
from pydantic import ValidationError as PydanticValidationError
from app.schemas.errors import InsufficientStockError, StockError, ValidationError
from app.schemas.inventory import (
    Batch,
    BatchStatus,
    Movement,
    MovementResult,
    MovementType,
    StockRecord,
)

logger = logging.getLogger(__name__)

MOVEMENT_TYPES = {movement_type.value for movement_type in MovementType}

# Tipos que restan del disponible
OUTBOUND_TYPES = {
    MovementType.SALIDA.value,
    MovementType.MERMA.value,
    MovementType.TRANSFERENCIA.value,
}


def _format_quantity(value: float) -> str:
    return f"{value:g}"


def resulting_quantity(available: float, movement_type: str, quantity: float) -> float:
    """Cantidad disponible que quedaría tras aplicar el movimiento."""
    if movement_type == MovementType.ENTRADA.value:
        return available + quantity
    if movement_type in OUTBOUND_TYPES:
        return available - quantity
    if movement_type == MovementType.AJUSTE.value:
        # El ajuste fija el valor absoluto, no es un delta
        return quantity
    raise ValueError(f"Tipo de movimiento desconocido: {movement_type}")


def _batch_number_for(taken: Set[str], today: datetime.date) -> str:
    sequence = len(taken) + 1
    while f"LOTE-{today:%Y%m%d}-{sequence:03d}" in taken:
        sequence += 1
    return f"LOTE-{today:%Y%m%d}-{sequence:03d}"


def validate(
    record: StockRecord,
    movement: Movement,
    today: Optional[datetime.date] = None,
    taken_batch_numbers: Optional[Iterable[str]] = None,
) -> MovementResult:
    """Evalúa `movement` contra `record`.

    Se acumulan todos los errores aplicables para que el usuario pueda
    corregirlos de una vez. Los rechazos se devuelven, nunca se lanzan.

    `taken_batch_numbers` son los números de lote ya usados por el producto en
    cualquier almacén; los lotes del propio registro siempre cuentan.
    """
    today = today or datetime.date.today()
    errors: List[StockError] = []
    movement_type = movement.type or ""
    taken = {batch.batch_number for batch in record.batches}
    taken.update(taken_batch_numbers or ())
    available = record.available_quantity

    if movement_type not in MOVEMENT_TYPES:
        errors.append(
            ValidationError(
                field="movementType",
                message=(
                    f"Tipo de movimiento no válido: '{movement.type}'. "
                    f"Debe ser uno de: {', '.join(sorted(MOVEMENT_TYPES))}"
                ),
            )
        )

    quantity_ok = movement.quantity > 0
    if not quantity_ok:
        errors.append(
            ValidationError(field="quantity", message="La cantidad debe ser mayor a 0")
        )

    if not movement.reason.strip():
        errors.append(ValidationError(field="reason", message="El motivo es requerido"))

    new_quantity = None
    if movement_type in MOVEMENT_TYPES and quantity_ok:
        new_quantity = resulting_quantity(available, movement_type, movement.quantity)
        if new_quantity < 0:
            errors.append(
                InsufficientStockError(
                    field="quantity",
                    message=(
                        f"Stock insuficiente. Disponible: {_format_quantity(available)} "
                        f"{record.unit}, solicitado: {_format_quantity(movement.quantity)} "
                        f"{record.unit}. El stock resultante sería "
                        f"{_format_quantity(new_quantity)} {record.unit}"
                    ),
                    current=available,
                    requested=movement.quantity,
                    deficit=new_quantity,
                )
            )

    if movement_type == MovementType.TRANSFERENCIA.value:
        destination = (movement.notes or "").strip()
        if not destination:
            errors.append(
                ValidationError(
                    field="notes",
                    message="Indica en las notas la ubicación de destino de la transferencia",
                )
            )
        elif record.location and destination.lower() == record.location.strip().lower():
            errors.append(
                ValidationError(
                    field="notes",
                    message="Las ubicaciones de origen y destino deben ser diferentes",
                )
            )

    if movement.unit != record.unit:
        errors.append(
            ValidationError(
                field="unit",
                message=(
                    f"La unidad del movimiento ('{movement.unit}') no coincide con la "
                    f"del stock ('{record.unit}')"
                ),
            )
        )

    if movement.cost_per_unit is not None and movement.cost_per_unit <= 0:
        errors.append(
            ValidationError(
                field="costPerUnit", message="El costo por unidad debe ser mayor a 0"
            )
        )

    is_entry = movement_type == MovementType.ENTRADA.value
    if is_entry and movement.batch_id:
        if movement.batch_id in taken:
            errors.append(
                ValidationError(
                    field="batchId",
                    message=f"El lote '{movement.batch_id}' ya existe para este producto",
                )
            )

    if errors:
        logger.warning(
            "Movimiento %s rechazado (%s): %s",
            movement_type or "?",
            record.location or "sin ubicación",
            "; ".join(error.message for error in errors),
        )
        return MovementResult(
            accepted=False,
            movement_type=movement_type,
            errors=errors,
            previous_quantity=available,
        )

    new_batch = None
    if is_entry and (movement.batch_id or movement.expiry_date):
        new_batch = Batch(
            batch_number=movement.batch_id or _batch_number_for(taken, today),
            quantity=movement.quantity,
            unit=record.unit,
            expiration_date=movement.expiry_date,
            status=BatchStatus.ACTIVE,
            location=record.location,
            cost_per_unit=movement.cost_per_unit,
        )

    return MovementResult(
        accepted=True,
        movement_type=movement_type,
        previous_quantity=available,
        new_available_quantity=new_quantity,
        new_batch=new_batch,
    )


def apply_movement(
    record: StockRecord,
    movement: Movement,
    today: Optional[datetime.date] = None,
    taken_batch_numbers: Optional[Iterable[str]] = None,
) -> Tuple[MovementResult, StockRecord]:
    """Valida y, si procede, devuelve una copia del registro con el nuevo estado.

    Un movimiento rechazado devuelve el registro original sin cambios.
    """
    result = validate(
        record, movement, today=today, taken_batch_numbers=taken_batch_numbers
    )
    if not result.accepted:
        return result, record

    batches = list(record.batches)
    if result.new_batch is not None:
        batches.append(result.new_batch)

    updated = record.model_copy(
        update={
            "available_quantity": result.new_available_quantity,
            "batches": batches,
            "version": record.version + 1,
        }
    )
    logger.info(
        "Movimiento %s aceptado en %s: %s -> %s %s",
        result.movement_type,
        record.location or "sin ubicación",
        _format_quantity(result.previous_quantity),
        _format_quantity(result.new_available_quantity),
        record.unit,
    )
    return result, updated


def parse_movement(payload: Dict[str, Any]) -> Union[Movement, List[ValidationError]]:
    """Construye un `Movement` a partir de datos externos.

    Cualquier valor mal formado (fecha inválida, cantidad no numérica) se
    traduce a errores de validación en lugar de propagarse.
    """
    try:
        return Movement.model_validate(payload)
    except PydanticValidationError as exc:
        errors = []
        for error in exc.errors():
            location = error.get("loc") or ("movement",)
            field = str(location[0])
            errors.append(
                ValidationError(field=_alias_for(field), message=error.get("msg", ""))
            )
        return errors


def _alias_for(field: str) -> str:
    info = Movement.model_fields.get(field)
    if info is not None and info.alias:
        return info.alias
    # Ya viene en camelCase o es un campo desconocido
    return field
