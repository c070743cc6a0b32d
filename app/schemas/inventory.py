"""Estructuras canónicas del libro de stock.

Los backends que alimentan la aplicación devuelven los mismos conceptos unas
veces en snake_case (`available_quantity`) y otras en camelCase
(`availableQuantity`). Todos los modelos aceptan ambas formas al validarse, de
modo que el motor trabaja siempre con un único juego de campos.
"""

import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from app.schemas.errors import StockError


class MovementType(str, Enum):
    ENTRADA = "ENTRADA"
    SALIDA = "SALIDA"
    TRANSFERENCIA = "TRANSFERENCIA"
    AJUSTE = "AJUSTE"
    MERMA = "MERMA"


class BatchStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    QUARANTINE = "quarantine"
    RESERVED = "reserved"
    CONSUMED = "consumed"


class Severity(str, Enum):
    EXPIRED = "expired"
    CRITICAL = "critical"
    WARNING = "warning"
    GOOD = "good"
    NONE = "none"


class Batch(BaseModel):
    """Lote: sub-cantidad trazable de un producto recibida de una vez."""

    batch_number: str = Field(..., min_length=1, description="Único dentro del producto")
    quantity: float = Field(..., ge=0)
    unit: str
    manufacturing_date: Optional[datetime.date] = None
    expiration_date: Optional[datetime.date] = None
    status: BatchStatus = BatchStatus.ACTIVE
    location: str = ""
    cost_per_unit: Optional[float] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class StockRecord(BaseModel):
    """Estado autoritativo de un producto en una ubicación."""

    product_id: Optional[int] = None
    location: str = ""
    available_quantity: float = Field(0, description="Stock utilizable (>= 0)")
    reserved_quantity: float = Field(0, description="Solo lectura para el motor")
    quarantine_quantity: float = Field(0, description="Solo lectura para el motor")
    unit: str
    batches: List[Batch] = Field(default_factory=list)
    version: int = Field(0, ge=0, description="Token de concurrencia optimista")

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Movement(BaseModel):
    """Movimiento propuesto. No se persiste desde el motor.

    `type` es texto libre a propósito: un tipo desconocido se devuelve como
    rechazo y no como error de parseo.
    """

    type: str = Field("", alias="movementType")
    quantity: float = 0
    unit: str = ""
    reason: str = ""
    notes: Optional[str] = None
    batch_id: Optional[str] = None
    cost_per_unit: Optional[float] = None
    expiry_date: Optional[datetime.date] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class MovementResult(BaseModel):
    """Decisión del validador: aceptado con el nuevo estado o rechazado con errores."""

    accepted: bool
    movement_type: str
    errors: List[StockError] = Field(default_factory=list)
    previous_quantity: float
    new_available_quantity: Optional[float] = None
    new_batch: Optional[Batch] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ExpirationStatus(BaseModel):
    days: Optional[int] = None
    severity: Severity = Severity.NONE
