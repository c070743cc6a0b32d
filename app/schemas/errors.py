from typing import Literal, Union
from pydantic import BaseModel, Field


class ValidationError(BaseModel):
    """Rechazo recuperable: el usuario corrige el dato y vuelve a enviar.

    No es una excepción. El motor siempre lo devuelve como valor.
    """

    kind: Literal["validation", "insufficient_stock"] = "validation"
    field: str = Field(..., description="Campo afectado (quantity, reason, notes, ...)")
    message: str = Field(..., description="Mensaje para mostrar al usuario")


class InsufficientStockError(ValidationError):
    """El movimiento dejaría la cantidad disponible en negativo."""

    kind: Literal["validation", "insufficient_stock"] = "insufficient_stock"
    current: float = Field(..., description="Cantidad disponible actual")
    requested: float = Field(..., description="Cantidad solicitada en el movimiento")
    deficit: float = Field(..., description="Cantidad resultante (negativa)")


# Anotación para listas de errores (incluye los campos de la subclase al serializar).
StockError = Union[InsufficientStockError, ValidationError]
