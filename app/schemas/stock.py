from typing import List, Optional
from pydantic import BaseModel, Field
import datetime
from app.schemas.errors import StockError
from app.schemas.inventory import Batch, ExpirationStatus, MovementResult, StockRecord
from app.services.alerts import StockAlert


class BatchWithExpiration(Batch):
    """Lote con los datos derivados de caducidad (no se almacenan)."""

    days_to_expiration: Optional[int] = None
    expiration_severity: str = "none"


class StockSnapshotResponse(BaseModel):
    """Foto del stock de un producto en un almacén."""

    codigo_producto: int
    codigo_almacen: int
    record: StockRecord


class MovementAcceptedResponse(BaseModel):
    result: MovementResult
    record: StockRecord
    alerts: List[StockAlert] = Field(default_factory=list)


class MovementRejectedDetail(BaseModel):
    """Cuerpo `detail` de un movimiento rechazado (HTTP 422)."""

    message: str
    errors: List[StockError]


class MovementHistory(BaseModel):
    """Movimiento registrado en el histórico."""

    id_mov: int
    fecha: datetime.datetime
    tipo: str
    codigo_producto: int
    codigo_almacen: int
    cantidad: float
    unidad: str
    cantidad_anterior: float
    cantidad_nueva: float
    motivo: str
    notas: Optional[str] = None
    lote: Optional[str] = None
    costo_unitario: Optional[float] = None

    class Config:
        from_attributes = True


class PaginatedMovementHistory(BaseModel):
    data: List[MovementHistory]
    total: int
    limit: int
    offset: int


class ExpirationQueryResponse(ExpirationStatus):
    today: datetime.date
