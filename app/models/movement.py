from typing import Optional
from sqlmodel import SQLModel, Field
from datetime import datetime


class Movement(SQLModel, table=True):
    __tablename__ = "movimientos"

    id_mov: int = Field(default=None, primary_key=True, nullable=False)
    fecha: datetime = Field(default_factory=lambda: datetime.now())
    tipo: str = Field(
        nullable=False
    )  # Tipo como `str`, la restricción la pone el validador
    codigo_producto: int = Field(foreign_key="producto.codigo", nullable=False)
    codigo_almacen: int = Field(foreign_key="almacen.codigo", nullable=False)
    cantidad: float = Field(nullable=False, gt=0)
    unidad: str = Field(nullable=False)
    cantidad_anterior: float = Field(nullable=False)
    cantidad_nueva: float = Field(nullable=False, ge=0)
    motivo: str = Field(nullable=False)
    notas: Optional[str] = Field(default=None)
    lote: Optional[str] = Field(default=None, max_length=50)
    costo_unitario: Optional[float] = Field(default=None)
