import datetime
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Lote(SQLModel, table=True):
    """Lote de un producto en un almacén."""

    __tablename__ = "lote"
    __table_args__ = (UniqueConstraint("codigo_producto", "numero_lote"),)

    id: int = Field(default=None, primary_key=True, nullable=False)
    codigo_producto: int = Field(foreign_key="producto.codigo", nullable=False)
    codigo_almacen: int = Field(foreign_key="almacen.codigo", nullable=False)
    numero_lote: str = Field(nullable=False, max_length=50)
    cantidad: float = Field(nullable=False, ge=0)
    unidad: str = Field(nullable=False, max_length=20)
    fecha_fabricacion: Optional[datetime.date] = Field(default=None)
    fecha_cad: Optional[datetime.date] = Field(
        default=None, description="Fecha de caducidad (si aplica)"
    )
    estado: str = Field(default="active", nullable=False)
    costo_unitario: Optional[float] = Field(default=None)
