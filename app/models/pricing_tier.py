from typing import Optional
from sqlmodel import SQLModel, Field


class NivelPrecio(SQLModel, table=True):
    """Nivel de descuento por rango de cantidad de un producto."""

    __tablename__ = "nivel_precio"

    id: int = Field(default=None, primary_key=True, nullable=False)
    codigo_producto: int = Field(foreign_key="producto.codigo", nullable=False, index=True)
    nombre: str = Field(nullable=False)
    cantidad_min: int = Field(nullable=False)
    cantidad_max: Optional[int] = Field(default=None)  # None = sin límite
    tipo_descuento: str = Field(nullable=False)  # percentage | fixed_amount
    valor_descuento: float = Field(nullable=False)
    prioridad: int = Field(default=1, nullable=False)
    activo: bool = Field(default=True, nullable=False)
