from typing import Optional
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    __tablename__ = "producto"

    codigo: int = Field(default=None, primary_key=True, nullable=False)
    sku: str = Field(unique=True, index=True, nullable=False)
    nombre_corto: str = Field(nullable=False)
    descripcion: Optional[str] = Field(default=None)
    unidad: str = Field(nullable=False, max_length=20)  # Unidad base de medida
    precio_base: float = Field(default=0, ge=0, nullable=False)
    stock_minimo: Optional[float] = Field(default=None, ge=0)
    punto_reorden: Optional[float] = Field(default=None, ge=0)
    activo: bool = Field(default=True, nullable=False)
