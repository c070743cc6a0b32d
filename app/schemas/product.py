from pydantic import BaseModel, Field
from typing import List, Optional


class ProductBase(BaseModel):
    """
    Esquema base para productos.
    - `sku`: Validado con regex para permitir solo letras mayúsculas y números.
    - `unidad`: unidad base en la que se lleva el stock (kg, l, pz, ...).
    """

    sku: str = Field(
        ..., min_length=3, max_length=20, pattern="^[A-Z0-9]+$"
    )  # Field(...) significa que el campo debe ser proporcionado al crear un objeto
    nombre_corto: str = Field(..., min_length=3, max_length=100)
    descripcion: Optional[str] = Field(None, max_length=500)
    unidad: str = Field(..., min_length=1, max_length=20)
    precio_base: float = Field(0, ge=0)
    stock_minimo: Optional[float] = Field(None, ge=0)
    punto_reorden: Optional[float] = Field(None, ge=0)


class ProductCreate(ProductBase):
    """
    Esquema para la creación de un producto.
    - `activo` no se incluye porque por defecto será `True`.
    """

    pass


class ProductResponse(ProductBase):
    """
    Esquema para respuestas de la API.
    - Incluye `codigo` y `activo`, ya que estos se generan en la base de datos.
    """

    codigo: int
    activo: bool

    class Config:
        from_attributes = True  # Permite convertir SQLModel en JSON automáticamente


class PaginatedProductResponse(BaseModel):
    data: List[ProductResponse]
    total: int
    limit: int
    offset: int
