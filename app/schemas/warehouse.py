from typing import List, Optional
from pydantic import BaseModel, Field

class WarehouseBase(BaseModel):
    """Esquema base con los campos comunes de un almacén."""
    descripcion: str = Field(..., min_length=1, max_length=255, description="Descripción del almacén")
    activo: Optional[bool] = Field(default=True, description="Indica si el almacén está activo (True) o inactivo (False)")

class WarehouseCreate(WarehouseBase):
    """Esquema para la creación de almacenes.
    - Incluye `descripcion` (obligatoria).
    - `activo` es opcional y por defecto será `True`."""
    pass

class WarehouseResponse(WarehouseBase):
    """Esquema para responder con los datos de un almacén.
    - `codigo`: ID único del almacén generado por la base de datos."""
    codigo: int = Field(..., description="Código único del almacén")

    class Config:
        from_attributes = True  # Permite convertir modelos SQLModel en respuestas JSON automáticamente

class PaginatedWarehouseResponse(BaseModel):
    data: List[WarehouseResponse]
    total: int
    limit: int
    offset: int
