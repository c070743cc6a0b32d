from sqlmodel import SQLModel, Field


class Stock(SQLModel, table=True):
    """Modelo SQLModel para el stock de un producto en un almacén."""

    __tablename__ = "stock"

    codigo_almacen: int = Field(
        foreign_key="almacen.codigo",
        primary_key=True,
        description="Código del almacén asociado",
    )
    codigo_producto: int = Field(
        foreign_key="producto.codigo",
        primary_key=True,
        description="Código del producto asociado",
    )
    cantidad_disponible: float = Field(
        default=0, nullable=False, ge=0, description="Stock utilizable (mínimo 0)"
    )
    cantidad_reservada: float = Field(
        default=0, nullable=False, ge=0, description="Comprometido con otros procesos"
    )
    cantidad_cuarentena: float = Field(
        default=0, nullable=False, ge=0, description="Pendiente de inspección"
    )
    unidad: str = Field(nullable=False, max_length=20)
    version: int = Field(
        default=0, nullable=False, description="Se incrementa en cada movimiento aceptado"
    )
