from sqlmodel import SQLModel, Field

class Warehouse(SQLModel, table=True):
    __tablename__ = "almacen"

    codigo: int = Field(default=None, primary_key=True)
    descripcion: str = Field(nullable=False, max_length=255, unique=True)
    activo: bool = Field(default=True, nullable=False)
