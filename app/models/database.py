from sqlmodel import SQLModel, create_engine, Session
from app.utils.getenv import get_bool_env, get_required_env

# Conectar a la base de datos existente
DATABASE_URL = get_required_env("DATABASE_URL")

engine = create_engine(DATABASE_URL, echo=get_bool_env("DB_ECHO"))


def get_db():
    """Obtiene una sesión de la base de datos."""
    with Session(engine) as session:
        yield session


def create_db_and_tables():
    # Importa las tablas para que queden registradas en los metadatos
    from app.models import batch, movement, pricing_tier, product, stock, warehouse  # noqa: F401

    SQLModel.metadata.create_all(engine)
