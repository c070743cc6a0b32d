import datetime
import os

# La URL real no se usa: las pruebas sustituyen la sesión por SQLite en memoria
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.main import app as api
from app.models.database import get_db
from app.models.product import Product
from app.models.warehouse import Warehouse
from app.schemas.inventory import Batch, StockRecord

TODAY = datetime.date(2026, 10, 19)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def override_get_db():
        with Session(engine) as session:
            yield session

    api.dependency_overrides[get_db] = override_get_db
    yield TestClient(api)
    api.dependency_overrides.clear()


@pytest.fixture
def producto(session):
    """Producto en kg con precio base 100 y umbrales de stock."""
    product = Product(
        sku="HARINA01",
        nombre_corto="Harina de trigo",
        unidad="kg",
        precio_base=100,
        stock_minimo=5,
        punto_reorden=8,
    )
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture
def almacen(session):
    warehouse = Warehouse(descripcion="Almacén Central")
    session.add(warehouse)
    session.commit()
    session.refresh(warehouse)
    return warehouse


@pytest.fixture
def record():
    """Stock de 10 kg en el almacén central, sin lotes."""
    return StockRecord(
        product_id=1,
        location="Almacén Central",
        available_quantity=10,
        reserved_quantity=2,
        quarantine_quantity=1,
        unit="kg",
    )


@pytest.fixture
def make_batch():
    def _make_batch(number="L-001", quantity=5, expires_in=None, **kwargs):
        expiration = (
            TODAY + datetime.timedelta(days=expires_in) if expires_in is not None else None
        )
        return Batch(
            batch_number=number,
            quantity=quantity,
            unit="kg",
            expiration_date=expiration,
            location="Almacén Central",
            **kwargs,
        )

    return _make_batch
