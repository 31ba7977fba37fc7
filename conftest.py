"""
Fixtures compartidas por los tests de todos los módulos.

Se usa SQLite en memoria; la configuración debe fijarse antes de importar la app.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["INVOICE_NUMBER_PREFIX"] = "FAC-"

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient

from app.main import app
from app.database.database import Base, SessionLocal, engine
from app.modules.clients.models import Client
from app.modules.products.models import Product


# ===== FIXTURES =====

@pytest.fixture(autouse=True)
def setup_database():
    """Esquema limpio para cada test"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(setup_database):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(setup_database):
    """Cliente HTTP de la API"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_client(db_session):
    """Cliente de ejemplo ya persistido"""
    customer = Client(
        name="Ferretería El Tornillo",
        email="compras@eltornillo.com",
        phone="601-234-5678",
        address="Calle 10 # 4-21",
        city="Bogotá",
        country="Colombia",
        tax_id="900123456"
    )
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


@pytest.fixture
def sample_products(db_session):
    """Tres productos con stock y precios conocidos"""
    products = [
        Product(name="Martillo", reference="MAR-001", unit_price=Decimal("25.00"), quantity_in_stock=10),
        Product(name="Destornillador", reference="DES-002", unit_price=Decimal("12.50"), quantity_in_stock=20),
        Product(name="Taladro", reference="TAL-003", unit_price=Decimal("1000.00"), quantity_in_stock=5),
    ]
    db_session.add_all(products)
    db_session.commit()
    for product in products:
        db_session.refresh(product)
    return products
