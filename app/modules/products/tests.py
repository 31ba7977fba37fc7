"""
Tests para el catálogo de productos: CRUD, stock bajo y bloqueo ordenado
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from app.common.exceptions import PayloadValidationError, ProductNotFound
from app.modules.products import service
from app.modules.products.crud import ProductCrud
from app.modules.products.schemas import ProductCreate, ProductUpdate


@pytest.fixture
def product_payload():
    return {
        "name": "Llave inglesa",
        "reference": "LLA-010",
        "description": "Llave ajustable de 10 pulgadas",
        "unit_price": "18.90",
        "quantity_in_stock": 7
    }


class TestProductService:

    def test_create_product(self, db_session, product_payload):
        product = service.create_product(db_session, ProductCreate(**product_payload))

        assert product.reference == "LLA-010"
        assert product.unit_price == Decimal("18.90")
        assert product.quantity_in_stock == 7

    def test_duplicate_reference_rejected(self, db_session, sample_products, product_payload):
        product_payload["reference"] = "MAR-001"

        with pytest.raises(PayloadValidationError):
            service.create_product(db_session, ProductCreate(**product_payload))

    def test_get_product_not_found(self, db_session):
        with pytest.raises(ProductNotFound):
            service.get_product_by_id(db_session, uuid4())

    def test_manual_restock(self, db_session, sample_products):
        product = service.update_product(
            db_session, sample_products[2].id, ProductUpdate(quantity_in_stock=12)
        )

        assert product.quantity_in_stock == 12

    def test_low_stock(self, db_session, sample_products):
        result = service.get_low_stock_products(db_session, threshold=10)

        assert result.total_count == 2
        assert [p.reference for p in result.products] == ["TAL-003", "MAR-001"]

    def test_get_many_for_update_skips_missing(self, db_session, sample_products):
        missing = uuid4()
        ids = [sample_products[1].id, missing, sample_products[0].id, sample_products[0].id]

        products = ProductCrud(db_session).get_many_for_update(ids)

        assert set(products) == {sample_products[0].id, sample_products[1].id}


class TestProductEndpoints:

    def test_create_and_list(self, client, product_payload):
        response = client.post("/products/", json=product_payload)
        assert response.status_code == 201

        response = client.get("/products/", params={"name": "llave"})
        data = response.json()
        assert data["total"] == 1
        assert Decimal(data["data"][0]["unit_price"]) == Decimal("18.90")
        assert data["hasNext"] is False

    def test_negative_stock_rejected(self, client, product_payload):
        product_payload["quantity_in_stock"] = -1

        response = client.post("/products/", json=product_payload)

        assert response.status_code == 422

    def test_get_product_not_found_message(self, client):
        product_id = uuid4()

        response = client.get(f"/products/{product_id}")

        assert response.status_code == 404
        assert response.json() == {"message": f"Producto no encontrado: {product_id}"}

    def test_low_stock_endpoint(self, client, sample_products):
        response = client.get("/products/low-stock", params={"threshold": 5})

        assert response.status_code == 200
        data = response.json()
        assert data["threshold"] == 5
        assert [p["reference"] for p in data["products"]] == ["TAL-003"]

    def test_delete_unreferenced_product(self, client, sample_products):
        response = client.delete(f"/products/{sample_products[1].id}")

        assert response.status_code == 200
        assert client.get(f"/products/{sample_products[1].id}").status_code == 404

    def test_delete_invoiced_product_rejected(self, client, sample_client, sample_products):
        created = client.post("/invoices/", json={
            "client_id": str(sample_client.id),
            "issue_date": date.today().isoformat(),
            "due_date": (date.today() + timedelta(days=15)).isoformat(),
            "items": [{"product_id": str(sample_products[0].id), "quantity": 2}]
        })
        assert created.status_code == 201

        response = client.delete(f"/products/{sample_products[0].id}")

        assert response.status_code == 422
        assert "Martillo" in response.json()["message"]
