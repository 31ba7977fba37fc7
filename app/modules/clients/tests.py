"""
Tests para el módulo de Clientes

Cubren el CRUD vía API, la búsqueda y la protección de clientes con facturas.
"""

import pytest
from datetime import date, timedelta
from uuid import uuid4

from app.common.exceptions import ClientNotFound, PayloadValidationError
from app.modules.clients.schemas import ClientCreate, ClientUpdate
from app.modules.clients.service import ClientService


# ===== FIXTURES =====

@pytest.fixture
def sample_client_data():
    """Datos de ejemplo para crear clientes"""
    return {
        "name": "Distribuidora Andina S.A.S.",
        "email": "facturacion@andina.com",
        "phone": "604-555-1234",
        "address": "Carrera 43A # 1-50",
        "city": "Medellín",
        "country": "Colombia",
        "tax_id": "830063999",
        "notes": "Pago a 30 días"
    }


# ===== TESTS DE SERVICIO =====

class TestClientService:

    def test_create_client(self, db_session, sample_client_data):
        client = ClientService(db_session).create_client(ClientCreate(**sample_client_data))

        assert client.id is not None
        assert client.name == "Distribuidora Andina S.A.S."
        assert client.email == "facturacion@andina.com"

    def test_get_client_not_found(self, db_session):
        with pytest.raises(ClientNotFound):
            ClientService(db_session).get_client_by_id(uuid4())

    def test_update_client_partial(self, db_session, sample_client):
        updated = ClientService(db_session).update_client(
            sample_client.id, ClientUpdate(phone="300-000-0000")
        )

        assert updated.phone == "300-000-0000"
        assert updated.name == "Ferretería El Tornillo"

    def test_update_client_blank_name(self, db_session, sample_client):
        with pytest.raises(PayloadValidationError):
            ClientService(db_session).update_client(sample_client.id, ClientUpdate(name="   "))

    def test_search_clients(self, db_session, sample_client, sample_client_data):
        service = ClientService(db_session)
        service.create_client(ClientCreate(**sample_client_data))

        result = service.get_clients(search="andina")

        assert result["total"] == 1
        assert result["clients"][0].name == "Distribuidora Andina S.A.S."


# ===== TESTS DE API =====

class TestClientEndpoints:

    def test_create_and_get_client(self, client, sample_client_data):
        response = client.post("/clients/", json=sample_client_data)
        assert response.status_code == 201
        client_id = response.json()["id"]

        response = client.get(f"/clients/{client_id}")
        assert response.status_code == 200
        assert response.json()["tax_id"] == "830063999"

    def test_create_client_invalid_email(self, client, sample_client_data):
        sample_client_data["email"] = "no-es-un-email"

        response = client.post("/clients/", json=sample_client_data)

        assert response.status_code == 422
        assert "message" in response.json()

    def test_get_client_not_found_message(self, client):
        response = client.get(f"/clients/{uuid4()}")

        assert response.status_code == 404
        assert response.json() == {"message": "Cliente no encontrado."}

    def test_list_clients(self, client, sample_client):
        response = client.get("/clients/")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["clients"][0]["id"] == str(sample_client.id)

    def test_delete_client(self, client, sample_client):
        response = client.delete(f"/clients/{sample_client.id}")
        assert response.status_code == 200

        response = client.get(f"/clients/{sample_client.id}")
        assert response.status_code == 404

    def test_delete_client_with_invoices_is_rejected(self, client, sample_client, sample_products):
        invoice = client.post("/invoices/", json={
            "client_id": str(sample_client.id),
            "issue_date": date.today().isoformat(),
            "due_date": (date.today() + timedelta(days=30)).isoformat(),
            "items": [{"product_id": str(sample_products[0].id), "quantity": 1}]
        })
        assert invoice.status_code == 201

        response = client.delete(f"/clients/{sample_client.id}")

        assert response.status_code == 422
        assert "factura" in response.json()["message"]
