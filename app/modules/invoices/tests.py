"""
Tests para el módulo de Facturación

Cubren:
- Cálculo de líneas, descuento, IVA y total
- Planificación y aplicación de stock (crear, editar, eliminar)
- Ciclo de vida vía servicio y vía API
- Registro de pagos y estado derivado
- Numeración, listados, resumen y documento
"""

import logging
import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app.common.exceptions import (
    ClientNotFound, InsufficientStock, InvoiceNotFound, ProductNotFound, StockConflict, StorageError
)
from app.common.transactions import run_in_transaction
from app.core.config import Settings
from app.modules.invoices.calculator import calculate_totals, price_item, recalculate_invoice, to_money
from app.modules.invoices.crud import InvoiceCrud
from app.modules.invoices.models import InvoiceSequence, InvoiceStatus, PaymentMethod
from app.modules.invoices.payments import PaymentLedger, derive_status
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceFilters, InvoiceItemCreate, InvoiceItemUpdate, InvoiceUpdate, PaymentCreate
)
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.stock import aggregate_quantities, plan_create, plan_delete, plan_update
from app.modules.products import service as product_service
from app.modules.products.models import Product
from app.modules.products.schemas import ProductUpdate


TODAY = date.today()
DUE = TODAY + timedelta(days=30)


def stock_of(db_session, product):
    """Stock actual leído desde la base, ignorando el estado en memoria de la sesión"""
    product_id = product.id
    db_session.expire_all()
    return db_session.get(Product, product_id).quantity_in_stock


def invoice_payload(customer, items, **extra):
    payload = {
        "client_id": str(customer.id),
        "issue_date": TODAY.isoformat(),
        "due_date": DUE.isoformat(),
        "items": items,
    }
    payload.update(extra)
    return payload


def catalog(*entries):
    """Productos en memoria para los tests de planificación: (nombre, stock)"""
    return {p.id: p for p in (Product(id=uuid4(), name=name, reference=name[:3].upper(),
                                      unit_price=Decimal("1.00"), quantity_in_stock=stock)
                              for name, stock in entries)}


# ===== FIXTURES =====

@pytest.fixture
def service(db_session):
    return InvoiceService(db_session)


@pytest.fixture
def hammer_invoice(service, sample_client, sample_products):
    """Factura de 3 martillos (total 75.00)"""
    return service.create_invoice(InvoiceCreate(
        client_id=sample_client.id,
        due_date=DUE,
        items=[InvoiceItemCreate(product_id=sample_products[0].id, quantity=3)]
    ))


# ===== TESTS DEL CALCULADOR =====

class TestCalculator:

    def test_price_item(self):
        item = price_item(uuid4(), "Martillo", "MAR-001", 3, Decimal("12.345"))

        assert item.unit_price == Decimal("12.35")
        assert item.total == Decimal("37.05")

    def test_totals_identities(self):
        line_totals = [Decimal("37.50"), Decimal("1000.00"), Decimal("0.99")]
        for discount, vat in [(0, 0), (7.5, 19), (100, 21), (33.33, 100), (0, 5.5)]:
            totals = calculate_totals(line_totals, Decimal(str(discount)), Decimal(str(vat)))

            assert totals.sub_total == sum(line_totals)
            assert totals.total_amount == totals.sub_total - totals.discount_amount + totals.vat_amount

    def test_discount_applies_before_vat(self):
        totals = calculate_totals([Decimal("2000.00")], Decimal("10"), Decimal("20"))

        assert totals.discount_amount == Decimal("200.00")
        assert totals.vat_amount == Decimal("360.00")
        assert totals.total_amount == Decimal("2160.00")

    def test_rounding_half_up(self):
        totals = calculate_totals([Decimal("37.50")], Decimal("7.5"), Decimal("19"))

        assert totals.discount_amount == Decimal("2.81")
        assert totals.vat_amount == Decimal("6.59")
        assert totals.total_amount == Decimal("41.28")

    def test_empty_items(self):
        totals = calculate_totals([], Decimal("10"), Decimal("19"))

        assert totals.total_amount == Decimal("0.00")

    def test_percentage_out_of_range(self):
        with pytest.raises(ValueError):
            calculate_totals([Decimal("10")], Decimal("101"), Decimal("0"))
        with pytest.raises(ValueError):
            calculate_totals([Decimal("10")], Decimal("0"), Decimal("-1"))

    def test_to_money(self):
        assert to_money("0.005") == Decimal("0.01")
        assert to_money(3) == Decimal("3.00")


# ===== TESTS DE PLANIFICACIÓN DE STOCK =====

class TestStockPlanning:

    def test_aggregate_quantities(self):
        a, b = uuid4(), uuid4()

        assert aggregate_quantities([(a, 2), (b, 1), (a, 3)]) == {a: 5, b: 1}

    def test_plan_create(self):
        products = catalog(("Martillo", 10), ("Taladro", 5))
        hammer, drill = list(products)

        plan = plan_create([(hammer, 4), (drill, 5)], products)

        assert plan.deltas == {hammer: -4, drill: -5}

    def test_plan_create_duplicate_lines_exceed_stock(self):
        products = catalog(("Taladro", 5))
        drill = next(iter(products))

        with pytest.raises(InsufficientStock) as exc:
            plan_create([(drill, 3), (drill, 3)], products)

        assert exc.value.available == 5
        assert exc.value.requested == 6

    def test_plan_create_missing_product(self):
        with pytest.raises(ProductNotFound):
            plan_create([(uuid4(), 1)], {})

    def test_plan_update_uses_returned_quantity(self):
        products = catalog(("Martillo", 7))
        hammer = next(iter(products))

        plan = plan_update([(hammer, 3)], [(hammer, 5)], products)

        assert plan.deltas == {hammer: -2}
        assert products[hammer].quantity_in_stock == 7

    def test_plan_update_unchanged_quantities_touch_nothing(self):
        products = catalog(("Martillo", 7))
        hammer = next(iter(products))

        assert plan_update([(hammer, 3)], [(hammer, 3)], products).is_empty()

    def test_plan_update_swapped_product(self):
        products = catalog(("Martillo", 7), ("Taladro", 5))
        hammer, drill = list(products)

        plan = plan_update([(hammer, 3)], [(drill, 2)], products)

        assert plan.deltas == {hammer: 3, drill: -2}

    def test_plan_update_insufficient(self):
        products = catalog(("Martillo", 7))
        hammer = next(iter(products))

        with pytest.raises(InsufficientStock) as exc:
            plan_update([(hammer, 3)], [(hammer, 11)], products)

        assert exc.value.available == 10

    def test_plan_delete_skips_missing_products(self):
        products = catalog(("Martillo", 7))
        hammer = next(iter(products))

        plan = plan_delete([(hammer, 3), (uuid4(), 2)], products)

        assert plan.deltas == {hammer: 3}


# ===== TESTS DEL CICLO DE VIDA =====

class TestInvoiceLifecycle:

    def test_create_invoice(self, db_session, hammer_invoice, sample_products):
        assert hammer_invoice.number == "FAC-000001"
        assert hammer_invoice.status == InvoiceStatus.UNPAID
        assert hammer_invoice.amount_paid == Decimal("0")
        assert hammer_invoice.payments == []
        assert hammer_invoice.client_name == "Ferretería El Tornillo"
        assert hammer_invoice.items[0].product_name == "Martillo"
        assert hammer_invoice.items[0].total == Decimal("75.00")
        assert stock_of(db_session, sample_products[0]) == 7

    def test_create_uses_catalog_price(self, service, sample_client, sample_products):
        invoice = service.create_invoice(InvoiceCreate(
            client_id=sample_client.id,
            due_date=DUE,
            items=[InvoiceItemCreate(product_id=sample_products[0].id, quantity=2, unit_price=Decimal("1"))]
        ))

        assert invoice.items[0].unit_price == Decimal("25.00")
        assert invoice.sub_total == Decimal("50.00")

    def test_create_unknown_client(self, service, sample_products):
        with pytest.raises(ClientNotFound):
            service.create_invoice(InvoiceCreate(
                client_id=uuid4(),
                due_date=DUE,
                items=[InvoiceItemCreate(product_id=sample_products[0].id, quantity=1)]
            ))

    def test_create_unknown_product_leaves_stock(self, db_session, service, sample_client, sample_products):
        with pytest.raises(ProductNotFound):
            service.create_invoice(InvoiceCreate(
                client_id=sample_client.id,
                due_date=DUE,
                items=[
                    InvoiceItemCreate(product_id=sample_products[0].id, quantity=1),
                    InvoiceItemCreate(product_id=uuid4(), quantity=1),
                ]
            ))

        assert stock_of(db_session, sample_products[0]) == 10

    def test_insufficient_stock_is_all_or_nothing(self, db_session, service, sample_client, sample_products):
        hammer, screwdriver, drill = sample_products

        with pytest.raises(InsufficientStock) as exc:
            service.create_invoice(InvoiceCreate(
                client_id=sample_client.id,
                due_date=DUE,
                items=[
                    InvoiceItemCreate(product_id=hammer.id, quantity=2),
                    InvoiceItemCreate(product_id=screwdriver.id, quantity=4),
                    InvoiceItemCreate(product_id=drill.id, quantity=6),
                ]
            ))

        assert exc.value.message == "Stock insuficiente para Taladro. Disponible: 5, Solicitado: 6."
        assert stock_of(db_session, hammer) == 10
        assert stock_of(db_session, screwdriver) == 20
        assert stock_of(db_session, drill) == 5
        assert service.get_invoices(InvoiceFilters())["total"] == 0

    def test_sell_out_then_reject(self, db_session, service, sample_client, sample_products):
        drill = sample_products[2]
        first = service.create_invoice(InvoiceCreate(
            client_id=sample_client.id,
            due_date=DUE,
            items=[InvoiceItemCreate(product_id=drill.id, quantity=5)]
        ))

        assert first.items[0].total == Decimal("5000.00")
        assert stock_of(db_session, drill) == 0

        with pytest.raises(InsufficientStock):
            service.create_invoice(InvoiceCreate(
                client_id=sample_client.id,
                due_date=DUE,
                items=[InvoiceItemCreate(product_id=drill.id, quantity=1)]
            ))
        assert stock_of(db_session, drill) == 0

    def test_create_then_delete_restores_stock(self, db_session, service, sample_client, sample_products):
        hammer, screwdriver, drill = sample_products
        invoice = service.create_invoice(InvoiceCreate(
            client_id=sample_client.id,
            due_date=DUE,
            items=[
                InvoiceItemCreate(product_id=hammer.id, quantity=4),
                InvoiceItemCreate(product_id=drill.id, quantity=2),
                InvoiceItemCreate(product_id=hammer.id, quantity=1),
            ]
        ))
        assert stock_of(db_session, hammer) == 5

        service.delete_invoice(invoice.id)

        assert stock_of(db_session, hammer) == 10
        assert stock_of(db_session, screwdriver) == 20
        assert stock_of(db_session, drill) == 5
        with pytest.raises(InvoiceNotFound):
            service.get_invoice_by_id(invoice.id)

    def test_update_nets_quantities(self, db_session, service, hammer_invoice, sample_client, sample_products):
        hammer = sample_products[0]
        assert stock_of(db_session, hammer) == 7
        # Reposición: stock 10 con la factura original usando 3
        db_session.get(Product, hammer.id).quantity_in_stock = 10
        db_session.commit()

        updated = service.update_invoice(hammer_invoice.id, InvoiceUpdate(
            client_id=sample_client.id,
            issue_date=TODAY,
            due_date=DUE,
            status=InvoiceStatus.UNPAID,
            items=[InvoiceItemUpdate(product_id=hammer.id, quantity=5, unit_price=Decimal("20.00"))]
        ))

        assert stock_of(db_session, hammer) == 8
        assert updated.items[0].unit_price == Decimal("20.00")
        assert updated.total_amount == Decimal("100.00")
        assert updated.number == hammer_invoice.number

    def test_update_swaps_products(self, db_session, service, hammer_invoice, sample_client, sample_products):
        hammer, screwdriver, _ = sample_products

        service.update_invoice(hammer_invoice.id, InvoiceUpdate(
            client_id=sample_client.id,
            issue_date=TODAY,
            due_date=DUE,
            status=InvoiceStatus.UNPAID,
            items=[InvoiceItemUpdate(product_id=screwdriver.id, quantity=2, unit_price=Decimal("12.50"))]
        ))

        assert stock_of(db_session, hammer) == 10
        assert stock_of(db_session, screwdriver) == 18

    def test_update_insufficient_keeps_original(self, db_session, service, hammer_invoice, sample_client, sample_products):
        hammer, _, drill = sample_products

        with pytest.raises(InsufficientStock):
            service.update_invoice(hammer_invoice.id, InvoiceUpdate(
                client_id=sample_client.id,
                issue_date=TODAY,
                due_date=DUE,
                status=InvoiceStatus.UNPAID,
                items=[
                    InvoiceItemUpdate(product_id=hammer.id, quantity=1, unit_price=Decimal("25.00")),
                    InvoiceItemUpdate(product_id=drill.id, quantity=9, unit_price=Decimal("1000.00")),
                ]
            ))

        invoice = service.get_invoice_by_id(hammer_invoice.id)
        assert [item.quantity for item in invoice.items] == [3]
        assert invoice.total_amount == Decimal("75.00")
        assert stock_of(db_session, hammer) == 7
        assert stock_of(db_session, drill) == 5

    def test_update_missing_invoice(self, service, sample_client):
        with pytest.raises(InvoiceNotFound):
            service.update_invoice(uuid4(), InvoiceUpdate(
                client_id=sample_client.id, issue_date=TODAY, due_date=DUE, status=InvoiceStatus.UNPAID
            ))

    def test_update_requires_issue_date(self, sample_client):
        with pytest.raises(ValidationError):
            InvoiceUpdate(client_id=sample_client.id, due_date=DUE, status=InvoiceStatus.UNPAID)

    def test_update_keeps_issue_date(self, service, sample_client, sample_products):
        issued = TODAY - timedelta(days=40)
        invoice = service.create_invoice(InvoiceCreate(
            client_id=sample_client.id,
            issue_date=issued,
            due_date=issued + timedelta(days=30),
            items=[InvoiceItemCreate(product_id=sample_products[0].id, quantity=1)]
        ))

        updated = service.update_invoice(invoice.id, InvoiceUpdate(
            client_id=sample_client.id,
            issue_date=issued,
            due_date=issued + timedelta(days=30),
            status=InvoiceStatus.UNPAID,
            items=[InvoiceItemUpdate(product_id=sample_products[0].id, quantity=2, unit_price=Decimal("25.00"))]
        ))

        assert updated.issue_date == issued

    def test_lines_keep_product_snapshot(self, db_session, service, hammer_invoice, sample_products):
        product_service.update_product(
            db_session, sample_products[0].id, ProductUpdate(name="Martillo de uña", reference="MAR-900")
        )

        invoice = service.get_invoice_by_id(hammer_invoice.id)
        assert invoice.items[0].product_name == "Martillo"
        assert invoice.items[0].reference == "MAR-001"

    def test_database_failure_rolls_back_stock(self, db_session, service, sample_client, sample_products, monkeypatch):
        def failing_add(*args, **kwargs):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(InvoiceCrud, "add_invoice", failing_add)

        with pytest.raises(StorageError) as exc:
            service.create_invoice(InvoiceCreate(
                client_id=sample_client.id,
                due_date=DUE,
                items=[InvoiceItemCreate(product_id=sample_products[0].id, quantity=4)]
            ))

        assert exc.value.message == "Error de la base de datos: no se pudo crear la factura."
        assert stock_of(db_session, sample_products[0]) == 10

    def test_recalculation_is_idempotent(self, service, sample_client, sample_products):
        invoice = service.create_invoice(InvoiceCreate(
            client_id=sample_client.id,
            due_date=DUE,
            discount=Decimal("7.5"),
            vat=Decimal("19"),
            items=[
                InvoiceItemCreate(product_id=sample_products[1].id, quantity=3),
                InvoiceItemCreate(product_id=sample_products[0].id, quantity=1),
            ]
        ))
        stored = service.get_invoice_by_id(invoice.id)

        totals = recalculate_invoice(stored)

        assert totals.sub_total == stored.sub_total
        assert totals.discount_amount == stored.discount_amount
        assert totals.vat_amount == stored.vat_amount
        assert totals.total_amount == stored.total_amount

    def test_invoice_numbers_are_sequential(self, service, sample_client):
        first = service.create_invoice(InvoiceCreate(client_id=sample_client.id, due_date=DUE))
        preview = service.get_next_invoice_number()
        second = service.create_invoice(InvoiceCreate(client_id=sample_client.id, due_date=DUE))

        assert first.number == "FAC-000001"
        assert preview.next_number == "FAC-000002"
        assert second.number == "FAC-000002"


# ===== TESTS DE PAGOS =====

class TestPaymentLedger:

    def test_derive_status(self):
        assert derive_status(Decimal("0"), Decimal("100")) == InvoiceStatus.UNPAID
        assert derive_status(Decimal("40"), Decimal("100")) == InvoiceStatus.PARTIALLY_PAID
        assert derive_status(Decimal("100"), Decimal("100")) == InvoiceStatus.PAID
        assert derive_status(Decimal("150"), Decimal("100")) == InvoiceStatus.PAID

    def test_partial_then_full_payment(self, db_session, service, sample_client, sample_products):
        invoice = service.create_invoice(InvoiceCreate(
            client_id=sample_client.id,
            due_date=DUE,
            items=[InvoiceItemCreate(product_id=sample_products[0].id, quantity=4)]
        ))
        ledger = PaymentLedger(db_session)

        ledger.record_payment(invoice.id, PaymentCreate(amount=Decimal("40"), method=PaymentMethod.CASH))
        partial = service.get_invoice_by_id(invoice.id)
        assert partial.amount_paid == Decimal("40.00")
        assert partial.status == InvoiceStatus.PARTIALLY_PAID

        ledger.record_payment(invoice.id, PaymentCreate(amount=Decimal("60"), method=PaymentMethod.BANK_TRANSFER))
        paid = service.get_invoice_by_id(invoice.id)
        assert paid.amount_paid == Decimal("100.00")
        assert paid.status == InvoiceStatus.PAID
        assert paid.balance_due == Decimal("0")
        assert [p.sequence for p in ledger.get_payments(invoice.id)] == [1, 2]

    def test_overpayment_clamps_to_paid(self, db_session, service, hammer_invoice):
        PaymentLedger(db_session).record_payment(
            hammer_invoice.id, PaymentCreate(amount=Decimal("100"), method=PaymentMethod.CHECK)
        )

        invoice = service.get_invoice_by_id(hammer_invoice.id)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.balance_due == Decimal("-25.00")

    def test_payment_overrides_manual_status(self, db_session, service, hammer_invoice, sample_client, sample_products):
        service.update_invoice(hammer_invoice.id, InvoiceUpdate(
            client_id=sample_client.id,
            issue_date=TODAY,
            due_date=DUE,
            status=InvoiceStatus.PAID,
            items=[InvoiceItemUpdate(product_id=sample_products[0].id, quantity=3, unit_price=Decimal("25.00"))]
        ))
        assert service.get_invoice_by_id(hammer_invoice.id).status == InvoiceStatus.PAID

        PaymentLedger(db_session).record_payment(
            hammer_invoice.id, PaymentCreate(amount=Decimal("10"), method=PaymentMethod.CASH)
        )

        assert service.get_invoice_by_id(hammer_invoice.id).status == InvoiceStatus.PARTIALLY_PAID

    def test_payment_unknown_invoice(self, db_session):
        with pytest.raises(InvoiceNotFound):
            PaymentLedger(db_session).record_payment(
                uuid4(), PaymentCreate(amount=Decimal("10"), method=PaymentMethod.CASH)
            )


# ===== TESTS DE TRANSACCIONES =====

class TestRunInTransaction:

    def test_retries_on_stale_data(self, db_session):
        calls = []

        def operation():
            calls.append(1)
            if len(calls) < 2:
                raise StaleDataError("version mismatch")
            return "ok"

        assert run_in_transaction(db_session, "probar", operation, retries=3) == "ok"
        assert len(calls) == 2

    def test_gives_up_with_stock_conflict(self, db_session):
        def operation():
            raise StaleDataError("version mismatch")

        with pytest.raises(StockConflict):
            run_in_transaction(db_session, "probar", operation, retries=2)

    def test_database_error_becomes_storage_error(self, db_session):
        def operation():
            raise SQLAlchemyError("connection lost")

        with pytest.raises(StorageError) as exc:
            run_in_transaction(db_session, "probar", operation)

        assert exc.value.status_code == 500
        assert exc.value.message == "Error de la base de datos: no se pudo probar."


# ===== TESTS DE NUMERACIÓN =====

class TestInvoiceNumbering:

    def test_prefix_longer_than_column_rejected(self):
        with pytest.raises(ValidationError):
            Settings(INVOICE_NUMBER_PREFIX="FACTURA-2026-")

    def test_create_sequence_twice_keeps_one_row(self, db_session):
        crud = InvoiceCrud(db_session)

        crud.create_sequence("FAC-")
        crud.create_sequence("FAC-")

        assert crud.next_number("FAC-") == "FAC-000001"
        assert db_session.query(InvoiceSequence).filter(InvoiceSequence.prefix == "FAC-").count() == 1


# ===== TESTS DE API =====

class TestInvoiceEndpoints:

    def test_create_invoice(self, client, sample_client, sample_products):
        response = client.post("/invoices/", json=invoice_payload(
            sample_client,
            [{"product_id": str(sample_products[2].id), "quantity": 2}],
            discount="10",
            vat="20"
        ))

        assert response.status_code == 201
        data = response.json()
        assert data["number"] == "FAC-000001"
        assert data["status"] == "Unpaid"
        assert Decimal(data["sub_total"]) == Decimal("2000.00")
        assert Decimal(data["total_amount"]) == Decimal("2160.00")
        assert Decimal(data["balance_due"]) == Decimal("2160.00")
        assert data["items"][0]["reference"] == "TAL-003"

    def test_insufficient_stock_message(self, client, sample_client, sample_products):
        response = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[2].id), "quantity": 6}]
        ))

        assert response.status_code == 409
        assert response.json() == {"message": "Stock insuficiente para Taladro. Disponible: 5, Solicitado: 6."}

    def test_due_date_before_issue_date(self, client, sample_client):
        response = client.post("/invoices/", json=invoice_payload(
            sample_client, [], due_date=(TODAY - timedelta(days=1)).isoformat()
        ))

        assert response.status_code == 422
        assert response.json()["message"].startswith("Algunos campos son inválidos")

    def test_invalid_quantity(self, client, sample_client, sample_products):
        response = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[0].id), "quantity": 0}]
        ))

        assert response.status_code == 422

    def test_unknown_invoice(self, client):
        response = client.get(f"/invoices/{uuid4()}")

        assert response.status_code == 404
        assert response.json() == {"message": "Factura no encontrada."}

    def test_update_and_delete(self, client, sample_client, sample_products):
        hammer = sample_products[0]
        created = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(hammer.id), "quantity": 3}]
        )).json()

        response = client.put(f"/invoices/{created['id']}", json=invoice_payload(
            sample_client,
            [{"product_id": str(hammer.id), "quantity": 5, "unit_price": "25.00"}],
            status="Unpaid"
        ))
        assert response.status_code == 200
        assert Decimal(response.json()["total_amount"]) == Decimal("125.00")
        assert client.get(f"/products/{hammer.id}").json()["quantity_in_stock"] == 5

        response = client.delete(f"/invoices/{created['id']}")
        assert response.status_code == 200
        assert client.get(f"/products/{hammer.id}").json()["quantity_in_stock"] == 10

    def test_update_without_issue_date_rejected(self, client, sample_client, sample_products):
        created = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[0].id), "quantity": 1}]
        )).json()
        payload = invoice_payload(sample_client, [], status="Unpaid")
        del payload["issue_date"]

        response = client.put(f"/invoices/{created['id']}", json=payload)

        assert response.status_code == 422
        assert client.get(f"/invoices/{created['id']}").json()["issue_date"] == TODAY.isoformat()

    def test_database_failure_returns_generic_message(self, client, sample_client, sample_products, monkeypatch):
        def failing_add(*args, **kwargs):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(InvoiceCrud, "add_invoice", failing_add)

        response = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[0].id), "quantity": 4}]
        ))

        assert response.status_code == 500
        assert response.json() == {"message": "Error de la base de datos: no se pudo crear la factura."}
        assert client.get(f"/products/{sample_products[0].id}").json()["quantity_in_stock"] == 10

    def test_rejections_not_logged_as_database_errors(self, client, caplog):
        caplog.set_level(logging.ERROR)

        response = client.get(f"/invoices/{uuid4()}")

        assert response.status_code == 404
        assert not [r for r in caplog.records if r.name == "app.database.database"]

    def test_payments_flow(self, client, sample_client, sample_products):
        created = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[0].id), "quantity": 4}]
        )).json()
        assert created["status"] == "Unpaid"

        response = client.post(f"/invoices/{created['id']}/payments", json={"amount": "40", "method": "cash"})
        assert response.status_code == 201
        assert client.get(f"/invoices/{created['id']}").json()["status"] == "Partially Paid"

        client.post(f"/invoices/{created['id']}/payments", json={"amount": "60", "method": "bank_transfer"})
        invoice = client.get(f"/invoices/{created['id']}").json()
        assert invoice["status"] == "Paid"
        assert Decimal(invoice["amount_paid"]) == Decimal("100.00")
        assert len(invoice["payments"]) == 2

        payments = client.get(f"/invoices/{created['id']}/payments").json()
        assert [Decimal(p["amount"]) for p in payments] == [Decimal("40.00"), Decimal("60.00")]

    def test_payment_must_be_positive(self, client, sample_client, sample_products):
        created = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[0].id), "quantity": 1}]
        )).json()

        response = client.post(f"/invoices/{created['id']}/payments", json={"amount": "0", "method": "cash"})

        assert response.status_code == 422

    def test_list_filters_and_counts(self, client, sample_client, sample_products):
        first = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[0].id), "quantity": 1}]
        )).json()
        client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[1].id), "quantity": 1}]
        ))
        client.post(f"/invoices/{first['id']}/payments", json={"amount": "25", "method": "cash"})

        response = client.get("/invoices/", params={"status": "Paid"})

        data = response.json()
        assert data["total"] == 1
        assert data["invoices"][0]["number"] == first["number"]
        counts = {c["status"]: c["count"] for c in data["counts_by_status"]}
        assert counts == {"Unpaid": 1, "Partially Paid": 0, "Paid": 1}

        response = client.get("/invoices/", params={"search": "FAC-000002"})
        assert response.json()["total"] == 1

    def test_summary_and_next_number(self, client, sample_client, sample_products):
        created = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[0].id), "quantity": 4}]
        )).json()
        client.post(f"/invoices/{created['id']}/payments", json={"amount": "30", "method": "cash"})

        summary = client.get("/invoices/summary").json()
        assert summary["total_invoices"] == 1
        assert Decimal(summary["total_invoiced"]) == Decimal("100.00")
        assert Decimal(summary["total_outstanding"]) == Decimal("70.00")

        next_number = client.get("/invoices/next-number").json()
        assert next_number == {"next_number": "FAC-000002", "prefix": "FAC-", "current_sequence": 2}

    def test_document(self, client, sample_client, sample_products):
        created = client.post("/invoices/", json=invoice_payload(
            sample_client, [{"product_id": str(sample_products[0].id), "quantity": 1}]
        )).json()

        response = client.get(f"/invoices/{created['id']}/document")

        assert response.status_code == 200
        document = response.json()
        assert document["invoice"]["number"] == "FAC-000001"
        assert document["client"]["name"] == "Ferretería El Tornillo"
        assert document["settings"]["company_name"] == "Mi Empresa"
        assert document["settings"]["currency"] == "EUR"
