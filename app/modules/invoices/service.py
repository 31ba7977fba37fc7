from sqlalchemy.orm import Session
from decimal import Decimal
from typing import Dict
from uuid import UUID
import logging

from app.common.exceptions import ClientNotFound, InvoiceNotFound, ProductNotFound
from app.common.transactions import run_in_transaction
from app.core.config import settings
from app.modules.clients.crud import ClientCrud
from app.modules.invoices.calculator import price_item, price_invoice, to_money
from app.modules.invoices.crud import InvoiceCrud, format_invoice_number
from app.modules.invoices.models import Invoice, InvoiceStatus
from app.modules.invoices.payments import derive_status
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceFilters, InvoiceStatusCount,
    InvoiceSummary, NextInvoiceNumber, InvoiceDocument, InvoiceDetail,
    CompanySettingsOut
)
from app.modules.clients.schemas import ClientOut
from app.modules.invoices.stock import StockReconciler, plan_create, plan_update, plan_delete

logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Ciclo de vida de las facturas: creación, edición y eliminación.

    Cada operación valida, calcula, reconcilia stock y persiste dentro de una
    única transacción; si algo falla no queda ni stock movido ni factura escrita.
    """

    def __init__(self, db: Session):
        self.db = db
        self.crud = InvoiceCrud(db)
        self.clients = ClientCrud(db)
        self.stock = StockReconciler(db)

    def _get_client(self, client_id: UUID):
        client = self.clients.get_by_id(client_id)
        if not client:
            raise ClientNotFound()
        return client

    @staticmethod
    def _ensure_products_exist(product_ids, products: Dict):
        for product_id in product_ids:
            if product_id not in products:
                raise ProductNotFound(product_id)

    # ----------- creación -----------
    def create_invoice(self, invoice_data: InvoiceCreate) -> Invoice:
        """
        Crear nueva factura

        El precio de cada línea se toma del producto; el nombre y la referencia
        se copian en la línea. Descuenta el stock de todos los productos o de ninguno.
        """
        def operation() -> Invoice:
            client = self._get_client(invoice_data.client_id)
            requested = [(item.product_id, item.quantity) for item in invoice_data.items]

            products = self.stock.lock_products(pid for pid, _ in requested)
            self._ensure_products_exist((pid for pid, _ in requested), products)

            items = []
            for item in invoice_data.items:
                product = products[item.product_id]
                items.append(price_item(
                    product_id=product.id,
                    product_name=product.name,
                    reference=product.reference,
                    quantity=item.quantity,
                    unit_price=product.unit_price
                ))
            totals = price_invoice(items, invoice_data.discount, invoice_data.vat)
            plan = plan_create(requested, products)

            number = self.crud.next_number(settings.INVOICE_NUMBER_PREFIX)
            self.stock.apply(plan, products, number)
            invoice = self.crud.add_invoice(
                {
                    "number": number,
                    "client_id": client.id,
                    "client_name": client.name,
                    "issue_date": invoice_data.issue_date,
                    "due_date": invoice_data.due_date,
                    "discount": invoice_data.discount,
                    "vat": invoice_data.vat,
                    "notes": invoice_data.notes,
                    "status": InvoiceStatus.UNPAID,
                    "amount_paid": Decimal("0"),
                },
                items,
                totals
            )
            return invoice

        invoice = run_in_transaction(self.db, "crear la factura", operation)
        logger.info(f"Invoice {invoice.number} created: total={invoice.total_amount} items={len(invoice.items)}")
        return self.get_invoice_by_id(invoice.id)

    # ----------- edición -----------
    def update_invoice(self, invoice_id: UUID, invoice_update: InvoiceUpdate) -> Invoice:
        """
        Reemplazar líneas, tasas, fechas, cliente y estado de una factura.

        Los precios enviados se respetan (no se recargan del producto). El stock
        se valida contra el disponible más lo que la factura original consumía,
        y solo se escriben los productos cuyo stock neto cambia.

        El estado enviado se guarda tal cual; el próximo pago registrado lo
        vuelve a derivar de amount_paid frente a total_amount.
        """
        def operation() -> Invoice:
            invoice = self.crud.get_for_update(invoice_id)
            if not invoice:
                raise InvoiceNotFound()
            client = self._get_client(invoice_update.client_id)

            original = [(item.product_id, item.quantity) for item in invoice.items]
            requested = [(item.product_id, item.quantity) for item in invoice_update.items]

            products = self.stock.lock_products([pid for pid, _ in original] + [pid for pid, _ in requested])
            self._ensure_products_exist((pid for pid, _ in requested), products)

            items = [
                price_item(
                    product_id=item.product_id,
                    product_name=products[item.product_id].name,
                    reference=products[item.product_id].reference,
                    quantity=item.quantity,
                    unit_price=item.unit_price
                )
                for item in invoice_update.items
            ]
            totals = price_invoice(items, invoice_update.discount, invoice_update.vat)
            plan = plan_update(original, requested, products)

            self.stock.apply(plan, products, invoice.number)
            self.crud.update_invoice(
                invoice,
                {
                    "client_id": client.id,
                    "client_name": client.name,
                    "issue_date": invoice_update.issue_date,
                    "due_date": invoice_update.due_date,
                    "discount": invoice_update.discount,
                    "vat": invoice_update.vat,
                    "notes": invoice_update.notes,
                    "status": invoice_update.status,
                },
                items,
                totals
            )

            derived = derive_status(invoice.amount_paid, invoice.total_amount)
            if invoice_update.status != derived:
                logger.warning(
                    f"Invoice {invoice.number} manually set to '{invoice_update.status.value}' "
                    f"while payments imply '{derived.value}'; the next payment will overwrite it"
                )
            return invoice

        invoice = run_in_transaction(self.db, "actualizar la factura", operation)
        logger.info(f"Invoice {invoice.number} updated: total={invoice.total_amount}")
        return self.get_invoice_by_id(invoice.id)

    # ----------- eliminación -----------
    def delete_invoice(self, invoice_id: UUID) -> Dict[str, str]:
        """Eliminar factura devolviendo al stock las cantidades de sus líneas"""
        def operation() -> str:
            invoice = self.crud.get_for_update(invoice_id)
            if not invoice:
                raise InvoiceNotFound()

            original = [(item.product_id, item.quantity) for item in invoice.items]
            products = self.stock.lock_products(pid for pid, _ in original)
            plan = plan_delete(original, products)

            number = invoice.number
            self.stock.apply(plan, products, f"eliminación {number}")
            self.crud.delete_invoice(invoice)
            return number

        number = run_in_transaction(self.db, "eliminar la factura", operation)
        logger.info(f"Invoice {number} deleted")
        return {"message": f"Factura {number} eliminada exitosamente"}

    # ----------- consultas -----------
    def get_invoice_by_id(self, invoice_id: UUID) -> Invoice:
        """Obtener factura por ID con líneas y pagos"""
        invoice = self.crud.get_invoice_by_id(invoice_id)
        if not invoice:
            raise InvoiceNotFound()
        return invoice

    def get_invoices(self, filters: InvoiceFilters, limit: int = 100, offset: int = 0) -> dict:
        """Obtener lista de facturas con filtros y conteo por estado"""
        invoices, total = self.crud.get_invoices(filters, limit, offset)
        counts = self.crud.count_by_status(filters)
        counts_by_status = [
            InvoiceStatusCount(status=st, count=count)
            for st, count in counts.items()
        ]
        return {
            "invoices": invoices,
            "total": total,
            "limit": limit,
            "offset": offset,
            "applied_filters": filters,
            "counts_by_status": counts_by_status
        }

    def get_summary(self) -> InvoiceSummary:
        """Totales facturados, cobrados y pendientes"""
        total_invoices, total_invoiced, total_collected = self.crud.sum_amounts()
        total_invoiced = to_money(total_invoiced)
        total_collected = to_money(total_collected)
        return InvoiceSummary(
            total_invoices=total_invoices,
            total_invoiced=total_invoiced,
            total_collected=total_collected,
            total_outstanding=total_invoiced - total_collected,
            counts_by_status=[
                InvoiceStatusCount(status=st, count=count)
                for st, count in self.crud.count_by_status().items()
            ]
        )

    def get_next_invoice_number(self) -> NextInvoiceNumber:
        """Número que recibirá la próxima factura, sin consumirlo"""
        prefix = settings.INVOICE_NUMBER_PREFIX
        next_sequence = self.crud.peek_sequence(prefix) + 1
        return NextInvoiceNumber(
            next_number=format_invoice_number(prefix, next_sequence),
            prefix=prefix,
            current_sequence=next_sequence
        )

    def get_invoice_document(self, invoice_id: UUID) -> InvoiceDocument:
        """Factura, cliente y datos de empresa para la capa de presentación"""
        invoice = self.get_invoice_by_id(invoice_id)
        return InvoiceDocument(
            invoice=InvoiceDetail.model_validate(invoice),
            client=ClientOut.model_validate(invoice.client),
            settings=get_company_settings()
        )


def get_company_settings() -> CompanySettingsOut:
    return CompanySettingsOut(
        company_name=settings.COMPANY_NAME,
        address=settings.COMPANY_ADDRESS,
        email=settings.COMPANY_EMAIL,
        phone=settings.COMPANY_PHONE,
        tax_id=settings.COMPANY_TAX_ID,
        currency=settings.CURRENCY,
        template=settings.INVOICE_TEMPLATE
    )
