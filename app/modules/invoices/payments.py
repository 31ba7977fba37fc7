from sqlalchemy.orm import Session
from decimal import Decimal
from typing import List
from uuid import UUID
import logging

from app.common.exceptions import InvoiceNotFound
from app.common.transactions import run_in_transaction
from app.modules.invoices.calculator import to_money
from app.modules.invoices.crud import InvoiceCrud
from app.modules.invoices.models import InvoiceStatus, Payment
from app.modules.invoices.schemas import PaymentCreate

logger = logging.getLogger(__name__)


def derive_status(amount_paid, total_amount) -> InvoiceStatus:
    """Estado de pago según lo pagado frente al total"""
    if amount_paid >= total_amount:
        return InvoiceStatus.PAID
    if amount_paid <= 0:
        return InvoiceStatus.UNPAID
    return InvoiceStatus.PARTIALLY_PAID


class PaymentLedger:
    """Registro de pagos (solo agregar) y derivación del estado de la factura"""

    def __init__(self, db: Session):
        self.db = db
        self.crud = InvoiceCrud(db)

    def record_payment(self, invoice_id: UUID, payment_data: PaymentCreate) -> Payment:
        """
        Registrar pago sobre una factura.

        amount_paid se recalcula como la suma de todos los pagos y el estado se
        vuelve a derivar, reemplazando cualquier estado fijado manualmente.
        Un sobrepago se acepta y deja la factura en Paid.
        """
        def operation() -> Payment:
            invoice = self.crud.get_for_update(invoice_id)
            if not invoice:
                raise InvoiceNotFound()

            payment = Payment(
                sequence=len(invoice.payments) + 1,
                amount=to_money(payment_data.amount),
                method=payment_data.method,
                payment_date=payment_data.payment_date,
                notes=payment_data.notes
            )
            invoice.payments.append(payment)

            previous_status = invoice.status
            invoice.amount_paid = sum((p.amount for p in invoice.payments), Decimal("0"))
            invoice.status = derive_status(invoice.amount_paid, invoice.total_amount)

            if invoice.amount_paid > invoice.total_amount:
                logger.warning(
                    f"Invoice {invoice.number} overpaid: paid={invoice.amount_paid} total={invoice.total_amount}"
                )
            if previous_status != invoice.status:
                logger.info(f"Invoice {invoice.number} status: {previous_status.value} -> {invoice.status.value}")

            self.db.flush()
            return payment

        payment = run_in_transaction(self.db, "registrar el pago", operation)
        self.db.refresh(payment)
        logger.info(f"Payment {payment.sequence} of {payment.amount} recorded on invoice {invoice_id}")
        return payment

    def get_payments(self, invoice_id: UUID) -> List[Payment]:
        """Pagos de la factura en orden de registro"""
        invoice = self.crud.get_invoice_by_id(invoice_id)
        if not invoice:
            raise InvoiceNotFound()
        return list(invoice.payments)
