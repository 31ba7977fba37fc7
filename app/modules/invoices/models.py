from app.database.database import Base
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, Numeric, Enum, Date, Text, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, date
from uuid import uuid4
from app.common.mixins import BaseMixin, TimestampMixin
import enum


class InvoiceStatus(str, enum.Enum):
    UNPAID = "Unpaid"                  # Sin pagos registrados
    PARTIALLY_PAID = "Partially Paid"  # Pagos menores al total
    PAID = "Paid"                      # Pagada (o sobrepagada)


class PaymentMethod(str, enum.Enum):
    CASH = "cash"                    # Efectivo
    BANK_TRANSFER = "bank_transfer"  # Transferencia bancaria
    CHECK = "check"                  # Cheque
    OTHER = "other"                  # Otro


class Invoice(Base, BaseMixin):
    __tablename__ = "invoices"

    number = Column(String(50), nullable=False, unique=True)

    # References
    client_id = Column(Uuid(as_uuid=True), ForeignKey("clients.id"), nullable=False, index=True)
    # Snapshot: nombre del cliente al momento de facturar
    client_name = Column(String(200), nullable=False)

    # Dates
    issue_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=False)

    # Rates (porcentajes 0-100)
    discount = Column(Numeric(5, 2), nullable=False, default=0)
    vat = Column(Numeric(5, 2), nullable=False, default=0)

    # Totals (calculated)
    sub_total = Column(Numeric(15, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    vat_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)

    # Payment state
    status = Column(Enum(InvoiceStatus, values_callable=lambda e: [m.value for m in e]),
                    nullable=False, default=InvoiceStatus.UNPAID)
    amount_paid = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)

    # Relationships
    client = relationship("Client", back_populates="invoices")
    items = relationship("InvoiceItem", back_populates="invoice", cascade="all, delete-orphan",
                         order_by="InvoiceItem.position")
    payments = relationship("Payment", back_populates="invoice", cascade="all, delete-orphan",
                            order_by="Payment.sequence")

    @property
    def balance_due(self):
        """Calcular saldo pendiente"""
        return self.total_amount - self.amount_paid


class InvoiceItem(Base, TimestampMixin):
    __tablename__ = "invoice_items"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    # Referencia, no pertenencia: el producto puede cambiar sin alterar la línea
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Snapshot data (para preservar información si el producto cambia)
    product_name = Column(String(200), nullable=False)
    reference = Column(String(50), nullable=False)

    # Line calculations
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total = Column(Numeric(15, 2), nullable=False)  # quantity * unit_price

    # Relationships
    invoice = relationship("Invoice", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_invoice_item_quantity_positive"),
    )


class Payment(Base, TimestampMixin):
    """Pago registrado sobre una factura. Nunca se modifica ni se elimina."""
    __tablename__ = "payments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    invoice_id = Column(Uuid(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    # Orden de registro dentro de la factura
    sequence = Column(Integer, nullable=False)

    amount = Column(Numeric(15, 2), nullable=False)
    method = Column(Enum(PaymentMethod, values_callable=lambda e: [m.value for m in e]), nullable=False)
    payment_date = Column(Date, nullable=False, default=date.today)
    notes = Column(Text, nullable=True)

    # Relationships
    invoice = relationship("Invoice", back_populates="payments")

    __table_args__ = (
        UniqueConstraint("invoice_id", "sequence", name="uq_payment_invoice_sequence"),
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
    )


class InvoiceSequence(Base):
    """Tabla para manejar la numeración de facturas por prefijo"""
    __tablename__ = "invoice_sequences"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    prefix = Column(String(10), nullable=False)  # Ej: "F-", "FAC-"
    current_number = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("prefix", name="uq_sequence_prefix"),
    )
