"""
Módulo de Facturación (Invoices)

- Cálculo de líneas, descuento, IVA y total (calculator)
- Reconciliación de stock al crear, editar y eliminar (stock)
- Ciclo de vida de la factura (service)
- Registro de pagos y estado derivado (payments)

Tablas principales:
- invoices: Facturas de venta
- invoice_items: Líneas de factura
- payments: Pagos de facturas
- invoice_sequences: Secuencias de numeración por prefijo
"""

from .models import Invoice, InvoiceItem, Payment, InvoiceSequence, InvoiceStatus, PaymentMethod
from .schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceOut, InvoiceDetail,
    PaymentCreate, PaymentOut
)
from .service import InvoiceService
from .payments import PaymentLedger, derive_status
from .router import router

__all__ = [
    "Invoice", "InvoiceItem", "Payment", "InvoiceSequence", "InvoiceStatus", "PaymentMethod",
    "InvoiceCreate", "InvoiceUpdate", "InvoiceOut", "InvoiceDetail",
    "PaymentCreate", "PaymentOut",
    "InvoiceService", "PaymentLedger", "derive_status",
    "router"
]
