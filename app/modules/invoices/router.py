from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date

from app.core.config import settings
from app.database.database import get_db
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.payments import PaymentLedger
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceDetail, InvoiceList, InvoiceUpdate, InvoiceFilters, InvoiceStatus,
    PaymentCreate, PaymentOut, NextInvoiceNumber, InvoiceSummary, InvoiceDocument
)

# Router principal del módulo de facturas
router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("/", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
def create_invoice(invoice_data: InvoiceCreate, db: Session = Depends(get_db)):
    """
    Crear una nueva factura de venta

    El precio de cada línea se toma del catálogo y el stock de los productos
    se descuenta en la misma operación.
    """
    service = InvoiceService(db)
    return service.create_invoice(invoice_data)


@router.get("/", response_model=InvoiceList)
def list_invoices(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    start_date: Optional[date] = Query(None, description="Fecha inicial (YYYY-MM-DD)"),
    end_date: Optional[date] = Query(None, description="Fecha final (YYYY-MM-DD)"),
    client_id: Optional[UUID] = Query(None, description="Filtrar por cliente"),
    status: Optional[InvoiceStatus] = Query(None, description="Estado de la factura"),
    search: Optional[str] = Query(None, description="Buscar por número o nombre del cliente"),
    db: Session = Depends(get_db)
):
    """
    Listar facturas con filtros

    Incluye el conteo por estado calculado con los mismos filtros (sin el de estado).
    """
    service = InvoiceService(db)
    filters = InvoiceFilters(
        status=status,
        client_id=client_id,
        date_from=start_date,
        date_to=end_date,
        search=search
    )
    return service.get_invoices(filters, limit, offset)


@router.get("/summary", response_model=InvoiceSummary)
def get_invoices_summary(db: Session = Depends(get_db)):
    """Totales facturados, cobrados y pendientes"""
    return InvoiceService(db).get_summary()


@router.get("/next-number", response_model=NextInvoiceNumber)
def get_next_invoice_number(db: Session = Depends(get_db)):
    """Consultar el próximo número de factura sin reservarlo"""
    return InvoiceService(db).get_next_invoice_number()


@router.get("/{invoice_id}", response_model=InvoiceDetail)
def get_invoice(invoice_id: UUID, db: Session = Depends(get_db)):
    """
    Obtener detalles completos de una factura
    """
    service = InvoiceService(db)
    return service.get_invoice_by_id(invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceDetail)
def update_invoice(invoice_id: UUID, invoice_update: InvoiceUpdate, db: Session = Depends(get_db)):
    """
    Reemplazar una factura

    Los precios unitarios enviados se respetan y el stock se ajusta solo en
    la diferencia con la versión anterior. El estado enviado se guarda tal cual.
    """
    service = InvoiceService(db)
    return service.update_invoice(invoice_id, invoice_update)


@router.delete("/{invoice_id}")
def delete_invoice(invoice_id: UUID, db: Session = Depends(get_db)):
    """
    Eliminar una factura

    Las cantidades de sus líneas vuelven al stock y sus pagos se eliminan con ella.
    """
    service = InvoiceService(db)
    return service.delete_invoice(invoice_id)


@router.get("/{invoice_id}/document", response_model=InvoiceDocument)
def get_invoice_document(invoice_id: UUID, db: Session = Depends(get_db)):
    """Factura, cliente y datos de la empresa para generar el documento"""
    return InvoiceService(db).get_invoice_document(invoice_id)


# --- PAGOS ---

@router.post("/{invoice_id}/payments", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def add_payment(invoice_id: UUID, payment_data: PaymentCreate, db: Session = Depends(get_db)):
    """
    Registrar un pago para una factura

    El estado de la factura se recalcula a partir del total pagado.
    """
    ledger = PaymentLedger(db)
    return ledger.record_payment(invoice_id, payment_data)


@router.get("/{invoice_id}/payments", response_model=List[PaymentOut])
def get_invoice_payments(invoice_id: UUID, db: Session = Depends(get_db)):
    """Obtener todos los pagos de una factura"""
    ledger = PaymentLedger(db)
    return ledger.get_payments(invoice_id)
