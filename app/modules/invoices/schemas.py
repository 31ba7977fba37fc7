from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime

from app.modules.invoices.models import InvoiceStatus, PaymentMethod
from app.modules.clients.schemas import ClientOut


# Invoice Item Schemas
class InvoiceItemCreate(BaseModel):
    """Línea solicitada al crear: el precio se toma siempre del producto"""
    product_id: UUID
    quantity: int = Field(..., gt=0, description="Cantidad debe ser mayor a 0")
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Ignorado al crear")


class InvoiceItemUpdate(BaseModel):
    """Línea solicitada al editar: el precio enviado se respeta"""
    product_id: UUID
    quantity: int = Field(..., gt=0, description="Cantidad debe ser mayor a 0")
    unit_price: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2, description="Precio unitario")


class InvoiceItemOut(BaseModel):
    id: UUID
    product_id: UUID
    product_name: str
    reference: str
    quantity: int
    unit_price: Decimal
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


# Invoice Schemas
class InvoiceBase(BaseModel):
    client_id: UUID
    issue_date: date = Field(default_factory=date.today)
    due_date: date
    discount: Decimal = Field(Decimal("0"), ge=0, le=100, max_digits=5, decimal_places=2, description="Descuento en %")
    vat: Decimal = Field(Decimal("0"), ge=0, le=100, max_digits=5, decimal_places=2, description="IVA en %")
    notes: Optional[str] = None

    @model_validator(mode='after')
    def validate_due_date(self):
        if self.due_date and self.issue_date and self.due_date < self.issue_date:
            raise ValueError('La fecha de vencimiento no puede ser anterior a la fecha de emisión')
        return self


class InvoiceCreate(InvoiceBase):
    items: List[InvoiceItemCreate] = Field(default_factory=list)


class InvoiceUpdate(InvoiceBase):
    """Reemplazo completo de la factura; el estado lo fija quien edita"""
    issue_date: date
    items: List[InvoiceItemUpdate] = Field(default_factory=list)
    status: InvoiceStatus


class InvoiceOut(BaseModel):
    id: UUID
    number: str
    client_id: UUID
    client_name: str
    issue_date: date
    due_date: date
    discount: Decimal
    vat: Decimal
    sub_total: Decimal
    discount_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal
    status: InvoiceStatus
    amount_paid: Decimal
    balance_due: Decimal
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceDetail(InvoiceOut):
    """Esquema detallado que incluye líneas y pagos"""
    items: List[InvoiceItemOut]
    payments: List['PaymentOut'] = []

    model_config = ConfigDict(from_attributes=True)


class InvoiceStatusCount(BaseModel):
    status: InvoiceStatus
    count: int


class InvoiceFilters(BaseModel):
    """Filtros para búsqueda de facturas"""
    status: Optional[InvoiceStatus] = None
    client_id: Optional[UUID] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    search: Optional[str] = Field(None, description="Buscar en número o nombre del cliente")


class InvoiceList(BaseModel):
    invoices: List[InvoiceOut]
    total: int
    limit: int
    offset: int
    applied_filters: Optional[InvoiceFilters] = None
    counts_by_status: List[InvoiceStatusCount] = Field(default_factory=list)


# Payment Schemas
class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2, description="Monto debe ser mayor a 0")
    method: PaymentMethod
    payment_date: date = Field(default_factory=date.today)
    notes: Optional[str] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if v <= 0:
            raise ValueError('El monto del pago debe ser mayor a 0')
        return v


class PaymentOut(BaseModel):
    id: UUID
    invoice_id: UUID
    sequence: int
    amount: Decimal
    method: PaymentMethod
    payment_date: date
    notes: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NextInvoiceNumber(BaseModel):
    next_number: str
    prefix: str
    current_sequence: int


class InvoiceSummary(BaseModel):
    """Cifras globales de facturación"""
    total_invoices: int
    total_invoiced: Decimal
    total_collected: Decimal
    total_outstanding: Decimal
    counts_by_status: List[InvoiceStatusCount]


# Presentation collaborator
class CompanySettingsOut(BaseModel):
    """Datos de la empresa que acompañan a la factura al renderizarla"""
    company_name: str
    address: str
    email: str
    phone: str
    tax_id: str
    currency: str
    template: str


class InvoiceDocument(BaseModel):
    """Factura, cliente y ajustes listos para la capa de presentación"""
    invoice: InvoiceDetail
    client: ClientOut
    settings: CompanySettingsOut


# Forward reference resolution
InvoiceDetail.model_rebuild()
