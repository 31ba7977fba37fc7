"""
Persistencia de facturas, líneas y numeración.

Nunca hacen commit: la transacción pertenece al servicio que las invoca.
"""

from sqlalchemy.orm import Session, selectinload
from sqlalchemy import desc, func, or_
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from app.modules.invoices.calculator import InvoiceTotals, PricedItem
from app.modules.invoices.models import Invoice, InvoiceItem, InvoiceSequence, InvoiceStatus
from app.modules.invoices.schemas import InvoiceFilters


class InvoiceCrud:
    """Operaciones de base de datos sobre facturas"""

    def __init__(self, db: Session):
        self.db = db

    # ----------- lectura -----------
    def get_invoice_by_id(self, invoice_id: UUID) -> Optional[Invoice]:
        return self.db.query(Invoice).options(
            selectinload(Invoice.items),
            selectinload(Invoice.payments),
            selectinload(Invoice.client)
        ).filter(Invoice.id == invoice_id).first()

    def get_for_update(self, invoice_id: UUID) -> Optional[Invoice]:
        """Bloquea la fila de la factura hasta el fin de la transacción"""
        return self.db.query(Invoice).filter(
            Invoice.id == invoice_id
        ).with_for_update().populate_existing().first()

    def _filtered_query(self, filters: InvoiceFilters, include_status: bool = True):
        query = self.db.query(Invoice)
        if include_status and filters.status:
            query = query.filter(Invoice.status == filters.status)
        if filters.client_id:
            query = query.filter(Invoice.client_id == filters.client_id)
        if filters.date_from:
            query = query.filter(Invoice.issue_date >= filters.date_from)
        if filters.date_to:
            query = query.filter(Invoice.issue_date <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.filter(or_(
                Invoice.number.ilike(pattern),
                Invoice.client_name.ilike(pattern)
            ))
        return query

    def get_invoices(self, filters: InvoiceFilters, limit: int = 100, offset: int = 0) -> Tuple[List[Invoice], int]:
        query = self._filtered_query(filters).order_by(desc(Invoice.issue_date), desc(Invoice.number))
        total = query.count()
        return query.offset(offset).limit(limit).all(), total

    def count_by_status(self, filters: Optional[InvoiceFilters] = None) -> Dict[InvoiceStatus, int]:
        """Conteo por estado con los mismos filtros, excepto el de estado"""
        query = self._filtered_query(filters or InvoiceFilters(), include_status=False)
        rows = query.with_entities(Invoice.status, func.count(Invoice.id)).group_by(Invoice.status).all()
        counts = {st: 0 for st in InvoiceStatus}
        for st, count in rows:
            counts[InvoiceStatus(st)] = count
        return counts

    def sum_amounts(self) -> Tuple[int, object, object]:
        return self.db.query(
            func.count(Invoice.id),
            func.coalesce(func.sum(Invoice.total_amount), 0),
            func.coalesce(func.sum(Invoice.amount_paid), 0)
        ).one()

    # ----------- numeración -----------
    def _get_sequence(self, prefix: str, lock: bool = False) -> Optional[InvoiceSequence]:
        query = self.db.query(InvoiceSequence).filter(InvoiceSequence.prefix == prefix)
        if lock:
            query = query.with_for_update()
        return query.first()

    def peek_sequence(self, prefix: str) -> int:
        sequence = self._get_sequence(prefix)
        return sequence.current_number if sequence else 0

    def create_sequence(self, prefix: str) -> None:
        """
        Inserta la secuencia del prefijo si todavía no existe.

        Dos creaciones simultáneas pueden llegar aquí a la vez; la segunda
        inserción se ignora (ON CONFLICT DO NOTHING) en lugar de fallar.
        """
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            self.db.add(InvoiceSequence(prefix=prefix, current_number=0))
            self.db.flush()
            return
        stmt = insert(InvoiceSequence).values(
            id=uuid4(), prefix=prefix, current_number=0
        ).on_conflict_do_nothing(index_elements=[InvoiceSequence.prefix])
        self.db.execute(stmt)

    def next_number(self, prefix: str) -> str:
        """Consume el siguiente número de la secuencia del prefijo"""
        sequence = self._get_sequence(prefix, lock=True)
        if not sequence:
            self.create_sequence(prefix)
            sequence = self._get_sequence(prefix, lock=True)
        sequence.current_number += 1
        return format_invoice_number(prefix, sequence.current_number)

    # ----------- escritura -----------
    def _build_items(self, items: Sequence[PricedItem]) -> List[InvoiceItem]:
        return [
            InvoiceItem(
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                reference=item.reference,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total
            )
            for position, item in enumerate(items)
        ]

    def add_invoice(self, data: dict, items: Sequence[PricedItem], totals: InvoiceTotals) -> Invoice:
        invoice = Invoice(
            **data,
            sub_total=totals.sub_total,
            discount_amount=totals.discount_amount,
            vat_amount=totals.vat_amount,
            total_amount=totals.total_amount
        )
        invoice.items = self._build_items(items)
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def update_invoice(self, invoice: Invoice, data: dict, items: Sequence[PricedItem], totals: InvoiceTotals) -> Invoice:
        for field, value in data.items():
            setattr(invoice, field, value)
        invoice.sub_total = totals.sub_total
        invoice.discount_amount = totals.discount_amount
        invoice.vat_amount = totals.vat_amount
        invoice.total_amount = totals.total_amount
        # Las líneas se reemplazan completas (delete-orphan elimina las anteriores)
        invoice.items = self._build_items(items)
        self.db.flush()
        return invoice

    def delete_invoice(self, invoice: Invoice) -> None:
        self.db.delete(invoice)
        self.db.flush()


def format_invoice_number(prefix: str, number: int) -> str:
    return f"{prefix}{number:06d}"
