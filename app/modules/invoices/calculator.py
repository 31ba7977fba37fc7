"""
Cálculo de líneas y totales de factura.

Funciones puras: no consultan la base de datos ni mutan sus argumentos.
Todos los montos se redondean a centavos (ROUND_HALF_UP) en cada paso, de modo
que recalcular a partir de una factura guardada reproduce exactamente sus totales.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Sequence, Union
from uuid import UUID

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, str]


def to_money(value: Number) -> Decimal:
    """Convierte a Decimal con dos decimales"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedItem:
    """Línea con precio y snapshot del producto"""
    product_id: UUID
    product_name: str
    reference: str
    quantity: int
    unit_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class InvoiceTotals:
    """Totales calculados de la factura"""
    sub_total: Decimal
    discount_amount: Decimal
    vat_amount: Decimal
    total_amount: Decimal


def price_item(product_id: UUID, product_name: str, reference: str,
               quantity: int, unit_price: Number) -> PricedItem:
    unit_price = to_money(unit_price)
    return PricedItem(
        product_id=product_id,
        product_name=product_name,
        reference=reference,
        quantity=quantity,
        unit_price=unit_price,
        total=to_money(unit_price * quantity),
    )


def calculate_totals(line_totals: Sequence[Number], discount: Number = 0, vat: Number = 0) -> InvoiceTotals:
    """
    Calcular totales a partir de los totales de línea.

    Args:
        line_totals: total de cada línea (quantity * unit_price)
        discount: porcentaje de descuento, 0-100
        vat: porcentaje de IVA sobre el monto con descuento, 0-100

    Returns:
        InvoiceTotals donde total_amount = sub_total - discount_amount + vat_amount
    """
    discount = Decimal(str(discount))
    vat = Decimal(str(vat))
    if not (0 <= discount <= HUNDRED) or not (0 <= vat <= HUNDRED):
        raise ValueError("Los porcentajes de descuento e IVA deben estar entre 0 y 100")

    sub_total = to_money(sum((Decimal(str(t)) for t in line_totals), Decimal("0")))
    discount_amount = to_money(sub_total * discount / HUNDRED)
    vat_amount = to_money((sub_total - discount_amount) * vat / HUNDRED)
    total_amount = sub_total - discount_amount + vat_amount

    return InvoiceTotals(
        sub_total=sub_total,
        discount_amount=discount_amount,
        vat_amount=vat_amount,
        total_amount=total_amount,
    )


def price_invoice(items: Sequence[PricedItem], discount: Number = 0,
                  vat: Number = 0) -> InvoiceTotals:
    return calculate_totals([item.total for item in items], discount, vat)


def recalculate_invoice(invoice) -> InvoiceTotals:
    """Recalcular totales de una factura persistida desde sus líneas y tasas"""
    line_totals: List[Decimal] = [to_money(item.unit_price * item.quantity) for item in invoice.items]
    return calculate_totals(line_totals, invoice.discount, invoice.vat)
