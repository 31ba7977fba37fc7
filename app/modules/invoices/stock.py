"""
Reconciliación de stock para la creación, edición y eliminación de facturas.

El trabajo se divide en dos fases:
- plan_*: valida contra el stock bloqueado y produce un StockPlan en memoria
  (delta neto por producto). No toca ningún producto.
- apply: aplica el plan completo. Solo se llama cuando todas las líneas
  fueron validadas, así una factura rechazada nunca deja stock a medias.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.common.exceptions import InsufficientStock, ProductNotFound
from app.modules.products.crud import ProductCrud
from app.modules.products.models import Product

logger = logging.getLogger(__name__)

# (product_id, quantity)
LineQuantity = Tuple[UUID, int]


def aggregate_quantities(lines: Iterable[LineQuantity]) -> "OrderedDict[UUID, int]":
    """Suma cantidades por producto conservando el orden de aparición"""
    totals: "OrderedDict[UUID, int]" = OrderedDict()
    for product_id, quantity in lines:
        totals[product_id] = totals.get(product_id, 0) + int(quantity)
    return totals


@dataclass
class StockPlan:
    """Delta neto de stock por producto; negativo = salida"""
    deltas: Dict[UUID, int] = field(default_factory=dict)

    def changed_product_ids(self):
        return [product_id for product_id, delta in self.deltas.items() if delta != 0]

    def is_empty(self) -> bool:
        return not self.changed_product_ids()


def plan_create(requested: Iterable[LineQuantity], products: Mapping[UUID, Product]) -> StockPlan:
    """Cada línea consume su cantidad; falla si algún producto no alcanza"""
    plan = StockPlan()
    for product_id, required in aggregate_quantities(requested).items():
        product = products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if product.quantity_in_stock < required:
            raise InsufficientStock(product.name, product.quantity_in_stock, required)
        plan.deltas[product_id] = -required
    return plan


def plan_update(original: Iterable[LineQuantity], requested: Iterable[LineQuantity],
                products: Mapping[UUID, Product]) -> StockPlan:
    """
    Devuelve virtualmente al stock las cantidades de la factura original y
    valida las nuevas cantidades contra ese disponible ajustado.

    Ej: stock 10, la factura usaba 3, la edición pide 5 -> disponible 13, stock final 8.
    """
    returned = aggregate_quantities(original)
    wanted = aggregate_quantities(requested)

    for product_id, quantity in wanted.items():
        product = products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        available = product.quantity_in_stock + returned.get(product_id, 0)
        if available < quantity:
            raise InsufficientStock(product.name, available, quantity)

    plan = StockPlan()
    for product_id in list(returned) + [pid for pid in wanted if pid not in returned]:
        if product_id not in products:
            # El producto original ya no existe: no hay stock al cual devolver
            continue
        delta = returned.get(product_id, 0) - wanted.get(product_id, 0)
        if delta != 0:
            plan.deltas[product_id] = delta
    return plan


def plan_delete(original: Iterable[LineQuantity], products: Mapping[UUID, Product]) -> StockPlan:
    """Devuelve al stock todas las cantidades; los productos inexistentes se omiten"""
    plan = StockPlan()
    for product_id, quantity in aggregate_quantities(original).items():
        if product_id not in products:
            logger.warning(f"Product {product_id} no longer exists, skipping stock restore of {quantity}")
            continue
        plan.deltas[product_id] = quantity
    return plan


class StockReconciler:
    """Bloquea productos y aplica planes de stock dentro de la transacción en curso"""

    def __init__(self, db: Session):
        self.db = db
        self.crud = ProductCrud(db)

    def lock_products(self, product_ids: Iterable[UUID]) -> Dict[UUID, Product]:
        return self.crud.get_many_for_update(product_ids)

    def apply(self, plan: StockPlan, products: Mapping[UUID, Product], reference: str) -> None:
        for product_id in plan.changed_product_ids():
            product = products[product_id]
            old_quantity = product.quantity_in_stock
            new_quantity = old_quantity + plan.deltas[product_id]
            if new_quantity < 0:
                # Un plan validado nunca llega aquí con stock negativo
                raise InsufficientStock(product.name, old_quantity, -plan.deltas[product_id])
            product.quantity_in_stock = new_quantity
            logger.info(f"Stock for product {product.reference} ({reference}): {old_quantity} -> {new_quantity}")
        # El flush dispara la verificación de versión (StaleDataError si otro proceso escribió)
        self.db.flush()
