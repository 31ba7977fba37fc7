"""
Acceso a productos para el catálogo y la reconciliación de stock.

Nunca hacen commit: la transacción pertenece al servicio que las invoca.
"""

from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from app.modules.products.models import Product


class ProductCrud:
    """Operaciones de base de datos sobre productos"""

    def __init__(self, db: Session):
        self.db = db

    def get_products(self, name: Optional[str] = None, limit: int = 50, offset: int = 0) -> Tuple[List[Product], int]:
        query = self.db.query(Product)
        if name:
            pattern = f"%{name}%"
            query = query.filter(or_(Product.name.ilike(pattern), Product.reference.ilike(pattern)))
        total = query.count()
        products = query.order_by(Product.name).offset(offset).limit(limit).all()
        return products, total

    def get_low_stock(self, threshold: int) -> List[Product]:
        return self.db.query(Product).filter(
            Product.quantity_in_stock <= threshold
        ).order_by(Product.quantity_in_stock, Product.name).all()

    def get_by_id(self, product_id: UUID) -> Optional[Product]:
        return self.db.query(Product).filter(Product.id == product_id).first()

    def get_by_reference(self, reference: str, exclude_id: Optional[UUID] = None) -> Optional[Product]:
        query = self.db.query(Product).filter(Product.reference == reference)
        if exclude_id:
            query = query.filter(Product.id != exclude_id)
        return query.first()

    def get_many_for_update(self, product_ids: Iterable[UUID]) -> Dict[UUID, Product]:
        """
        Bloquea (SELECT ... FOR UPDATE) los productos indicados, en orden de id
        para que dos operaciones concurrentes no se bloqueen mutuamente.
        """
        ids = sorted(set(product_ids), key=str)
        if not ids:
            return {}
        products = self.db.query(Product).filter(
            Product.id.in_(ids)
        ).order_by(Product.id).with_for_update().populate_existing().all()
        return {product.id: product for product in products}

    def add(self, data: dict) -> Product:
        product = Product(**data)
        self.db.add(product)
        self.db.flush()
        return product

    def update(self, product: Product, data: dict) -> Product:
        for field, value in data.items():
            setattr(product, field, value)
        self.db.flush()
        return product

    def delete(self, product: Product) -> None:
        self.db.delete(product)
        self.db.flush()

    def is_referenced_by_invoices(self, product_id: UUID) -> bool:
        from app.modules.invoices.models import InvoiceItem
        return self.db.query(InvoiceItem.id).filter(InvoiceItem.product_id == product_id).first() is not None
