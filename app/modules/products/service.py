from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from uuid import UUID
from typing import Optional
import logging

from app.common.exceptions import InvoicingError, PayloadValidationError, ProductNotFound, StorageError
from app.modules.products.crud import ProductCrud
from app.modules.products.models import Product
from app.modules.products.schemas import ProductCreate, ProductUpdate, LowStockResponse, LowStockProduct

logger = logging.getLogger(__name__)


def get_all_products(db: Session, name: Optional[str] = None, limit: int = 50, offset: int = 0):
    """Listado paginado de productos con búsqueda por nombre o referencia"""
    products, total = ProductCrud(db).get_products(name=name, limit=limit, offset=offset)

    page = (offset // limit) + 1 if limit > 0 else 1
    return {
        "data": products,
        "total": total,
        "page": page,
        "limit": limit,
        "hasNext": (offset + limit) < total,
        "hasPrev": page > 1,
    }


def get_product_by_id(db: Session, product_id: UUID) -> Product:
    product = ProductCrud(db).get_by_id(product_id)
    if not product:
        raise ProductNotFound(product_id)
    return product


def get_low_stock_products(db: Session, threshold: int = 5) -> LowStockResponse:
    """Productos con stock igual o inferior al umbral"""
    products = ProductCrud(db).get_low_stock(threshold)
    return LowStockResponse(
        products=[LowStockProduct.model_validate(p) for p in products],
        threshold=threshold,
        total_count=len(products)
    )


def create_product(db: Session, data: ProductCreate) -> Product:
    crud = ProductCrud(db)
    try:
        if crud.get_by_reference(data.reference):
            raise PayloadValidationError(f"Ya existe un producto con la referencia {data.reference}.")
        product = crud.add(data.model_dump())
        db.commit()
        db.refresh(product)
        logger.info(f"Product created: {product.reference} stock={product.quantity_in_stock}")
        return product
    except InvoicingError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error creating product {data.reference}: {e}")
        raise PayloadValidationError(f"Ya existe un producto con la referencia {data.reference}.")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating product: {e}", exc_info=True)
        raise StorageError("Error de la base de datos: no se pudo crear el producto.")


def update_product(db: Session, product_id: UUID, data: ProductUpdate) -> Product:
    """
    Actualiza un producto.

    Cambiar nombre o referencia no altera las facturas emitidas: sus líneas
    guardan una copia de esos datos.
    """
    crud = ProductCrud(db)
    try:
        product = get_product_by_id(db, product_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        reference = update_data.get("reference")
        if reference and crud.get_by_reference(reference, exclude_id=product_id):
            raise PayloadValidationError(f"Ya existe un producto con la referencia {reference}.")

        if "quantity_in_stock" in update_data:
            logger.info(
                f"Manual stock adjustment for product {product.reference}: "
                f"{product.quantity_in_stock} -> {update_data['quantity_in_stock']}"
            )

        crud.update(product, update_data)
        db.commit()
        db.refresh(product)
        return product
    except InvoicingError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error updating product {product_id}: {e}", exc_info=True)
        raise StorageError("Error de la base de datos: no se pudo actualizar el producto.")


def delete_product(db: Session, product_id: UUID):
    """Elimina un producto que no aparece en ninguna factura"""
    crud = ProductCrud(db)
    try:
        product = get_product_by_id(db, product_id)
        if crud.is_referenced_by_invoices(product_id):
            raise PayloadValidationError(
                f"El producto {product.name} figura en facturas existentes y no puede eliminarse."
            )
        crud.delete(product)
        db.commit()
        return {"message": "Producto eliminado exitosamente"}
    except InvoicingError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error deleting product {product_id}: {e}", exc_info=True)
        raise StorageError("Error de la base de datos: no se pudo eliminar el producto.")
