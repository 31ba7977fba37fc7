from fastapi import APIRouter, status, Query
from uuid import UUID
from typing import Optional

from app.dependencies.dbDependecies import db_dependency
from app.modules.products import service
from app.modules.products.schemas import (
    ProductCreate,
    ProductUpdate,
    ProductOut,
    PaginatedProductResponse,
    LowStockResponse
)

product_router = APIRouter(prefix="/products", tags=["Products"])


@product_router.post("/", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(data: ProductCreate, db: db_dependency):
    """Create a new product with its initial stock."""
    return service.create_product(db, data)


@product_router.get("/", response_model=PaginatedProductResponse)
def list_products(
    db: db_dependency,
    name: Optional[str] = Query(None, description="Buscar por nombre o referencia"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """List products with pagination."""
    return service.get_all_products(db, name=name, limit=limit, offset=offset)


@product_router.get("/low-stock", response_model=LowStockResponse)
def low_stock_products(
    db: db_dependency,
    threshold: int = Query(5, ge=0, description="Stock máximo a considerar bajo")
):
    """Products at or below the stock threshold."""
    return service.get_low_stock_products(db, threshold)


@product_router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: UUID, db: db_dependency):
    return service.get_product_by_id(db, product_id)


@product_router.patch("/{product_id}", response_model=ProductOut)
def update_product(product_id: UUID, data: ProductUpdate, db: db_dependency):
    """Partial update. Setting quantity_in_stock is a manual restock."""
    return service.update_product(db, product_id, data)


@product_router.delete("/{product_id}")
def delete_product(product_id: UUID, db: db_dependency):
    """Delete a product that no invoice references."""
    return service.delete_product(db, product_id)
