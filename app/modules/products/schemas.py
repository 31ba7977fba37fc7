from pydantic import BaseModel, ConfigDict, Field, field_validator
from decimal import Decimal
from uuid import UUID
from typing import Optional, List
from datetime import datetime


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    reference: str = Field(..., min_length=1, max_length=50, description="Referencia interna única")
    description: Optional[str] = Field(None, max_length=255)
    unit_price: Decimal = Field(..., ge=0, max_digits=15, decimal_places=2, description="Precio unitario")

    @field_validator('name', 'reference')
    @classmethod
    def strip_text(cls, v):
        if not v.strip():
            raise ValueError('El campo no puede estar vacío')
        return v.strip()


class ProductCreate(ProductBase):
    quantity_in_stock: int = Field(0, ge=0, description="Stock inicial")


class ProductUpdate(BaseModel):
    """Actualización parcial; quantity_in_stock fija el stock (reposición manual)"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    reference: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=255)
    unit_price: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    quantity_in_stock: Optional[int] = Field(None, ge=0)


class ProductOut(ProductBase):
    id: UUID
    quantity_in_stock: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaginatedProductResponse(BaseModel):
    """Respuesta paginada de productos"""
    data: List[ProductOut]
    total: int
    page: int
    limit: int
    hasNext: bool
    hasPrev: bool


class LowStockProduct(BaseModel):
    id: UUID
    name: str
    reference: str
    quantity_in_stock: int

    model_config = ConfigDict(from_attributes=True)


class LowStockResponse(BaseModel):
    products: List[LowStockProduct]
    threshold: int
    total_count: int
