"""
Errores de negocio del módulo de facturación.

Cada error lleva un `message` pensado para mostrarse tal cual al usuario final.
Los handlers registrados en app.main los convierten en `{"message": ...}`.
"""
from decimal import Decimal
from typing import Optional, Union

from fastapi import HTTPException, status


class InvoicingError(HTTPException):
    """Base de todos los errores recuperables de la facturación"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "No se pudo completar la operación."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(status_code=self.status_code, detail=self.message)


class PayloadValidationError(InvoicingError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Algunos campos son inválidos."


class NotFoundError(InvoicingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Registro no encontrado."


class ClientNotFound(NotFoundError):
    default_message = "Cliente no encontrado."


class ProductNotFound(NotFoundError):
    default_message = "Producto no encontrado."

    def __init__(self, product_id=None):
        message = f"Producto no encontrado: {product_id}" if product_id else None
        super().__init__(message)
        self.product_id = product_id


class InvoiceNotFound(NotFoundError):
    default_message = "Factura no encontrada."


class InsufficientStock(InvoicingError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_name: str, available: Union[int, Decimal], requested: Union[int, Decimal]):
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Stock insuficiente para {product_name}. "
            f"Disponible: {available}, Solicitado: {requested}."
        )


class StockConflict(InvoicingError):
    status_code = status.HTTP_409_CONFLICT
    default_message = (
        "El stock de uno o más productos fue modificado por otra operación. "
        "Intente nuevamente."
    )


class StorageError(InvoicingError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Error de la base de datos: no se pudo completar la operación."
