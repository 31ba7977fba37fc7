"""
Unidad de trabajo con reintento para operaciones que mueven stock.

La operación recibida hace todas sus lecturas con bloqueo y sus escrituras
dentro de la sesión; aquí se confirma o se revierte completa.
"""
from typing import Callable, TypeVar
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.common.exceptions import InvoicingError, StockConflict, StorageError
from app.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_in_transaction(db: Session, action: str, operation: Callable[[], T], retries: int = None) -> T:
    """
    Ejecuta `operation` y hace commit; revierte todo ante cualquier error.

    Un conflicto de versión (StaleDataError) reintenta la operación completa
    hasta `retries` veces y luego falla con StockConflict. Los errores de negocio
    se propagan tal cual; los de base de datos se reportan como StorageError.
    """
    attempts = retries or settings.STOCK_CONFLICT_RETRIES
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            db.commit()
            return result
        except StaleDataError as e:
            db.rollback()
            logger.warning(f"Concurrent stock update while trying to {action} (attempt {attempt}/{attempts}): {e}")
        except InvoicingError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error while trying to {action}: {e}", exc_info=True)
            raise StorageError(f"Error de la base de datos: no se pudo {action}.")
        except Exception:
            db.rollback()
            raise
    raise StockConflict()
