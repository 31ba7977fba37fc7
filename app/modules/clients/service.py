from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Dict, Optional
from uuid import UUID
import logging

from app.common.exceptions import ClientNotFound, InvoicingError, PayloadValidationError, StorageError
from app.modules.clients.crud import ClientCrud
from app.modules.clients.models import Client
from app.modules.clients.schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """Servicio para la gestión de clientes"""

    def __init__(self, db: Session):
        self.db = db
        self.crud = ClientCrud(db)

    def create_client(self, client_data: ClientCreate) -> Client:
        """Crear un nuevo cliente"""
        try:
            client = self.crud.add(client_data.model_dump())
            self.db.commit()
            self.db.refresh(client)
            logger.info(f"Client created: {client.id} ({client.name})")
            return client
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating client: {e}", exc_info=True)
            raise StorageError("Error de la base de datos: no se pudo crear el cliente.")

    def get_clients(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> dict:
        """Listar clientes con búsqueda por nombre, email o identificación fiscal"""
        clients, total = self.crud.get_clients(search=search, limit=limit, offset=offset)
        return {"clients": clients, "total": total, "limit": limit, "offset": offset}

    def get_client_by_id(self, client_id: UUID) -> Client:
        client = self.crud.get_by_id(client_id)
        if not client:
            raise ClientNotFound()
        return client

    def update_client(self, client_id: UUID, client_update: ClientUpdate) -> Client:
        """Actualización parcial; las facturas emitidas conservan el nombre anterior"""
        try:
            client = self.get_client_by_id(client_id)
            update_data = client_update.model_dump(exclude_unset=True)
            if "name" in update_data and not (update_data["name"] or "").strip():
                raise PayloadValidationError("El nombre del cliente no puede estar vacío.")
            self.crud.update(client, update_data)
            self.db.commit()
            self.db.refresh(client)
            return client
        except InvoicingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating client {client_id}: {e}", exc_info=True)
            raise StorageError("Error de la base de datos: no se pudo actualizar el cliente.")

    def delete_client(self, client_id: UUID) -> Dict[str, str]:
        """Eliminar cliente sin facturas asociadas"""
        try:
            client = self.get_client_by_id(client_id)
            if client.invoices:
                raise PayloadValidationError(
                    f"El cliente {client.name} tiene {len(client.invoices)} factura(s) asociada(s) "
                    "y no puede eliminarse."
                )
            self.crud.delete(client)
            self.db.commit()
            logger.info(f"Client deleted: {client_id}")
            return {"message": "Cliente eliminado exitosamente"}
        except InvoicingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting client {client_id}: {e}", exc_info=True)
            raise StorageError("Error de la base de datos: no se pudo eliminar el cliente.")
