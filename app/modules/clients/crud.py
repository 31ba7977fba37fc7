"""
Operaciones de base de datos para Clientes

Nunca hacen commit: la transacción pertenece al servicio que las invoca.
"""

from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import List, Optional, Tuple
from uuid import UUID

from app.modules.clients.models import Client


class ClientCrud:
    """Operaciones CRUD para clientes"""

    def __init__(self, db: Session):
        self.db = db

    def get_clients(self, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> Tuple[List[Client], int]:
        query = self.db.query(Client)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Client.name.ilike(pattern),
                Client.email.ilike(pattern),
                Client.tax_id.ilike(pattern)
            ))
        total = query.count()
        clients = query.order_by(Client.name).offset(offset).limit(limit).all()
        return clients, total

    def get_by_id(self, client_id: UUID) -> Optional[Client]:
        return self.db.query(Client).filter(Client.id == client_id).first()

    def add(self, data: dict) -> Client:
        client = Client(**data)
        self.db.add(client)
        self.db.flush()
        return client

    def update(self, client: Client, data: dict) -> Client:
        for field, value in data.items():
            setattr(client, field, value)
        self.db.flush()
        return client

    def delete(self, client: Client) -> None:
        self.db.delete(client)
        self.db.flush()
