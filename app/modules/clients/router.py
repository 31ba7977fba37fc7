"""
Router para el módulo de Clientes
"""

from fastapi import APIRouter, Query, status
from typing import Optional
from uuid import UUID

from app.dependencies.dbDependecies import db_dependency
from app.modules.clients.service import ClientService
from app.modules.clients.schemas import ClientCreate, ClientUpdate, ClientOut, ClientList

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
def create_client(client_data: ClientCreate, db: db_dependency):
    """Crear un nuevo cliente"""
    return ClientService(db).create_client(client_data)


@router.get("/", response_model=ClientList)
def list_clients(
    db: db_dependency,
    limit: int = Query(100, ge=1, le=500, description="Número máximo de clientes a retornar"),
    offset: int = Query(0, ge=0, description="Número de clientes a omitir"),
    search: Optional[str] = Query(None, description="Búsqueda por nombre, email o identificación fiscal"),
):
    """Listar clientes"""
    return ClientService(db).get_clients(search=search, limit=limit, offset=offset)


@router.get("/{client_id}", response_model=ClientOut)
def get_client(client_id: UUID, db: db_dependency):
    return ClientService(db).get_client_by_id(client_id)


@router.patch("/{client_id}", response_model=ClientOut)
def update_client(client_id: UUID, client_update: ClientUpdate, db: db_dependency):
    """
    Actualizar un cliente

    Las facturas ya emitidas conservan el nombre de cliente con el que se crearon.
    """
    return ClientService(db).update_client(client_id, client_update)


@router.delete("/{client_id}")
def delete_client(client_id: UUID, db: db_dependency):
    """Eliminar un cliente (solo si no tiene facturas)"""
    return ClientService(db).delete_client(client_id)
