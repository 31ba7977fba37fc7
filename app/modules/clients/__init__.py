"""
Módulo de Clientes

Catálogo de clientes referenciados por las facturas. El motor de facturación
solo los lee; cualquier cambio pasa por ClientService.
"""

from .models import Client
from .schemas import ClientCreate, ClientUpdate, ClientOut, ClientList
from .service import ClientService
from .router import router

__all__ = [
    "Client",
    "ClientCreate", "ClientUpdate", "ClientOut", "ClientList",
    "ClientService",
    "router"
]
