"""
Modelos SQLAlchemy para el módulo de Clientes

Los clientes solo se referencian desde las facturas: el motor de facturación
nunca los modifica, copia su nombre en la factura al momento de emitirla.
"""

from app.database.database import Base
from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship
from app.common.mixins import BaseMixin


class Client(Base, BaseMixin):
    __tablename__ = "clients"

    # Información básica
    name = Column(String(200), nullable=False, index=True)
    email = Column(String(100), nullable=True, index=True)
    phone = Column(String(50), nullable=True)

    # Dirección
    address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)

    # Identificación fiscal (NIF, SIRET, NIT...)
    tax_id = Column(String(50), nullable=True, index=True)

    notes = Column(Text, nullable=True)

    # Relationships
    invoices = relationship("Invoice", back_populates="client")
