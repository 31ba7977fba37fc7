"""
Esquemas Pydantic para el módulo de Clientes
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
import re


EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


def _validate_email(v):
    if v and v.strip():
        if not re.match(EMAIL_PATTERN, v.strip()):
            raise ValueError('Email debe tener formato válido')
        return v.strip()
    return None


class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nombre o razón social")
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    tax_id: Optional[str] = Field(None, max_length=50, description="Identificación fiscal")
    notes: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError('El nombre no puede estar vacío')
        return v.strip()

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    tax_id: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        return _validate_email(v)


class ClientOut(ClientBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ClientList(BaseModel):
    clients: List[ClientOut]
    total: int
    limit: int
    offset: int
