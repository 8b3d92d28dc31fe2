"""
Schemas Pydantic per l'entità Client
Progetto: ISP Billing (Gestionale ISP)
"""

import datetime
import re
import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from isp_billing.schemas.common import PageMeta


# -------------------------------------------------------------------
# Funzioni di normalizzazione
# -------------------------------------------------------------------

def normalize_id_number(value: Optional[str]) -> Optional[str]:
    """Cédula in maiuscolo, senza spazi. Stringa vuota → None."""
    if value is None:
        return None
    value = re.sub(r"\s+", "", value).upper()
    return value or None


def normalize_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


# -------------------------------------------------------------------
# Schemas
# -------------------------------------------------------------------

class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150, description="Nome completo")
    phone: Optional[str] = Field(None, max_length=30, description="Telefono")
    id_number: Optional[str] = Field(
        None,
        max_length=30,
        description="Numero di cédula",
        serialization_alias="idNumber",
    )
    email: Optional[EmailStr] = Field(None, description="Email")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("Il nome non può essere vuoto")
        return v

    @field_validator("id_number", mode="before")
    @classmethod
    def clean_id_number(cls, v):
        return normalize_id_number(v) if isinstance(v, str) else v

    @field_validator("phone", mode="before")
    @classmethod
    def clean_phone(cls, v):
        return normalize_phone(v) if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v


class ClientCreate(ClientBase):
    """Creazione cliente. Se code è omesso viene generato (CLI-NNN)."""

    code: Optional[str] = Field(None, max_length=20, description="Codice cliente")

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().upper()
        return v or None


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    id_number: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None

    @field_validator("id_number", mode="before")
    @classmethod
    def clean_id_number(cls, v):
        return normalize_id_number(v) if isinstance(v, str) else v

    @field_validator("phone", mode="before")
    @classmethod
    def clean_phone(cls, v):
        return normalize_phone(v) if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v


class ClientRead(ClientBase):
    id: uuid.UUID
    code: str
    is_active: bool = Field(..., serialization_alias="isActive")
    invoice_count: int = Field(..., serialization_alias="invoiceCount")
    created_at: datetime.datetime = Field(..., serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True)


class ClientList(PageMeta):
    items: list[ClientRead] = Field(default_factory=list)


# -------------------------------------------------------------------
# Login self-service
# -------------------------------------------------------------------

class ClientLogin(BaseModel):
    """Login del cliente tramite codice cliente."""

    code: Optional[str] = Field(None, max_length=20, description="Codice cliente")


class ClientLoginResponse(BaseModel):
    access_token: str = Field(..., serialization_alias="token")
    token_type: str = Field(default="bearer", serialization_alias="tokenType")
    expires_at: datetime.datetime = Field(..., serialization_alias="expiresAt")
    client: ClientRead


__all__ = [
    "ClientCreate",
    "ClientUpdate",
    "ClientRead",
    "ClientList",
    "ClientLogin",
    "ClientLoginResponse",
]
