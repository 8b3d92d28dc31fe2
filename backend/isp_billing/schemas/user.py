"""
Schemas Pydantic per l'entità User
Progetto: ISP Billing (Gestionale ISP)
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from isp_billing.models.user import UserRole


class UserLogin(BaseModel):
    """Credenziali del personale."""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=100)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()


class UserCreate(BaseModel):
    """Creazione di un utente del personale (solo amministratori)."""

    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8, max_length=100)
    full_name: str = Field(..., min_length=1, max_length=100)
    role: UserRole = Field(default=UserRole.NORMAL)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        v = v.strip()
        if " " in v:
            raise ValueError("Il nome utente non può contenere spazi")
        return v


class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, min_length=8, max_length=100)


class UserResponse(BaseModel):
    """Dati pubblici di un utente."""

    id: UUID
    username: str
    full_name: str = Field(..., serialization_alias="fullName")
    role: str
    is_active: bool = Field(..., serialization_alias="isActive")
    created_at: datetime = Field(..., serialization_alias="createdAt")

    model_config = ConfigDict(from_attributes=True)


__all__ = ["UserLogin", "UserCreate", "UserUpdate", "UserResponse"]
