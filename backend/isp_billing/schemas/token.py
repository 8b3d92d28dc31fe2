"""
Schemas Pydantic per l'autenticazione JWT
Progetto: ISP Billing (Gestionale ISP)
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TokenResponse(BaseModel):
    """Risposta del login del personale."""

    access_token: str = Field(..., description="Token di accesso JWT")
    token_type: str = Field(default="bearer", description="Tipo di token")
    expires_at: datetime = Field(..., description="Scadenza del token")
    username: str
    full_name: str
    role: str


class TokenPayload(BaseModel):
    """
    Claim rilevanti di un token JWT già verificato.

    Attributes:
        sub: ID dell'utente o del cliente
        role: Ruolo (claim "Rol": Administrador, Normal, Caja, Cliente)
        type: staff, client o pdf
        exp: Scadenza
        full_name: Nome completo (claim "NombreCompleto", o "Nombre" per i clienti)
        username: Nome utente (solo token del personale)
        client_id: ID cliente (claim "ClienteId", solo token clienti)
        code: Codice cliente (claim "Codigo", solo token clienti)
        invoice_id: Fattura autorizzata (solo token PDF)
    """

    sub: str = Field(..., description="ID del soggetto")
    role: Optional[str] = Field(default=None, description="Ruolo")
    type: str = Field(..., description="Tipo di token")
    exp: datetime = Field(..., description="Data/ora di scadenza")
    full_name: Optional[str] = None
    username: Optional[str] = None
    client_id: Optional[str] = None
    code: Optional[str] = None
    invoice_id: Optional[str] = None


__all__ = [
    "TokenResponse",
    "TokenPayload",
]
