"""
Dependency Injection per autenticazione
Progetto: ISP Billing (Gestionale ISP)

Dependency FastAPI che applicano le RolePolicy di core/security.py
ai token del personale e dei clienti.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.exceptions import AuthenticationError
from isp_billing.core.security import (
    TOKEN_TYPE_CLIENT,
    TOKEN_TYPE_STAFF,
    RolePolicy,
    decode_token,
)
from isp_billing.models.client import Client
from isp_billing.models.user import CLIENT_ROLE, User, UserRole

# Estrae il token dall'header Authorization
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/movil/auth/login",
    auto_error=False,
)

# ------------------------------------------------------------
# Policy
# ------------------------------------------------------------
STAFF_POLICY = RolePolicy.of("staff", [UserRole.ADMIN, UserRole.NORMAL, UserRole.CASHIER])
BILLING_POLICY = RolePolicy.of("billing", [UserRole.ADMIN, UserRole.CASHIER])
ADMIN_POLICY = RolePolicy.of("admin", [UserRole.ADMIN])
CLIENT_POLICY = RolePolicy.of("client", [CLIENT_ROLE])


def _parse_uuid(value: Optional[str]) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise AuthenticationError("Identificativo non valido nel token")


async def load_staff_user(db: AsyncSession, token: Optional[str]) -> User:
    """
    Verifica un token del personale e carica l'utente attivo.

    Usata sia dalle dependency API sia dalla sessione del pannello web.

    Raises:
        AuthenticationError: token mancante/invalido o utente inesistente/disattivato
    """
    if not token:
        raise AuthenticationError("Token di autenticazione non fornito")

    token_data = decode_token(token, expected_type=TOKEN_TYPE_STAFF)
    user = await db.get(User, _parse_uuid(token_data.sub))

    if user is None:
        raise AuthenticationError("Utente non trovato")
    if not user.is_active:
        raise AuthenticationError("Utente disattivato")
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency: utente del personale autenticato dal bearer token."""
    return await load_staff_user(db, token)


def require_role(policy: RolePolicy):
    """
    Factory di dependency che applica una RolePolicy all'utente corrente.

    Example:
        @router.delete("/{payment_id}")
        async def delete_payment(user: User = Depends(require_role(ADMIN_POLICY))):
            ...
    """
    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)]
    ) -> User:
        policy.enforce(current_user.role)
        return current_user

    return role_checker


async def get_current_client(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Client:
    """
    Dependency: cliente autenticato dal token self-service.

    Il cliente deve esistere ed essere ancora attivo.
    """
    if not token:
        raise AuthenticationError("Token di autenticazione non fornito")

    token_data = decode_token(token, expected_type=TOKEN_TYPE_CLIENT)
    CLIENT_POLICY.enforce(token_data.role)

    result = await db.execute(
        select(Client).where(Client.id == _parse_uuid(token_data.client_id))
    )
    client = result.scalar_one_or_none()

    if client is None or not client.is_active:
        raise AuthenticationError("Cliente non trovato o disattivato")
    return client


# Type aliases per uso comune
CurrentStaff = Annotated[User, Depends(require_role(STAFF_POLICY))]
BillingUser = Annotated[User, Depends(require_role(BILLING_POLICY))]
AdminUser = Annotated[User, Depends(require_role(ADMIN_POLICY))]
CurrentClient = Annotated[Client, Depends(get_current_client)]


__all__ = [
    "get_current_user",
    "get_current_client",
    "load_staff_user",
    "require_role",
    "oauth2_scheme",
    "STAFF_POLICY",
    "BILLING_POLICY",
    "ADMIN_POLICY",
    "CLIENT_POLICY",
    "CurrentStaff",
    "BillingUser",
    "AdminUser",
    "CurrentClient",
]
