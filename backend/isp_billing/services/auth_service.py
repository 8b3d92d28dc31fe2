"""
Servizio per l'autenticazione
Progetto: ISP Billing (Gestionale ISP)

Business logic per:
- login del personale (username/password)
- login self-service dei clienti (codice cliente)
- gestione utenti del personale (solo amministratori)

Le password salvate con il vecchio hash SHA-256 vengono accettate
e sostituite con bcrypt al primo login riuscito.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.exceptions import (
    AuthenticationError,
    BusinessValidationError,
    ConflictError,
    DuplicateError,
    NotFoundError,
)
from isp_billing.core.security import (
    create_client_token,
    create_staff_token,
    hash_password,
    needs_rehash,
    verify_password,
)
from isp_billing.models.client import Client
from isp_billing.models.user import User, UserRole
from isp_billing.schemas.client import ClientLogin, ClientLoginResponse, ClientRead
from isp_billing.schemas.token import TokenResponse
from isp_billing.schemas.user import UserCreate, UserLogin, UserUpdate

logger = logging.getLogger(__name__)


class AuthService:
    """Servizio per la gestione dell'autenticazione."""

    async def login(self, db: AsyncSession, data: UserLogin) -> TokenResponse:
        """
        Autentica un utente del personale.

        Args:
            db: Sessione database
            data: Credenziali dell'utente

        Returns:
            TokenResponse con token JWT e dati dell'utente

        Raises:
            AuthenticationError: credenziali errate o utente disattivato
        """
        result = await db.execute(
            select(User).where(func.lower(User.username) == data.username.lower())
        )
        user = result.scalar_one_or_none()

        if user is None or not verify_password(data.password, user.hashed_password):
            logger.warning("Login fallito per l'utente %s", data.username)
            raise AuthenticationError("Nome utente o password non corretti")

        if not user.is_active:
            logger.warning("Login di un utente disattivato: %s", user.username)
            raise AuthenticationError("Utente disattivato")

        if needs_rehash(user.hashed_password):
            user.hashed_password = hash_password(data.password)
            await db.commit()
            logger.info("Password di %s aggiornata a bcrypt", user.username)

        token, expires_at = create_staff_token(
            str(user.id), user.role, user.full_name, user.username
        )
        logger.info("Login del personale: %s (%s)", user.username, user.role)

        return TokenResponse(
            access_token=token,
            token_type="bearer",
            expires_at=expires_at,
            username=user.username,
            full_name=user.full_name,
            role=user.role,
        )

    async def client_login(self, db: AsyncSession, data: ClientLogin) -> ClientLoginResponse:
        """
        Login self-service tramite codice cliente.

        Raises:
            BusinessValidationError: codice vuoto
            AuthenticationError: codice inesistente o cliente disattivato
        """
        code = (data.code or "").strip()
        if not code:
            raise BusinessValidationError("Il codice cliente è obbligatorio")

        result = await db.execute(
            select(Client).where(func.upper(Client.code) == code.upper())
        )
        client = result.scalar_one_or_none()

        if client is None or not client.is_active:
            logger.warning("Login cliente fallito per il codice %s", code)
            raise AuthenticationError("Codice cliente non valido o cliente disattivato")

        token, expires_at = create_client_token(str(client.id), client.code, client.name)
        logger.info("Login cliente: %s", client.code)

        return ClientLoginResponse(
            access_token=token,
            token_type="bearer",
            expires_at=expires_at,
            client=ClientRead.model_validate(client),
        )

    # ------------------------------------------------------------
    # Gestione utenti
    # ------------------------------------------------------------
    async def list_users(self, db: AsyncSession) -> list[User]:
        result = await db.execute(select(User).order_by(User.username.asc()))
        return list(result.scalars().all())

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> User:
        """
        Ottiene un utente per ID.

        Raises:
            NotFoundError: Se l'utente non esiste
        """
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(f"Utente con ID {user_id} non trovato")
        return user

    async def create_user(self, db: AsyncSession, data: UserCreate) -> User:
        """
        Crea un utente del personale.

        Raises:
            DuplicateError: Se lo username è già registrato
        """
        result = await db.execute(
            select(User).where(func.lower(User.username) == data.username.lower())
        )
        if result.scalar_one_or_none():
            raise DuplicateError(f"Il nome utente {data.username} è già registrato")

        user = User(
            username=data.username,
            hashed_password=hash_password(data.password),
            full_name=data.full_name,
            role=data.role.value,
            is_active=True,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        logger.info("Creato utente %s (%s)", user.username, user.role)
        return user

    async def _active_admins(self, db: AsyncSession, exclude_id: Optional[UUID] = None) -> int:
        query = select(func.count(User.id)).where(
            User.role == UserRole.ADMIN.value,
            User.is_active.is_(True),
        )
        if exclude_id:
            query = query.where(User.id != exclude_id)
        return (await db.execute(query)).scalar() or 0

    async def update_user(self, db: AsyncSession, user_id: UUID, data: UserUpdate) -> User:
        """
        Aggiorna ruolo, nome, stato o password di un utente.

        Raises:
            ConflictError: se si rimuove l'ultimo amministratore attivo
        """
        user = await self.get_user_by_id(db, user_id)
        update_data = data.model_dump(exclude_unset=True)

        demoted = (
            user.role == UserRole.ADMIN.value
            and (
                update_data.get("is_active") is False
                or (update_data.get("role") not in (None, UserRole.ADMIN))
            )
        )
        if demoted and await self._active_admins(db, exclude_id=user.id) == 0:
            raise ConflictError("Deve restare almeno un amministratore attivo")

        password = update_data.pop("password", None)
        if password:
            user.hashed_password = hash_password(password)
        if update_data.get("role") is not None:
            update_data["role"] = update_data["role"].value
        for field, value in update_data.items():
            if value is not None:
                setattr(user, field, value)

        await db.commit()
        await db.refresh(user)
        logger.info("Aggiornato utente %s", user.username)
        return user

    async def delete_user(self, db: AsyncSession, user_id: UUID, current_user: User) -> None:
        """
        Elimina un utente del personale.

        Raises:
            ConflictError: eliminazione di sé stessi o dell'ultimo amministratore
        """
        user = await self.get_user_by_id(db, user_id)
        if user.id == current_user.id:
            raise ConflictError("Non è possibile eliminare il proprio utente")
        if user.role == UserRole.ADMIN.value and await self._active_admins(db, exclude_id=user.id) == 0:
            raise ConflictError("Deve restare almeno un amministratore attivo")

        await db.delete(user)
        await db.commit()
        logger.info("Eliminato utente %s", user.username)


def get_auth_service() -> AuthService:
    """Factory per ottenere un'istanza del servizio di autenticazione."""
    return AuthService()


__all__ = [
    "AuthService",
    "get_auth_service",
]
