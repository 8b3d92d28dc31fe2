"""
Modulo di sicurezza per autenticazione JWT
Progetto: ISP Billing (Gestionale ISP)

Funzioni per hashing password, emissione/verifica dei token JWT
e policy di autorizzazione per ruolo.

Tre tipi di token, distinti dal claim "type":
- staff: personale (app mobile, pannello web)
- client: clienti self-service (login con codice cliente)
- pdf: link pubblico e temporaneo al PDF di una fattura
"""

import base64
import hashlib
import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from isp_billing.core.config import settings
from isp_billing.core.exceptions import AuthenticationError, AuthorizationError
from isp_billing.schemas.token import TokenPayload

TOKEN_TYPE_STAFF = "staff"
TOKEN_TYPE_CLIENT = "client"
TOKEN_TYPE_PDF = "pdf"

# Claim personalizzati letti dalle app mobile e self-service
CLAIM_ROLE = "Rol"
CLAIM_FULL_NAME = "NombreCompleto"
CLAIM_CLIENT_ID = "ClienteId"
CLAIM_CLIENT_CODE = "Codigo"
CLAIM_CLIENT_NAME = "Nombre"

# Context per hashing password
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ------------------------------------------------------------
# Password
# ------------------------------------------------------------
def hash_password(password: str) -> str:
    """Hasha una password in chiaro con bcrypt."""
    return pwd_context.hash(password)


def legacy_sha256(password: str) -> str:
    """Hash SHA-256 non salato in base64 usato dalle installazioni precedenti."""
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def is_legacy_hash(hashed_password: str) -> bool:
    """True se l'hash non è riconosciuto da passlib (formato SHA-256 legacy)."""
    return pwd_context.identify(hashed_password) is None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifica una password in chiaro contro un hash bcrypt o legacy.

    Args:
        plain_password: Password in chiaro
        hashed_password: Hash memorizzato

    Returns:
        True se la password corrisponde, False altrimenti
    """
    if is_legacy_hash(hashed_password):
        return hmac.compare_digest(legacy_sha256(plain_password), hashed_password)
    return pwd_context.verify(plain_password, hashed_password)


def needs_rehash(hashed_password: str) -> bool:
    """True se l'hash va sostituito con un bcrypt aggiornato."""
    return is_legacy_hash(hashed_password) or pwd_context.needs_update(hashed_password)


# ------------------------------------------------------------
# Token
# ------------------------------------------------------------
def _encode(claims: dict[str, Any], expires_delta: timedelta) -> tuple[str, datetime]:
    now = datetime.now(timezone.utc)
    expire = now + expires_delta
    payload = {
        **claims,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": expire,
        "jti": str(uuid.uuid4()),
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, expire


def create_staff_token(user_id: str, role: str, full_name: str, username: str) -> tuple[str, datetime]:
    """
    Crea un token per il personale.

    Returns:
        Tuple (token, scadenza)
    """
    return _encode(
        {
            "sub": user_id,
            "username": username,
            CLAIM_ROLE: role,
            CLAIM_FULL_NAME: full_name,
            "type": TOKEN_TYPE_STAFF,
        },
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_client_token(client_id: str, code: str, name: str) -> tuple[str, datetime]:
    """Crea un token self-service per un cliente (durata in ore)."""
    from isp_billing.models.user import CLIENT_ROLE

    return _encode(
        {
            "sub": client_id,
            CLAIM_CLIENT_ID: client_id,
            CLAIM_CLIENT_CODE: code,
            CLAIM_CLIENT_NAME: name or code,
            CLAIM_ROLE: CLIENT_ROLE,
            "type": TOKEN_TYPE_CLIENT,
        },
        timedelta(hours=settings.client_token_expire_hours),
    )


def create_pdf_token(invoice_id: str) -> tuple[str, datetime]:
    """Crea un token di breve durata che autorizza il download di un PDF."""
    return _encode(
        {"sub": invoice_id, "invoice_id": invoice_id, "type": TOKEN_TYPE_PDF},
        timedelta(minutes=settings.pdf_token_expire_minutes),
    )


def decode_token(token: str, expected_type: Optional[str] = None) -> TokenPayload:
    """
    Decodifica e valida un token JWT (firma, scadenza, iss, aud).

    Args:
        token: Token JWT da decodificare
        expected_type: Se indicato, il claim "type" deve coincidere

    Returns:
        TokenPayload con i claim del token

    Raises:
        AuthenticationError: Se il token è invalido, scaduto o di tipo errato
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        raise AuthenticationError(f"Token invalido o scaduto: {e}")

    if not payload.get("sub") or not payload.get("type"):
        raise AuthenticationError("Token invalido: claim mancanti")

    if expected_type is not None and payload["type"] != expected_type:
        raise AuthenticationError("Tipo di token non valido per questa operazione")

    return TokenPayload(
        sub=payload["sub"],
        role=payload.get(CLAIM_ROLE),
        type=payload["type"],
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        full_name=payload.get(CLAIM_FULL_NAME) or payload.get(CLAIM_CLIENT_NAME),
        username=payload.get("username"),
        client_id=payload.get(CLAIM_CLIENT_ID),
        code=payload.get(CLAIM_CLIENT_CODE),
        invoice_id=payload.get("invoice_id"),
    )


# ------------------------------------------------------------
# Policy di autorizzazione
# ------------------------------------------------------------
@dataclass(frozen=True)
class RolePolicy:
    """
    Policy dichiarativa: insieme di ruoli ammessi.

    Non dipende da FastAPI: core/deps.py la applica alle dependency,
    il pannello web la applica alle proprie route.
    """

    name: str
    roles: frozenset

    @classmethod
    def of(cls, name: str, roles: Iterable[str]) -> "RolePolicy":
        return cls(name=name, roles=frozenset(getattr(r, "value", r) for r in roles))

    def allows(self, role: Optional[str]) -> bool:
        return role is not None and role in self.roles

    def enforce(self, role: Optional[str]) -> None:
        if not self.allows(role):
            raise AuthorizationError(
                f"Accesso negato. Ruolo richiesto: {', '.join(sorted(self.roles))}"
            )


__all__ = [
    "hash_password",
    "verify_password",
    "needs_rehash",
    "legacy_sha256",
    "create_staff_token",
    "create_client_token",
    "create_pdf_token",
    "decode_token",
    "RolePolicy",
    "TOKEN_TYPE_STAFF",
    "TOKEN_TYPE_CLIENT",
    "TOKEN_TYPE_PDF",
    "CLAIM_ROLE",
    "CLAIM_FULL_NAME",
    "CLAIM_CLIENT_ID",
    "CLAIM_CLIENT_CODE",
    "CLAIM_CLIENT_NAME",
]
