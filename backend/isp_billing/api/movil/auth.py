"""
Router per l'autenticazione del personale
Progetto: ISP Billing (Gestionale ISP)

Endpoints per login (JSON o form OAuth2) e profilo dell'utente corrente.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import CurrentStaff
from isp_billing.schemas.token import TokenResponse
from isp_billing.schemas.user import UserLogin, UserResponse
from isp_billing.services.auth_service import AuthService, get_auth_service

router = APIRouter(
    prefix="/auth",
    tags=["Autenticazione"],
)


async def _read_credentials(request: Request) -> UserLogin:
    """Credenziali dal body JSON o da un form application/x-www-form-urlencoded."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        raw = dict(await request.form())
    else:
        raw = await request.json()
    try:
        return UserLogin.model_validate(raw)
    except ValidationError as e:
        raise RequestValidationError(e.errors())


@router.post(
    "/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Login del personale",
)
async def login(
    request: Request,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Autentica un utente del personale con username e password.

    Raises:
        AuthenticationError 401: credenziali errate o utente disattivato
    """
    credentials = await _read_credentials(request)
    return await service.login(db, credentials)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Profilo utente corrente",
)
async def get_me(current_user: CurrentStaff) -> UserResponse:
    return UserResponse.model_validate(current_user)
