"""
Router FastAPI per la gestione degli utenti del personale
Progetto: ISP Billing (Gestionale ISP)

Tutti gli endpoint richiedono il ruolo Administrador.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import AdminUser
from isp_billing.schemas.user import UserCreate, UserResponse, UserUpdate
from isp_billing.services.auth_service import AuthService, get_auth_service

router = APIRouter(
    prefix="/usuarios",
    tags=["Utenti"],
)


@router.get("", name="utenti_lista", response_model=list[UserResponse])
async def list_users(
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in await service.list_users(db)]


@router.get("/{user_id}", name="utente_dettaglio", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    return UserResponse.model_validate(await service.get_user_by_id(db, user_id))


@router.post(
    "",
    name="utente_crea",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_user(
    data: UserCreate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """
    Raises:
        DuplicateError 409: nome utente già in uso
    """
    return UserResponse.model_validate(await service.create_user(db, data))


@router.put("/{user_id}", name="utente_aggiorna", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """
    Raises:
        ConflictError 409: si toglierebbe l'ultimo amministratore attivo
    """
    return UserResponse.model_validate(await service.update_user(db, user_id, data))


@router.delete(
    "/{user_id}",
    name="utente_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_user(
    user_id: uuid.UUID,
    current_user: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> None:
    await service.delete_user(db, user_id, current_user)
