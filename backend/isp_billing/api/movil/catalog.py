"""
Router FastAPI per il Catalogo Servizi
Progetto: ISP Billing (Gestionale ISP)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import AdminUser, CurrentStaff
from isp_billing.models.catalog import ServiceCategory
from isp_billing.schemas.catalog import ServiceCreate, ServiceRead, ServiceUpdate
from isp_billing.services.catalog_service import CatalogService

router = APIRouter(
    prefix="/servicios",
    tags=["Servizi"],
)


def get_catalog_service() -> CatalogService:
    return CatalogService()


@router.get("", name="servizi_lista", summary="Lista servizi", response_model=list[ServiceRead])
async def list_services(
    _: CurrentStaff,
    category: Optional[ServiceCategory] = Query(None, description="Internet o Streaming"),
    only_active: bool = Query(False, description="Solo servizi attivi"),
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> list[ServiceRead]:
    services = await service.get_all(
        db, category=category.value if category else None, only_active=only_active
    )
    return [ServiceRead.model_validate(s) for s in services]


@router.get("/{service_id}", name="servizio_dettaglio", response_model=ServiceRead)
async def get_service(
    service_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceRead:
    return ServiceRead.model_validate(await service.get_by_id(db, service_id))


@router.post(
    "",
    name="servizio_crea",
    response_model=ServiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_service(
    data: ServiceCreate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceRead:
    return ServiceRead.model_validate(await service.create(db, data))


@router.put("/{service_id}", name="servizio_aggiorna", response_model=ServiceRead)
async def update_service(
    service_id: uuid.UUID,
    data: ServiceUpdate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> ServiceRead:
    return ServiceRead.model_validate(await service.update(db, service_id, data))


@router.delete(
    "/{service_id}",
    name="servizio_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_service(
    service_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: CatalogService = Depends(get_catalog_service),
) -> None:
    """
    Raises:
        ConflictError 409: servizio usato da fatture o abbonamenti
    """
    await service.delete(db, service_id)
