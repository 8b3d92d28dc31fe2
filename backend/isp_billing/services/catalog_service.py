"""
Service per il Catalogo Servizi
Progetto: ISP Billing (Gestionale ISP)
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.exceptions import ConflictError, DuplicateError, NotFoundError
from isp_billing.models import ClientServiceSubscription, Invoice, InvoiceServiceLink, Service
from isp_billing.schemas.catalog import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """CRUD sui servizi vendibili."""

    async def get_all(
        self,
        db: AsyncSession,
        category: Optional[str] = None,
        only_active: bool = False,
    ) -> list[Service]:
        query = select(Service).order_by(Service.category.asc(), Service.name.asc())
        if category:
            query = query.where(Service.category == category)
        if only_active:
            query = query.where(Service.is_active.is_(True))
        return list((await db.execute(query)).scalars().all())

    async def get_by_id(self, db: AsyncSession, service_id: uuid.UUID) -> Service:
        service = await db.get(Service, service_id)
        if service is None:
            raise NotFoundError(f"Servizio con ID {service_id} non trovato")
        return service

    async def _ensure_unique_name(
        self, db: AsyncSession, name: str, exclude_id: Optional[uuid.UUID] = None
    ) -> None:
        query = select(Service).where(func.lower(Service.name) == name.strip().lower())
        if exclude_id:
            query = query.where(Service.id != exclude_id)
        if (await db.execute(query)).scalars().first():
            raise DuplicateError(f"Esiste già un servizio chiamato '{name}'")

    async def create(self, db: AsyncSession, data: ServiceCreate) -> Service:
        await self._ensure_unique_name(db, data.name)
        service = Service(
            name=data.name.strip(),
            description=data.description,
            price=data.price,
            category=data.category.value,
            is_active=True,
        )
        db.add(service)
        await db.commit()
        await db.refresh(service)
        logger.info("Creato servizio %s (%s)", service.name, service.price)
        return service

    async def update(self, db: AsyncSession, service_id: uuid.UUID, data: ServiceUpdate) -> Service:
        service = await self.get_by_id(db, service_id)
        update_data = data.model_dump(exclude_unset=True)
        if "name" in update_data and update_data["name"]:
            await self._ensure_unique_name(db, update_data["name"], exclude_id=service_id)
        if update_data.get("category") is not None:
            update_data["category"] = update_data["category"].value
        for field, value in update_data.items():
            setattr(service, field, value)
        await db.commit()
        await db.refresh(service)
        logger.info("Aggiornato servizio %s", service.name)
        return service

    async def delete(self, db: AsyncSession, service_id: uuid.UUID) -> None:
        """
        Elimina un servizio non referenziato.

        Raises:
            ConflictError: se fatture o abbonamenti lo usano (va disattivato)
        """
        service = await self.get_by_id(db, service_id)

        references = 0
        for model, column in (
            (Invoice, Invoice.service_id),
            (InvoiceServiceLink, InvoiceServiceLink.service_id),
            (ClientServiceSubscription, ClientServiceSubscription.service_id),
        ):
            references += (
                await db.execute(select(func.count()).select_from(model).where(column == service_id))
            ).scalar() or 0

        if references:
            raise ConflictError(
                f"Il servizio {service.name} è usato da fatture o abbonamenti: disattivarlo"
            )

        await db.delete(service)
        await db.commit()
        logger.info("Eliminato servizio %s", service.name)
