"""
Router FastAPI per i Clienti (app mobile / personale)
Progetto: ISP Billing (Gestionale ISP)

Definisce gli endpoint per anagrafica clienti, abbonamenti
e fatture del cliente con i relativi saldi.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import AdminUser, CurrentStaff
from isp_billing.schemas.catalog import SubscriptionCreate, SubscriptionRead
from isp_billing.schemas.client import ClientCreate, ClientList, ClientRead, ClientUpdate
from isp_billing.schemas.common import count_pages
from isp_billing.schemas.invoice import InvoiceRead
from isp_billing.schemas.payment import ClientInvoicesWithBalance
from isp_billing.services.client_service import ClientService
from isp_billing.services.payment_service import PaymentService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/clientes",
    tags=["Clienti"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_client_service() -> ClientService:
    """Dependency per ottenere un'istanza del ClientService."""
    return ClientService()


def get_payment_service() -> PaymentService:
    return PaymentService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "",
    name="clienti_lista",
    summary="Lista clienti",
    response_model=ClientList,
)
async def get_clients(
    _: CurrentStaff,
    page: int = Query(1, ge=1, description="Numero pagina"),
    per_page: int = Query(20, ge=1, le=100, description="Elementi per pagina"),
    search: Optional[str] = Query(None, description="Codice, nome, telefono, cédula o email"),
    only_active: bool = Query(False, description="Solo clienti attivi"),
    only_inactive: bool = Query(False, description="Solo clienti disattivati"),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientList:
    """
    Recupera la lista paginata dei clienti.

    Di default restituisce clienti attivi e disattivati.
    """
    clients, total = await service.get_all(
        db=db,
        page=page,
        per_page=per_page,
        search=search,
        include_inactive=not only_active,
        only_inactive=only_inactive,
    )
    return ClientList(
        items=[ClientRead.model_validate(c) for c in clients],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )


@router.get(
    "/buscar",
    name="clienti_ricerca",
    summary="Ricerca rapida clienti",
    response_model=list[ClientRead],
)
async def search_clients(
    _: CurrentStaff,
    q: str = Query(..., min_length=1, description="Termine di ricerca"),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> list[ClientRead]:
    clients, _total = await service.get_all(
        db=db, page=1, per_page=limit, search=q, include_inactive=False
    )
    return [ClientRead.model_validate(c) for c in clients]


@router.get(
    "/{client_id}",
    name="cliente_dettaglio",
    summary="Dettaglio cliente",
    response_model=ClientRead,
)
async def get_client(
    client_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.get_by_id(db=db, client_id=client_id)
    return ClientRead.model_validate(client)


@router.post(
    "",
    name="cliente_crea",
    summary="Crea cliente",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    client_data: ClientCreate,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    """
    Crea un nuovo cliente. Senza codice viene assegnato il prossimo CLI-NNN.

    Raises:
        DuplicateError: codice, cédula o email già in uso
    """
    client = await service.create(db=db, client_data=client_data)
    return ClientRead.model_validate(client)


@router.put(
    "/{client_id}",
    name="cliente_aggiorna",
    summary="Aggiorna cliente",
    response_model=ClientRead,
)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    client = await service.update(db=db, client_id=client_id, client_data=client_data)
    return ClientRead.model_validate(client)


@router.post(
    "/{client_id}/activar",
    name="cliente_attiva",
    summary="Attiva cliente",
    response_model=ClientRead,
)
async def activate_client(
    client_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    return ClientRead.model_validate(await service.set_active(db, client_id, True))


@router.post(
    "/{client_id}/desactivar",
    name="cliente_disattiva",
    summary="Disattiva cliente",
    response_model=ClientRead,
)
async def deactivate_client(
    client_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    return ClientRead.model_validate(await service.set_active(db, client_id, False))


@router.delete(
    "/{client_id}",
    name="cliente_elimina",
    summary="Elimina cliente",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_client(
    client_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> None:
    """
    Elimina fisicamente un cliente senza fatture.

    Raises:
        ConflictError 409: il cliente ha fatture (va disattivato)
    """
    await service.delete(db=db, client_id=client_id)


# -------------------------------------------------------------------
# Fatture e abbonamenti del cliente
# -------------------------------------------------------------------

@router.get(
    "/{client_id}/facturas",
    name="cliente_fatture",
    summary="Fatture del cliente con saldi",
    response_model=ClientInvoicesWithBalance,
)
async def get_client_invoices(
    client_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> ClientInvoicesWithBalance:
    client, invoices, summary = await service.client_balance(db, client_id)
    return ClientInvoicesWithBalance(
        client_id=client.id,
        client_name=client.name,
        invoices=[InvoiceRead.model_validate(i) for i in invoices],
        summary=summary,
    )


@router.get(
    "/{client_id}/servicios",
    name="cliente_abbonamenti",
    summary="Servizi sottoscritti",
    response_model=list[SubscriptionRead],
)
async def list_subscriptions(
    client_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> list[SubscriptionRead]:
    subscriptions = await service.list_subscriptions(db, client_id)
    return [SubscriptionRead.model_validate(s) for s in subscriptions]


@router.post(
    "/{client_id}/servicios",
    name="cliente_abbonamento_aggiungi",
    summary="Aggiungi servizio al cliente",
    response_model=SubscriptionRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_subscription(
    client_id: uuid.UUID,
    data: SubscriptionCreate,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> SubscriptionRead:
    subscription = await service.add_subscription(db, client_id, data)
    return SubscriptionRead.model_validate(subscription)


@router.delete(
    "/{client_id}/servicios/{subscription_id}",
    name="cliente_abbonamento_rimuovi",
    summary="Chiudi abbonamento",
    response_model=SubscriptionRead,
)
async def remove_subscription(
    client_id: uuid.UUID,
    subscription_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> SubscriptionRead:
    subscription = await service.remove_subscription(db, client_id, subscription_id)
    return SubscriptionRead.model_validate(subscription)
