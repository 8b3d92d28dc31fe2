"""
Router FastAPI per il portale self-service dei clienti
Progetto: ISP Billing (Gestionale ISP)

Il cliente accede con il proprio codice e vede solo le sue
fatture, i suoi pagamenti e il suo profilo.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.api.movil.invoices import get_invoice_service, get_pdf_service, pdf_link, pdf_response
from isp_billing.core.database import get_db
from isp_billing.core.deps import CurrentClient
from isp_billing.core.exceptions import AuthorizationError
from isp_billing.models.catalog import ServiceCategory
from isp_billing.models.client import Client
from isp_billing.models.invoice import Invoice, InvoiceStatus
from isp_billing.schemas.client import ClientLogin, ClientLoginResponse, ClientRead
from isp_billing.schemas.common import count_pages
from isp_billing.schemas.dashboard import ClientDashboard
from isp_billing.schemas.invoice import InvoiceList, InvoiceRead, PdfLinkResponse
from isp_billing.schemas.payment import PaymentList, PaymentRead
from isp_billing.services.auth_service import AuthService, get_auth_service
from isp_billing.services.dashboard_service import DashboardService
from isp_billing.services.invoice_service import InvoiceService
from isp_billing.services.payment_service import PaymentService
from isp_billing.services.pdf_service import PdfService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/cliente",
    tags=["Portale clienti"],
)


def get_payment_service() -> PaymentService:
    return PaymentService()


def get_dashboard_service() -> DashboardService:
    return DashboardService()


async def _own_invoice(
    db: AsyncSession, service: InvoiceService, client: Client, invoice_id: uuid.UUID
) -> Invoice:
    """
    Fattura del cliente autenticato.

    Raises:
        NotFoundError 404: fattura inesistente
        AuthorizationError 403: fattura di un altro cliente
    """
    invoice = await service.get_by_id(db, invoice_id)
    if invoice.client_id != client.id:
        logger.warning("Il cliente %s ha richiesto la fattura %s di un altro cliente", client.code, invoice_id)
        raise AuthorizationError("La fattura non appartiene al cliente")
    return invoice


@router.post("/auth/login", name="cliente_login", response_model=ClientLoginResponse)
async def client_login(
    data: ClientLogin,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
) -> ClientLoginResponse:
    """
    Login con il codice cliente.

    Raises:
        BusinessValidationError 400: codice vuoto
        AuthenticationError 401: codice inesistente o cliente disattivato
    """
    return await service.client_login(db, data)


@router.get("/perfil", name="cliente_profilo", response_model=ClientRead)
async def get_profile(client: CurrentClient) -> ClientRead:
    return ClientRead.model_validate(client)


@router.get("/dashboard", name="cliente_dashboard", response_model=ClientDashboard)
async def get_dashboard(
    client: CurrentClient,
    db: AsyncSession = Depends(get_db),
    service: DashboardService = Depends(get_dashboard_service),
) -> ClientDashboard:
    return await service.client_summary(db, client.id)


@router.get("/facturas", name="cliente_fatture_lista", response_model=InvoiceList)
async def list_invoices(
    client: CurrentClient,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    category: Optional[ServiceCategory] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceList:
    invoices, total = await service.get_all(
        db,
        page=page,
        per_page=per_page,
        client_id=client.id,
        status=status_filter.value if status_filter else None,
        category=category.value if category else None,
        month=month,
        year=year,
    )
    return InvoiceList(
        items=[InvoiceRead.model_validate(i) for i in invoices],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )


@router.get("/facturas/pendientes", name="cliente_fatture_pendenti", response_model=list[InvoiceRead])
async def pending_invoices(
    client: CurrentClient,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> list[InvoiceRead]:
    invoices = await service.get_pending(db, client_id=client.id, limit=200)
    return [InvoiceRead.model_validate(i) for i in invoices]


@router.get("/facturas/{invoice_id}", name="cliente_fattura_dettaglio", response_model=InvoiceRead)
async def get_invoice(
    invoice_id: uuid.UUID,
    client: CurrentClient,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    return InvoiceRead.model_validate(await _own_invoice(db, service, client, invoice_id))


@router.get(
    "/facturas/{invoice_id}/pdf",
    name="cliente_fattura_pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
async def invoice_pdf(
    invoice_id: uuid.UUID,
    client: CurrentClient,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
    pdf: PdfService = Depends(get_pdf_service),
) -> Response:
    invoice = await _own_invoice(db, service, client, invoice_id)
    return pdf_response(invoice, pdf)


@router.post("/facturas/{invoice_id}/pdf-link", name="cliente_fattura_pdf_link", response_model=PdfLinkResponse)
async def invoice_pdf_link(
    invoice_id: uuid.UUID,
    client: CurrentClient,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> PdfLinkResponse:
    return pdf_link(await _own_invoice(db, service, client, invoice_id))


@router.get("/pagos", name="cliente_pagamenti", response_model=PaymentList)
async def list_payments(
    client: CurrentClient,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentList:
    payments, total = await service.get_all(db, page=page, per_page=per_page, client_id=client.id)
    return PaymentList(
        items=[PaymentRead.model_validate(p) for p in payments],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )
