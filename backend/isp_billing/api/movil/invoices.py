"""
Router FastAPI per le Fatture (app mobile / personale)
Progetto: ISP Billing (Gestionale ISP)
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import AdminUser, BillingUser, CurrentStaff
from isp_billing.core.security import create_pdf_token
from isp_billing.models.catalog import ServiceCategory
from isp_billing.models.invoice import Invoice, InvoiceStatus
from isp_billing.schemas.common import count_pages
from isp_billing.schemas.invoice import (
    InvoiceCreate,
    InvoiceGenerateRequest,
    InvoiceGenerateResult,
    InvoiceList,
    InvoiceRead,
    PdfLinkResponse,
)
from isp_billing.services.invoice_service import InvoiceService
from isp_billing.services.pdf_service import PdfService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/facturas",
    tags=["Fatture"],
)


def get_invoice_service() -> InvoiceService:
    return InvoiceService()


def get_pdf_service() -> PdfService:
    return PdfService()


def pdf_response(invoice: Invoice, pdf: PdfService) -> Response:
    """Risposta application/pdf con il PDF della fattura."""
    content = pdf.generate_invoice_pdf(invoice)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="factura-{invoice.number}.pdf"'},
    )


def pdf_link(invoice: Invoice) -> PdfLinkResponse:
    """Link pubblico temporaneo al PDF della fattura."""
    token, expires_at = create_pdf_token(str(invoice.id))
    return PdfLinkResponse(
        url=f"/api/landing/facturas/{invoice.id}/pdf?token={token}",
        expires_at=expires_at,
    )


@router.get("", name="fatture_lista", summary="Lista fatture", response_model=InvoiceList)
async def list_invoices(
    _: CurrentStaff,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    client_id: Optional[uuid.UUID] = Query(None),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    category: Optional[ServiceCategory] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    search: Optional[str] = Query(None, description="Numero fattura, nome o codice cliente"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceList:
    invoices, total = await service.get_all(
        db,
        page=page,
        per_page=per_page,
        client_id=client_id,
        status=status_filter.value if status_filter else None,
        category=category.value if category else None,
        month=month,
        year=year,
        search=search,
    )
    return InvoiceList(
        items=[InvoiceRead.model_validate(i) for i in invoices],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )


@router.get(
    "/pendientes",
    name="fatture_pendenti",
    summary="Ricerca fatture con saldo",
    response_model=list[InvoiceRead],
)
async def pending_invoices(
    _: CurrentStaff,
    search: Optional[str] = Query(None),
    client_id: Optional[uuid.UUID] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> list[InvoiceRead]:
    invoices = await service.get_pending(db, search=search, limit=limit, client_id=client_id)
    return [InvoiceRead.model_validate(i) for i in invoices]


@router.post(
    "/generar",
    name="fatture_genera_mese",
    summary="Genera le fatture del mese",
    response_model=InvoiceGenerateResult,
)
async def generate_invoices(
    data: InvoiceGenerateRequest,
    _: BillingUser,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceGenerateResult:
    """Una fattura per ogni abbonamento attivo, saltando quelle già emesse."""
    created, skipped, billing_month = await service.generate_month(db, data.month, data.year)
    return InvoiceGenerateResult(created=created, skipped=skipped, billing_month=billing_month)


@router.get("/{invoice_id}", name="fattura_dettaglio", response_model=InvoiceRead)
async def get_invoice(
    invoice_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    return InvoiceRead.model_validate(await service.get_by_id(db, invoice_id))


@router.post(
    "",
    name="fattura_crea",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate,
    _: BillingUser,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    return InvoiceRead.model_validate(await service.create(db, data))


@router.post("/{invoice_id}/anular", name="fattura_annulla", response_model=InvoiceRead)
async def cancel_invoice(
    invoice_id: uuid.UUID,
    _: BillingUser,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """
    Raises:
        ConflictError 409: fattura già annullata o con pagamenti
    """
    return InvoiceRead.model_validate(await service.cancel(db, invoice_id))


@router.delete(
    "/{invoice_id}",
    name="fattura_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_invoice(
    invoice_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> None:
    """
    Raises:
        ConflictError 409: fattura con pagamenti collegati
    """
    await service.delete(db, invoice_id)


@router.get(
    "/{invoice_id}/pdf",
    name="fattura_pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
async def invoice_pdf(
    invoice_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
    pdf: PdfService = Depends(get_pdf_service),
) -> Response:
    invoice = await service.get_by_id(db, invoice_id)
    return pdf_response(invoice, pdf)


@router.post("/{invoice_id}/pdf-link", name="fattura_pdf_link", response_model=PdfLinkResponse)
async def invoice_pdf_link(
    invoice_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> PdfLinkResponse:
    invoice = await service.get_by_id(db, invoice_id)
    return pdf_link(invoice)
