"""
Router FastAPI pubblico per la landing page
Progetto: ISP Billing (Gestionale ISP)

Endpoint senza autenticazione: piani, conti per i pagamenti,
dati aziendali, modulo contatti e download dei PDF tramite link firmato.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.api.movil.invoices import get_invoice_service, get_pdf_service, pdf_response
from isp_billing.core.database import get_db
from isp_billing.core.exceptions import AuthorizationError
from isp_billing.core.security import TOKEN_TYPE_PDF, decode_token
from isp_billing.schemas.common import MessageResponse
from isp_billing.schemas.landing import BankAccountRead, CompanyInfo, ContactCreate, LandingServiceRead
from isp_billing.services.invoice_service import InvoiceService
from isp_billing.services.landing_service import LandingContentService
from isp_billing.services.pdf_service import PdfService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/landing",
    tags=["Landing"],
)


def get_landing_service() -> LandingContentService:
    return LandingContentService()


@router.get("/servicios", name="landing_piani_pubblici", response_model=list[LandingServiceRead])
async def list_plans(
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> list[LandingServiceRead]:
    """Piani attivi nell'ordine di visualizzazione."""
    return [LandingServiceRead.model_validate(p) for p in await service.list_plans(db)]


@router.get("/metodos-pago", name="landing_conti_pubblici", response_model=list[BankAccountRead])
async def list_bank_accounts(
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> list[BankAccountRead]:
    return [BankAccountRead.model_validate(a) for a in await service.list_bank_accounts(db)]


@router.get("/info", name="landing_info", response_model=CompanyInfo)
async def company_info(
    service: LandingContentService = Depends(get_landing_service),
) -> CompanyInfo:
    return service.company_info()


@router.post(
    "/contacto",
    name="landing_contatto",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_contact(
    data: ContactCreate,
    db: AsyncSession = Depends(get_db),
    service: LandingContentService = Depends(get_landing_service),
) -> MessageResponse:
    await service.create_contact(db, data)
    return MessageResponse(message="Mensaje recibido. Nos pondremos en contacto pronto.")


@router.get(
    "/facturas/{invoice_id}/pdf",
    name="landing_fattura_pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
async def invoice_pdf(
    invoice_id: uuid.UUID,
    token: str = Query(..., description="Token del link temporaneo"),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
    pdf: PdfService = Depends(get_pdf_service),
) -> Response:
    """
    Download del PDF con un link generato da /pdf-link.

    Raises:
        AuthenticationError 401: token invalido o scaduto
        AuthorizationError 403: token emesso per un'altra fattura
    """
    payload = decode_token(token, expected_type=TOKEN_TYPE_PDF)
    if payload.invoice_id != str(invoice_id):
        logger.warning("Token PDF per %s usato sulla fattura %s", payload.invoice_id, invoice_id)
        raise AuthorizationError("Il link non è valido per questa fattura")
    invoice = await service.get_by_id(db, invoice_id)
    return pdf_response(invoice, pdf)
