"""
Pannello web di amministrazione
Progetto: ISP Billing (Gestionale ISP)

Pagine HTML server-side per il personale. La sessione è un cookie
HttpOnly con il token JWT del personale; le richieste senza sessione
valida vengono reindirizzate a /web/login (vedi main.py).
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.config import settings
from isp_billing.core.database import get_db
from isp_billing.core.deps import load_staff_user
from isp_billing.core.exceptions import AuthenticationError
from isp_billing.core.templates import templates
from isp_billing.models.invoice import InvoiceStatus
from isp_billing.models.user import User
from isp_billing.schemas.common import count_pages
from isp_billing.schemas.user import UserLogin
from isp_billing.services.auth_service import AuthService, get_auth_service
from isp_billing.services.client_service import ClientService
from isp_billing.services.dashboard_service import DashboardService
from isp_billing.services.invoice_service import InvoiceService
from isp_billing.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/web", tags=["Pannello web"], include_in_schema=False)

PER_PAGE = 25


async def get_web_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    """Utente del personale dal cookie di sessione."""
    return await load_staff_user(db, request.cookies.get(settings.session_cookie_name))


def _pages(total: int, page: int) -> dict:
    return {"page": page, "total": total, "total_pages": count_pages(total, PER_PAGE)}


# --- Auth ---

@router.get("/login", response_class=HTMLResponse)
async def login_form(request: Request):
    return templates.TemplateResponse(request, "login.html", {"error": None})


@router.post("/login", response_class=HTMLResponse)
async def login(
    request: Request,
    username: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    try:
        token = await service.login(db, UserLogin(username=username, password=password))
    except AuthenticationError as e:
        return templates.TemplateResponse(
            request,
            "login.html",
            {"error": e.detail, "username": username},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    response = RedirectResponse(url="/web", status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        settings.session_cookie_name,
        token.access_token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )
    return response


@router.get("/logout")
async def logout():
    response = RedirectResponse(url="/web/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(settings.session_cookie_name)
    return response


# --- Pagine ---

@router.get("", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    user: User = Depends(get_web_user),
    db: AsyncSession = Depends(get_db),
):
    summary = await DashboardService().summary(db)
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"active_page": "dashboard", "user": user, "summary": summary},
    )


@router.get("/clientes", response_class=HTMLResponse)
async def clients_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    user: User = Depends(get_web_user),
    db: AsyncSession = Depends(get_db),
):
    clients, total = await ClientService().get_all(db, page=page, per_page=PER_PAGE, search=search)
    return templates.TemplateResponse(
        request,
        "clients.html",
        {
            "active_page": "clients",
            "user": user,
            "clients": clients,
            "search": search or "",
            **_pages(total, page),
        },
    )


@router.get("/clientes/{client_id}", response_class=HTMLResponse)
async def client_detail_page(
    request: Request,
    client_id: uuid.UUID,
    user: User = Depends(get_web_user),
    db: AsyncSession = Depends(get_db),
):
    client, invoices, summary = await PaymentService().client_balance(db, client_id)
    return templates.TemplateResponse(
        request,
        "client_detail.html",
        {
            "active_page": "clients",
            "user": user,
            "client": client,
            "invoices": invoices,
            "summary": summary,
        },
    )


@router.get("/facturas", response_class=HTMLResponse)
async def invoices_page(
    request: Request,
    page: int = Query(1, ge=1),
    search: Optional[str] = Query(None),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    user: User = Depends(get_web_user),
    db: AsyncSession = Depends(get_db),
):
    invoices, total = await InvoiceService().get_all(
        db,
        page=page,
        per_page=PER_PAGE,
        status=status_filter.value if status_filter else None,
        search=search,
    )
    return templates.TemplateResponse(
        request,
        "invoices.html",
        {
            "active_page": "invoices",
            "user": user,
            "invoices": invoices,
            "search": search or "",
            "status": status_filter.value if status_filter else "",
            "statuses": [s.value for s in InvoiceStatus],
            **_pages(total, page),
        },
    )


@router.get("/pagos", response_class=HTMLResponse)
async def payments_page(
    request: Request,
    page: int = Query(1, ge=1),
    user: User = Depends(get_web_user),
    db: AsyncSession = Depends(get_db),
):
    payments, total = await PaymentService().get_all(db, page=page, per_page=PER_PAGE)
    return templates.TemplateResponse(
        request,
        "payments.html",
        {"active_page": "payments", "user": user, "payments": payments, **_pages(total, page)},
    )
