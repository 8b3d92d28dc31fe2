"""
Schemas Pydantic per il progetto ISP Billing

Questo modulo contiene gli schemi Pydantic utilizzati per la validazione
delle richieste e la serializzazione delle risposte API (camelCase).
"""

# Import degli schemi principali per renderli disponibili tramite import diretto
# es: from isp_billing.schemas import ClientRead, InvoiceRead, etc.

from isp_billing.schemas.common import MessageResponse, PageMeta, count_pages
from isp_billing.schemas.user import UserCreate, UserLogin, UserResponse, UserUpdate
from isp_billing.schemas.token import TokenPayload, TokenResponse
from isp_billing.schemas.client import (
    ClientCreate,
    ClientList,
    ClientLogin,
    ClientLoginResponse,
    ClientRead,
    ClientUpdate,
)
from isp_billing.schemas.catalog import (
    ServiceCreate,
    ServiceRead,
    ServiceUpdate,
    SubscriptionCreate,
    SubscriptionRead,
)
from isp_billing.schemas.invoice import (
    InvoiceCreate,
    InvoiceGenerateRequest,
    InvoiceGenerateResult,
    InvoiceList,
    InvoiceRead,
    PdfLinkResponse,
)
from isp_billing.schemas.payment import (
    ClientInvoicesWithBalance,
    DaySummary,
    PaymentList,
    PaymentMultiCreate,
    PaymentRead,
    PaymentSingleCreate,
    PeriodSummary,
)
from isp_billing.schemas.dashboard import ClientDashboard, DashboardSummary
from isp_billing.schemas.report import PeriodReport

__all__ = [
    "MessageResponse",
    "PageMeta",
    "count_pages",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "UserUpdate",
    "TokenPayload",
    "TokenResponse",
    "ClientCreate",
    "ClientList",
    "ClientLogin",
    "ClientLoginResponse",
    "ClientRead",
    "ClientUpdate",
    "ServiceCreate",
    "ServiceRead",
    "ServiceUpdate",
    "SubscriptionCreate",
    "SubscriptionRead",
    "InvoiceCreate",
    "InvoiceGenerateRequest",
    "InvoiceGenerateResult",
    "InvoiceList",
    "InvoiceRead",
    "PdfLinkResponse",
    "ClientInvoicesWithBalance",
    "DaySummary",
    "PaymentList",
    "PaymentMultiCreate",
    "PaymentRead",
    "PaymentSingleCreate",
    "PeriodSummary",
    "ClientDashboard",
    "DashboardSummary",
    "PeriodReport",
]
