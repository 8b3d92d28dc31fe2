"""
API Routes
Progetto: ISP Billing (Gestionale ISP)

Modulo per l'aggregazione delle superfici HTTP:
- /api/movil: app mobile e personale
- /api/cliente: portale self-service dei clienti
- /api/landing: landing page pubblica
- /web: pannello web di amministrazione
"""

from isp_billing.api.cliente import router as cliente_router
from isp_billing.api.landing import router as landing_router
from isp_billing.api.movil import movil_router
from isp_billing.api.web import router as web_router

# Esportazione router
__all__ = ["movil_router", "cliente_router", "landing_router", "web_router"]
