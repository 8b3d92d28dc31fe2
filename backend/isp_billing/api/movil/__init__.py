"""
API Mobile Routes
Progetto: ISP Billing (Gestionale ISP)

Router usati dall'app mobile e dal personale.
"""

from fastapi import APIRouter

from isp_billing.api.movil import (
    auth,
    catalog,
    clients,
    dashboard,
    expenses,
    inventory,
    invoices,
    landing_admin,
    payments,
    reports,
    users,
)

# Router aggregato per l'app mobile
movil_router = APIRouter(prefix="/api/movil")

# Includi i router dei moduli
movil_router.include_router(auth.router)
movil_router.include_router(users.router)
movil_router.include_router(dashboard.router)
movil_router.include_router(clients.router)
movil_router.include_router(catalog.router)
movil_router.include_router(invoices.router)
movil_router.include_router(payments.router)
movil_router.include_router(expenses.router)
movil_router.include_router(inventory.router)
movil_router.include_router(reports.router)
movil_router.include_router(landing_admin.router)

__all__ = ["movil_router"]
