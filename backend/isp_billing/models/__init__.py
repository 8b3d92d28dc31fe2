"""
Modelli Database SQLAlchemy
Progetto: ISP Billing (Gestionale ISP)

Import centralizzato di tutti i modelli, così che Base.metadata
conosca ogni tabella (create_all, reset_db.py, test).

Modelli:
- User: Personale (amministratori, operatori, cassa)
- Client: Anagrafica clienti
- Service, ClientServiceSubscription: Catalogo servizi e abbonamenti
- Invoice, InvoiceServiceLink: Fatture e righe servizio
- Payment, PaymentInvoiceLink: Pagamenti e applicazione alle fatture
- Expense: Spese
- EquipmentCategory, Location, Equipment, EquipmentStatusHistory: Inventario
- InventoryMovement, InventoryMovementItem: Movimenti di magazzino
- Supplier, EquipmentAssignment, MaintenanceRecord, InstallationMaterial: Fornitori,
  consegne, manutenzioni e materiali installati
- BankAccount, LandingService, ContactMessage: Contenuti landing page
- Setting: Impostazioni chiave/valore
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class per tutti i modelli SQLAlchemy."""
    pass


from isp_billing.models.user import User, UserRole
from isp_billing.models.client import Client
from isp_billing.models.catalog import ClientServiceSubscription, Service, ServiceCategory
from isp_billing.models.invoice import (
    Currency,
    Invoice,
    InvoiceServiceLink,
    InvoiceStatus,
    Payment,
    PaymentInvoiceLink,
    PaymentType,
)
from isp_billing.models.expense import Expense
from isp_billing.models.inventory import (
    AssignmentStatus,
    Equipment,
    EquipmentAssignment,
    EquipmentCategory,
    EquipmentStatus,
    EquipmentStatusHistory,
    InstallationMaterial,
    InventoryMovement,
    InventoryMovementItem,
    Location,
    MaintenanceRecord,
    MaintenanceStatus,
    MaintenanceType,
    MovementSubtype,
    MovementType,
    Supplier,
)
from isp_billing.models.landing import BankAccount, ContactMessage, ContactStatus, LandingService
from isp_billing.models.setting import Setting

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Client",
    "Service",
    "ServiceCategory",
    "ClientServiceSubscription",
    "Invoice",
    "InvoiceStatus",
    "InvoiceServiceLink",
    "Payment",
    "PaymentType",
    "Currency",
    "PaymentInvoiceLink",
    "Expense",
    "Equipment",
    "EquipmentCategory",
    "EquipmentStatus",
    "EquipmentStatusHistory",
    "Location",
    "InventoryMovement",
    "InventoryMovementItem",
    "MovementType",
    "MovementSubtype",
    "Supplier",
    "EquipmentAssignment",
    "AssignmentStatus",
    "MaintenanceRecord",
    "MaintenanceType",
    "MaintenanceStatus",
    "InstallationMaterial",
    "BankAccount",
    "LandingService",
    "ContactMessage",
    "ContactStatus",
    "Setting",
]
