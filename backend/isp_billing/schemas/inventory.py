"""
Schemas Pydantic per l'Inventario Apparati
Progetto: ISP Billing (Gestionale ISP)

Contiene:
- EquipmentCategory*/Location*: anagrafiche di supporto
- Equipment*: apparati con giacenza e stato
- Movement*: entrate e uscite di magazzino
- Supplier*, Assignment*, Maintenance*, InstallationMaterial*: fornitori,
  consegne, manutenzioni e materiali installati
"""

import datetime
import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from isp_billing.models.inventory import (
    AssignmentStatus,
    EquipmentStatus,
    MaintenanceStatus,
    MaintenanceType,
    MovementType,
)
from isp_billing.schemas.common import PageMeta


# -------------------------------------------------------------------
# Categorie, ubicazioni e fornitori
# -------------------------------------------------------------------

class EquipmentCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class EquipmentCategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class EquipmentCategoryRead(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    is_active: bool = Field(..., serialization_alias="isActive")

    model_config = ConfigDict(from_attributes=True)


class LocationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class LocationRead(BaseModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = Field(..., serialization_alias="isActive")

    model_config = ConfigDict(from_attributes=True)


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    contact: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=150)
    address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    contact: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[str] = Field(None, max_length=150)
    address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class SupplierRead(BaseModel):
    id: uuid.UUID
    name: str
    contact: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = Field(..., serialization_alias="isActive")

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Apparati
# -------------------------------------------------------------------

class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    serial_number: Optional[str] = Field(None, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    category_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    supplier_id: Optional[uuid.UUID] = None
    status: EquipmentStatus = EquipmentStatus.AVAILABLE
    stock: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)
    purchase_price: Optional[Decimal] = Field(None, ge=0)
    acquired_on: Optional[datetime.date] = None
    notes: Optional[str] = None


class EquipmentUpdate(BaseModel):
    """Aggiornamento anagrafico: stato e giacenza hanno operazioni dedicate."""

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    serial_number: Optional[str] = Field(None, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    category_id: Optional[uuid.UUID] = None
    location_id: Optional[uuid.UUID] = None
    supplier_id: Optional[uuid.UUID] = None
    min_stock: Optional[int] = Field(None, ge=0)
    purchase_price: Optional[Decimal] = Field(None, ge=0)
    acquired_on: Optional[datetime.date] = None
    notes: Optional[str] = None


class EquipmentStatusChange(BaseModel):
    status: EquipmentStatus
    reason: Optional[str] = None


class EquipmentRead(BaseModel):
    id: uuid.UUID
    code: str
    name: str
    description: Optional[str] = None
    serial_number: Optional[str] = Field(None, serialization_alias="serialNumber")
    brand: Optional[str] = None
    model: Optional[str] = None
    category: Optional[EquipmentCategoryRead] = None
    location: Optional[LocationRead] = None
    supplier: Optional[SupplierRead] = None
    status: str
    stock: int
    min_stock: int = Field(..., serialization_alias="minStock")
    is_low_stock: bool = Field(..., serialization_alias="isLowStock")
    purchase_price: Optional[Decimal] = Field(None, serialization_alias="purchasePrice")
    acquired_on: Optional[datetime.date] = Field(None, serialization_alias="acquiredOn")
    notes: Optional[str] = None
    is_active: bool = Field(..., serialization_alias="isActive")

    model_config = ConfigDict(from_attributes=True)


class EquipmentList(PageMeta):
    items: list[EquipmentRead] = Field(default_factory=list)


class StatusHistoryRead(BaseModel):
    previous_status: Optional[str] = Field(None, serialization_alias="previousStatus")
    new_status: str = Field(..., serialization_alias="newStatus")
    reason: Optional[str] = None
    changed_at: datetime.datetime = Field(..., serialization_alias="changedAt")

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Movimenti
# -------------------------------------------------------------------

class MovementItemCreate(BaseModel):
    equipment_id: uuid.UUID
    quantity: int = Field(..., gt=0)


class MovementCreate(BaseModel):
    movement_type: MovementType
    subtype: Optional[str] = Field(None, max_length=50)
    movement_date: Optional[datetime.datetime] = None
    notes: Optional[str] = None
    items: list[MovementItemCreate] = Field(..., min_length=1)


class MovementItemRead(BaseModel):
    equipment_id: uuid.UUID = Field(..., serialization_alias="equipmentId")
    quantity: int
    applied_quantity: int = Field(..., serialization_alias="appliedQuantity")

    model_config = ConfigDict(from_attributes=True)


class MovementRead(BaseModel):
    id: uuid.UUID
    movement_type: str = Field(..., serialization_alias="movementType")
    subtype: Optional[str] = None
    movement_date: datetime.datetime = Field(..., serialization_alias="movementDate")
    notes: Optional[str] = None
    items: list[MovementItemRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class MovementList(PageMeta):
    items: list[MovementRead] = Field(default_factory=list)


# -------------------------------------------------------------------
# Consegne di apparati
# -------------------------------------------------------------------

class AssignmentCreate(BaseModel):
    """Consegna a un cliente oppure a un dipendente."""

    equipment_id: uuid.UUID
    quantity: int = Field(1, gt=0)
    client_id: Optional[uuid.UUID] = None
    employee_name: Optional[str] = Field(None, max_length=150)
    assigned_at: Optional[datetime.datetime] = None
    expected_return_date: Optional[datetime.date] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def client_or_employee(self) -> "AssignmentCreate":
        if self.client_id is None and not (self.employee_name or "").strip():
            raise ValueError("Indicare il cliente oppure il dipendente")
        return self


class AssignmentReturn(BaseModel):
    notes: Optional[str] = None


class AssignmentRead(BaseModel):
    id: uuid.UUID
    equipment_id: uuid.UUID = Field(..., serialization_alias="equipmentId")
    quantity: int
    client_id: Optional[uuid.UUID] = Field(None, serialization_alias="clientId")
    employee_name: Optional[str] = Field(None, serialization_alias="employeeName")
    assigned_at: datetime.datetime = Field(..., serialization_alias="assignedAt")
    expected_return_date: Optional[datetime.date] = Field(None, serialization_alias="expectedReturnDate")
    returned_at: Optional[datetime.datetime] = Field(None, serialization_alias="returnedAt")
    status: AssignmentStatus
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Manutenzioni
# -------------------------------------------------------------------

class MaintenanceCreate(BaseModel):
    equipment_id: uuid.UUID
    maintenance_type: MaintenanceType
    scheduled_on: Optional[datetime.date] = None
    started_on: Optional[datetime.date] = None
    finished_on: Optional[datetime.date] = None
    technician: Optional[str] = Field(None, max_length=150)
    cost: Optional[Decimal] = Field(None, ge=0)
    reported_problem: Optional[str] = None
    solution: Optional[str] = None
    status: MaintenanceStatus = MaintenanceStatus.SCHEDULED
    notes: Optional[str] = None


class MaintenanceUpdate(BaseModel):
    """L'apparato di una manutenzione non cambia."""

    maintenance_type: Optional[MaintenanceType] = None
    scheduled_on: Optional[datetime.date] = None
    started_on: Optional[datetime.date] = None
    finished_on: Optional[datetime.date] = None
    technician: Optional[str] = Field(None, max_length=150)
    cost: Optional[Decimal] = Field(None, ge=0)
    reported_problem: Optional[str] = None
    solution: Optional[str] = None
    status: Optional[MaintenanceStatus] = None
    notes: Optional[str] = None


class MaintenanceRead(BaseModel):
    id: uuid.UUID
    equipment_id: uuid.UUID = Field(..., serialization_alias="equipmentId")
    maintenance_type: MaintenanceType = Field(..., serialization_alias="type")
    scheduled_on: Optional[datetime.date] = Field(None, serialization_alias="scheduledOn")
    started_on: Optional[datetime.date] = Field(None, serialization_alias="startedOn")
    finished_on: Optional[datetime.date] = Field(None, serialization_alias="finishedOn")
    technician: Optional[str] = None
    cost: Optional[Decimal] = None
    reported_problem: Optional[str] = Field(None, serialization_alias="reportedProblem")
    solution: Optional[str] = None
    status: MaintenanceStatus
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Materiali di installazione
# -------------------------------------------------------------------

class InstallationMaterialsCreate(BaseModel):
    """Materiali installati presso un cliente, una riga per apparato."""

    client_id: uuid.UUID
    items: list[MovementItemCreate] = Field(..., min_length=1)
    installed_at: Optional[datetime.datetime] = None
    notes: Optional[str] = None


class InstallationMaterialRead(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID = Field(..., serialization_alias="clientId")
    equipment_id: uuid.UUID = Field(..., serialization_alias="equipmentId")
    equipment: EquipmentRead
    quantity: int
    installed_at: datetime.datetime = Field(..., serialization_alias="installedAt")
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "EquipmentCategoryCreate",
    "EquipmentCategoryUpdate",
    "EquipmentCategoryRead",
    "LocationCreate",
    "LocationUpdate",
    "LocationRead",
    "EquipmentCreate",
    "EquipmentUpdate",
    "EquipmentStatusChange",
    "EquipmentRead",
    "EquipmentList",
    "StatusHistoryRead",
    "MovementItemCreate",
    "MovementCreate",
    "MovementItemRead",
    "MovementRead",
    "MovementList",
    "SupplierCreate",
    "SupplierUpdate",
    "SupplierRead",
    "AssignmentCreate",
    "AssignmentReturn",
    "AssignmentRead",
    "MaintenanceCreate",
    "MaintenanceUpdate",
    "MaintenanceRead",
    "InstallationMaterialsCreate",
    "InstallationMaterialRead",
]
