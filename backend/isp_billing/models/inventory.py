"""
Modelli SQLAlchemy per l'Inventario Apparati
Progetto: ISP Billing (Gestionale ISP)

Contiene:
- EquipmentCategory: Categorie di apparati (router, antenne, cavi...)
- Location: Ubicazioni fisiche (bodega, nodo, cliente...)
- Equipment: Anagrafica apparati con giacenza
- EquipmentStatusHistory: Storico dei cambi di stato
- InventoryMovement / InventoryMovementItem: Entrate e uscite di magazzino
- Supplier: Fornitori e tecnici esterni
- EquipmentAssignment: Consegne di apparati a clienti o dipendenti
- MaintenanceRecord: Manutenzioni e riparazioni
- InstallationMaterial: Materiali installati presso i clienti
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from isp_billing.models import Base
from isp_billing.models.mixins import SoftDeleteMixin, TimestampMixin, UUIDMixin, utcnow

if TYPE_CHECKING:
    from isp_billing.models.client import Client
    from isp_billing.models.user import User


class EquipmentStatus(str, Enum):
    """Stato operativo di un apparato."""
    AVAILABLE = "Disponible"
    IN_USE = "En uso"
    DAMAGED = "Dañado"
    IN_REPAIR = "En reparación"
    RETIRED = "Retirado"


class MovementType(str, Enum):
    """Direzione del movimento di magazzino."""
    IN = "Entrada"
    OUT = "Salida"


class MovementSubtype(str, Enum):
    """Causali usate dai movimenti generati automaticamente."""
    ASSIGNMENT = "Asignación"
    RETURN = "Devolución"


class AssignmentStatus(str, Enum):
    ACTIVE = "Activa"
    RETURNED = "Devuelta"
    LOST = "Perdida"


class MaintenanceType(str, Enum):
    PREVENTIVE = "Preventivo"
    CORRECTIVE = "Correctivo"


class MaintenanceStatus(str, Enum):
    SCHEDULED = "Programado"
    IN_PROGRESS = "En proceso"
    COMPLETED = "Completado"
    CANCELLED = "Cancelado"


class EquipmentCategory(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Categoria di apparati."""

    __tablename__ = "equipment_categories"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"EquipmentCategory(name={self.name!r})"


class Location(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Ubicazione fisica degli apparati."""

    __tablename__ = "locations"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"Location(name={self.name!r})"


class Equipment(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Apparato in inventario.

    Attributes:
        code: Codice univoco casuale (EMS-XXXXXX)
        name: Nome
        serial_number: Numero di serie
        brand / model: Marca e modello
        category_id / location_id: Classificazione e ubicazione
        supplier_id: Fornitore
        status: Uno di EquipmentStatus
        stock: Giacenza attuale (mai negativa)
        min_stock: Soglia per l'avviso di scorta bassa
        purchase_price: Prezzo di acquisto
        acquired_on: Data di acquisizione

    Properties:
        is_low_stock: True se stock <= min_stock
    """

    __tablename__ = "equipment"

    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    serial_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("equipment_categories.id", ondelete="SET NULL"),
        nullable=True,
    )

    location_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("locations.id", ondelete="SET NULL"),
        nullable=True,
    )

    supplier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("suppliers.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EquipmentStatus.AVAILABLE.value,
    )

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    purchase_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    acquired_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    category: Mapped[Optional["EquipmentCategory"]] = relationship(
        "EquipmentCategory", lazy="selectin"
    )
    location: Mapped[Optional["Location"]] = relationship("Location", lazy="selectin")
    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier", lazy="selectin")
    status_history: Mapped[List["EquipmentStatusHistory"]] = relationship(
        "EquipmentStatusHistory",
        back_populates="equipment",
        cascade="all, delete-orphan",
        order_by="EquipmentStatusHistory.changed_at",
        lazy="raise",
    )

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_equipment_stock_positive"),
        CheckConstraint("min_stock >= 0", name="ck_equipment_min_stock_positive"),
        Index("ix_equipment_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Equipment(code={self.code}, name={self.name}, stock={self.stock})>"


class EquipmentStatusHistory(Base, UUIDMixin):
    """Cambio di stato di un apparato."""

    __tablename__ = "equipment_status_history"

    equipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    previous_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    new_status: Mapped[str] = mapped_column(String(20), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    equipment: Mapped["Equipment"] = relationship("Equipment", back_populates="status_history")


class InventoryMovement(Base, UUIDMixin, TimestampMixin):
    """
    Movimento di magazzino.

    Una Entrada incrementa la giacenza di ogni apparato delle righe,
    una Salida la decrementa senza scendere sotto zero.
    """

    __tablename__ = "inventory_movements"

    movement_type: Mapped[str] = mapped_column(String(10), nullable=False)
    subtype: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        doc="Causale (Compra, Instalación, Devolución, ...)",
    )
    movement_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    user: Mapped[Optional["User"]] = relationship("User", lazy="selectin")
    items: Mapped[List["InventoryMovementItem"]] = relationship(
        "InventoryMovementItem",
        back_populates="movement",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("movement_type IN ('Entrada', 'Salida')", name="ck_inventory_movements_type"),
        Index("ix_inventory_movements_date", "movement_date"),
    )


class InventoryMovementItem(Base, UUIDMixin):
    """Riga di un movimento: apparato e quantità."""

    __tablename__ = "inventory_movement_items"

    movement_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("inventory_movements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    equipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("equipment.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Quantità effettivamente scaricata (una Salida non porta lo stock sotto zero)
    applied_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    movement: Mapped["InventoryMovement"] = relationship("InventoryMovement", back_populates="items")
    equipment: Mapped["Equipment"] = relationship("Equipment", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_inventory_movement_items_quantity"),
    )


class Supplier(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Fornitore o tecnico esterno degli apparati."""

    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    contact: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"Supplier(name={self.name!r})"


class EquipmentAssignment(Base, UUIDMixin, TimestampMixin):
    """
    Consegna di apparati a un cliente o a un dipendente.

    Attributes:
        equipment_id: Apparato consegnato
        quantity: Unità scaricate dalla giacenza
        client_id: Cliente destinatario (opzionale)
        employee_name: Dipendente destinatario (opzionale)
        assigned_at: Data di consegna
        expected_return_date: Data di restituzione prevista
        returned_at: Data di restituzione effettiva
        status: Uno di AssignmentStatus
    """

    __tablename__ = "equipment_assignments"

    equipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("equipment.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    client_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    employee_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    expected_return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    returned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AssignmentStatus.ACTIVE.value,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    equipment: Mapped["Equipment"] = relationship("Equipment", lazy="selectin")
    client: Mapped[Optional["Client"]] = relationship("Client", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_equipment_assignments_quantity"),
        Index("ix_equipment_assignments_status", "status"),
    )


class MaintenanceRecord(Base, UUIDMixin, TimestampMixin):
    """Manutenzione preventiva o riparazione di un apparato."""

    __tablename__ = "maintenance_records"

    equipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    maintenance_type: Mapped[str] = mapped_column(String(20), nullable=False)
    scheduled_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    started_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    finished_on: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    technician: Mapped[Optional[str]] = mapped_column(
        String(150),
        nullable=True,
        doc="Fornitore o tecnico che esegue l'intervento",
    )
    cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    reported_problem: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    solution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=MaintenanceStatus.SCHEDULED.value,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    equipment: Mapped["Equipment"] = relationship("Equipment", lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            "maintenance_type IN ('Preventivo', 'Correctivo')",
            name="ck_maintenance_records_type",
        ),
        Index("ix_maintenance_records_status", "status"),
    )


class InstallationMaterial(Base, UUIDMixin, TimestampMixin):
    """Materiale installato presso un cliente (scaricato dalla giacenza)."""

    __tablename__ = "installation_materials"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    equipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("equipment.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    installed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    equipment: Mapped["Equipment"] = relationship("Equipment", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_installation_materials_quantity"),
    )
