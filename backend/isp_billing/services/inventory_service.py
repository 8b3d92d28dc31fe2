"""
Service Layer per l'Inventario Apparati
Progetto: ISP Billing (Gestionale ISP)

Logica di business per:
- Categorie e ubicazioni
- Apparati con codice casuale EMS-XXXXXX e storico degli stati
- Movimenti di magazzino (Entrada/Salida) con aggiornamento della giacenza
- Fornitori
- Consegne di apparati a clienti o dipendenti (scarico e reintegro della giacenza)
- Manutenzioni e riparazioni, che aggiornano lo stato dell'apparato
- Materiali installati presso i clienti, registrati come movimenti

Una Salida non porta mai la giacenza sotto zero: la quantità
effettivamente scaricata viene salvata nella riga del movimento
e usata per annullarlo.
"""

import logging
import secrets
import string
import uuid
from enum import Enum
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.exceptions import BusinessValidationError, ConflictError, DuplicateError, NotFoundError
from isp_billing.models import (
    AssignmentStatus,
    Client,
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
    User,
)
from isp_billing.models.mixins import utcnow
from isp_billing.schemas.inventory import (
    AssignmentCreate,
    EquipmentCategoryCreate,
    EquipmentCategoryUpdate,
    EquipmentCreate,
    EquipmentUpdate,
    InstallationMaterialsCreate,
    LocationCreate,
    LocationUpdate,
    MaintenanceCreate,
    MaintenanceUpdate,
    MovementCreate,
    SupplierCreate,
    SupplierUpdate,
)
from isp_billing.services.periods import today

logger = logging.getLogger(__name__)

EQUIPMENT_CODE_PREFIX = "EMS-"
_CODE_ALPHABET = string.ascii_uppercase + string.digits


def random_equipment_code() -> str:
    return EQUIPMENT_CODE_PREFIX + "".join(secrets.choice(_CODE_ALPHABET) for _ in range(6))


def apply_stock(stock: int, movement_type: str, quantity: int) -> tuple[int, int]:
    """
    Nuova giacenza dopo un movimento.

    Returns:
        Tuple (nuova giacenza, quantità effettivamente applicata)
    """
    if movement_type == MovementType.IN.value:
        return stock + quantity, quantity
    applied = min(stock, quantity)
    return stock - applied, applied


class InventoryService:
    """Service per apparati, anagrafiche di supporto e movimenti."""

    # ------------------------------------------------------------
    # Categorie
    # ------------------------------------------------------------
    async def list_categories(self, db: AsyncSession, only_active: bool = False) -> list[EquipmentCategory]:
        query = select(EquipmentCategory).order_by(EquipmentCategory.name.asc())
        if only_active:
            query = query.where(EquipmentCategory.is_active.is_(True))
        return list((await db.execute(query)).scalars().all())

    async def get_category(self, db: AsyncSession, category_id: uuid.UUID) -> EquipmentCategory:
        category = await db.get(EquipmentCategory, category_id)
        if category is None:
            raise NotFoundError(f"Categoria {category_id} non trovata")
        return category

    async def _unique_name(self, db: AsyncSession, model, name: str, exclude_id=None) -> None:
        query = select(model).where(func.lower(model.name) == name.strip().lower())
        if exclude_id:
            query = query.where(model.id != exclude_id)
        if (await db.execute(query)).scalars().first():
            raise DuplicateError(f"Il nome '{name}' è già in uso")

    async def create_category(self, db: AsyncSession, data: EquipmentCategoryCreate) -> EquipmentCategory:
        await self._unique_name(db, EquipmentCategory, data.name)
        category = EquipmentCategory(name=data.name.strip(), description=data.description, is_active=True)
        db.add(category)
        await db.commit()
        await db.refresh(category)
        logger.info("Creata categoria apparati %s", category.name)
        return category

    async def update_category(
        self, db: AsyncSession, category_id: uuid.UUID, data: EquipmentCategoryUpdate
    ) -> EquipmentCategory:
        category = await self.get_category(db, category_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name"):
            await self._unique_name(db, EquipmentCategory, update_data["name"], exclude_id=category_id)
        for field, value in update_data.items():
            if value is not None:
                setattr(category, field, value)
        await db.commit()
        await db.refresh(category)
        return category

    async def delete_category(self, db: AsyncSession, category_id: uuid.UUID) -> None:
        category = await self.get_category(db, category_id)
        used = (
            await db.execute(select(func.count(Equipment.id)).where(Equipment.category_id == category_id))
        ).scalar() or 0
        if used:
            raise ConflictError(f"La categoria {category.name} è assegnata a {used} apparati")
        await db.delete(category)
        await db.commit()
        logger.info("Eliminata categoria apparati %s", category.name)

    # ------------------------------------------------------------
    # Ubicazioni
    # ------------------------------------------------------------
    async def list_locations(self, db: AsyncSession, only_active: bool = False) -> list[Location]:
        query = select(Location).order_by(Location.name.asc())
        if only_active:
            query = query.where(Location.is_active.is_(True))
        return list((await db.execute(query)).scalars().all())

    async def get_location(self, db: AsyncSession, location_id: uuid.UUID) -> Location:
        location = await db.get(Location, location_id)
        if location is None:
            raise NotFoundError(f"Ubicazione {location_id} non trovata")
        return location

    async def create_location(self, db: AsyncSession, data: LocationCreate) -> Location:
        await self._unique_name(db, Location, data.name)
        location = Location(
            name=data.name.strip(),
            address=data.address,
            description=data.description,
            is_active=True,
        )
        db.add(location)
        await db.commit()
        await db.refresh(location)
        logger.info("Creata ubicazione %s", location.name)
        return location

    async def update_location(self, db: AsyncSession, location_id: uuid.UUID, data: LocationUpdate) -> Location:
        location = await self.get_location(db, location_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name"):
            await self._unique_name(db, Location, update_data["name"], exclude_id=location_id)
        for field, value in update_data.items():
            if value is not None:
                setattr(location, field, value)
        await db.commit()
        await db.refresh(location)
        return location

    async def delete_location(self, db: AsyncSession, location_id: uuid.UUID) -> None:
        location = await self.get_location(db, location_id)
        used = (
            await db.execute(select(func.count(Equipment.id)).where(Equipment.location_id == location_id))
        ).scalar() or 0
        if used:
            raise ConflictError(f"L'ubicazione {location.name} ha {used} apparati")
        await db.delete(location)
        await db.commit()
        logger.info("Eliminata ubicazione %s", location.name)

    # ------------------------------------------------------------
    # Fornitori
    # ------------------------------------------------------------
    async def list_suppliers(self, db: AsyncSession, only_active: bool = False) -> list[Supplier]:
        query = select(Supplier).order_by(Supplier.name.asc())
        if only_active:
            query = query.where(Supplier.is_active.is_(True))
        return list((await db.execute(query)).scalars().all())

    async def get_supplier(self, db: AsyncSession, supplier_id: uuid.UUID) -> Supplier:
        supplier = await db.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundError(f"Fornitore {supplier_id} non trovato")
        return supplier

    async def create_supplier(self, db: AsyncSession, data: SupplierCreate) -> Supplier:
        await self._unique_name(db, Supplier, data.name)
        supplier = Supplier(**data.model_dump(exclude={"name"}), name=data.name.strip(), is_active=True)
        db.add(supplier)
        await db.commit()
        await db.refresh(supplier)
        logger.info("Creato fornitore %s", supplier.name)
        return supplier

    async def update_supplier(self, db: AsyncSession, supplier_id: uuid.UUID, data: SupplierUpdate) -> Supplier:
        supplier = await self.get_supplier(db, supplier_id)
        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("name"):
            await self._unique_name(db, Supplier, update_data["name"], exclude_id=supplier_id)
            update_data["name"] = update_data["name"].strip()
        for field, value in update_data.items():
            setattr(supplier, field, value)
        await db.commit()
        await db.refresh(supplier)
        return supplier

    async def delete_supplier(self, db: AsyncSession, supplier_id: uuid.UUID) -> None:
        """
        Elimina un fornitore.

        Raises:
            ConflictError: se fornisce apparati ancora attivi
        """
        supplier = await self.get_supplier(db, supplier_id)
        used = (
            await db.execute(
                select(func.count(Equipment.id)).where(
                    Equipment.supplier_id == supplier_id,
                    Equipment.is_active.is_(True),
                )
            )
        ).scalar() or 0
        if used:
            raise ConflictError(f"Il fornitore {supplier.name} ha {used} apparati attivi")
        await db.delete(supplier)
        await db.commit()
        logger.info("Eliminato fornitore %s", supplier.name)

    # ------------------------------------------------------------
    # Apparati
    # ------------------------------------------------------------
    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        status: Optional[str] = None,
        category_id: Optional[uuid.UUID] = None,
        location_id: Optional[uuid.UUID] = None,
        include_inactive: bool = False,
    ) -> tuple[list[Equipment], int]:
        conditions = []
        if not include_inactive:
            conditions.append(Equipment.is_active.is_(True))
        if status:
            conditions.append(Equipment.status == status)
        if category_id:
            conditions.append(Equipment.category_id == category_id)
        if location_id:
            conditions.append(Equipment.location_id == location_id)
        if search:
            term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Equipment.code.ilike(term),
                    Equipment.name.ilike(term),
                    Equipment.serial_number.ilike(term),
                    Equipment.brand.ilike(term),
                    Equipment.model.ilike(term),
                )
            )

        query = (
            select(Equipment)
            .where(*conditions)
            .order_by(Equipment.name.asc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        items = list((await db.execute(query)).scalars().all())
        total = (
            await db.execute(select(func.count(Equipment.id)).where(*conditions))
        ).scalar() or 0
        return items, total

    async def get_by_id(self, db: AsyncSession, equipment_id: uuid.UUID) -> Equipment:
        equipment = await db.get(Equipment, equipment_id)
        if equipment is None:
            raise NotFoundError(f"Apparato con ID {equipment_id} non trovato")
        return equipment

    async def generate_code(self, db: AsyncSession) -> str:
        """Codice casuale EMS-XXXXXX non ancora assegnato."""
        while True:
            code = random_equipment_code()
            exists = (
                await db.execute(select(Equipment.id).where(Equipment.code == code))
            ).scalar_one_or_none()
            if exists is None:
                return code

    async def _check_refs(
        self,
        db: AsyncSession,
        category_id: Optional[uuid.UUID],
        location_id: Optional[uuid.UUID],
        supplier_id: Optional[uuid.UUID] = None,
    ) -> None:
        if category_id:
            await self.get_category(db, category_id)
        if location_id:
            await self.get_location(db, location_id)
        if supplier_id:
            await self.get_supplier(db, supplier_id)

    async def create(self, db: AsyncSession, data: EquipmentCreate, user: Optional[User] = None) -> Equipment:
        await self._check_refs(db, data.category_id, data.location_id, data.supplier_id)

        equipment = Equipment(
            code=await self.generate_code(db),
            **data.model_dump(exclude={"status"}),
            status=data.status.value,
            is_active=True,
        )
        equipment.status_history.append(
            EquipmentStatusHistory(
                previous_status=None,
                new_status=equipment.status,
                reason="Alta",
                user_id=user.id if user is not None else None,
            )
        )
        db.add(equipment)
        await db.commit()
        await db.refresh(equipment)
        logger.info("Creato apparato %s - %s", equipment.code, equipment.name)
        return equipment

    async def update(self, db: AsyncSession, equipment_id: uuid.UUID, data: EquipmentUpdate) -> Equipment:
        equipment = await self.get_by_id(db, equipment_id)
        update_data = data.model_dump(exclude_unset=True)
        await self._check_refs(
            db,
            update_data.get("category_id"),
            update_data.get("location_id"),
            update_data.get("supplier_id"),
        )
        for field, value in update_data.items():
            setattr(equipment, field, value)
        await db.commit()
        await db.refresh(equipment)
        logger.info("Aggiornato apparato %s", equipment.code)
        return equipment

    async def change_status(
        self,
        db: AsyncSession,
        equipment_id: uuid.UUID,
        new_status: str,
        reason: Optional[str] = None,
        user: Optional[User] = None,
    ) -> Equipment:
        """Cambia lo stato registrando la variazione nello storico."""
        equipment = await self.get_by_id(db, equipment_id)
        if equipment.status == new_status:
            return equipment

        self._record_status(db, equipment, new_status, reason, user)
        await db.commit()
        await db.refresh(equipment)
        return equipment

    def _record_status(
        self,
        db: AsyncSession,
        equipment: Equipment,
        new_status: str,
        reason: Optional[str],
        user: Optional[User],
    ) -> None:
        """Aggiorna lo stato e aggiunge la riga di storico, senza commit."""
        db.add(
            EquipmentStatusHistory(
                equipment_id=equipment.id,
                previous_status=equipment.status,
                new_status=new_status,
                reason=reason,
                changed_at=utcnow(),
                user_id=user.id if user is not None else None,
            )
        )
        logger.info("Apparato %s: %s → %s", equipment.code, equipment.status, new_status)
        equipment.status = new_status

    async def status_history(self, db: AsyncSession, equipment_id: uuid.UUID) -> list[EquipmentStatusHistory]:
        await self.get_by_id(db, equipment_id)
        result = await db.execute(
            select(EquipmentStatusHistory)
            .where(EquipmentStatusHistory.equipment_id == equipment_id)
            .order_by(EquipmentStatusHistory.changed_at.asc())
        )
        return list(result.scalars().all())

    async def delete(self, db: AsyncSession, equipment_id: uuid.UUID) -> None:
        """Disattiva un apparato (i movimenti restano consultabili)."""
        equipment = await self.get_by_id(db, equipment_id)
        equipment.is_active = False
        await db.commit()
        logger.info("Disattivato apparato %s", equipment.code)

    async def low_stock(self, db: AsyncSession) -> list[Equipment]:
        result = await db.execute(
            select(Equipment)
            .where(Equipment.is_active.is_(True), Equipment.stock <= Equipment.min_stock)
            .order_by(Equipment.stock.asc(), Equipment.name.asc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------
    # Movimenti
    # ------------------------------------------------------------
    async def list_movements(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        movement_type: Optional[str] = None,
        equipment_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[InventoryMovement], int]:
        conditions = []
        if movement_type:
            conditions.append(InventoryMovement.movement_type == movement_type)
        if equipment_id:
            conditions.append(
                InventoryMovement.items.any(InventoryMovementItem.equipment_id == equipment_id)
            )
        query = (
            select(InventoryMovement)
            .where(*conditions)
            .order_by(InventoryMovement.movement_date.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        movements = list((await db.execute(query)).scalars().all())
        total = (
            await db.execute(select(func.count(InventoryMovement.id)).where(*conditions))
        ).scalar() or 0
        return movements, total

    async def get_movement(self, db: AsyncSession, movement_id: uuid.UUID) -> InventoryMovement:
        movement = await db.get(InventoryMovement, movement_id)
        if movement is None:
            raise NotFoundError(f"Movimento {movement_id} non trovato")
        return movement

    async def create_movement(
        self,
        db: AsyncSession,
        data: MovementCreate,
        user: Optional[User] = None,
    ) -> InventoryMovement:
        """
        Registra un movimento e aggiorna la giacenza degli apparati.

        Raises:
            NotFoundError: apparato inesistente
            BusinessValidationError: apparato ripetuto o disattivato
        """
        equipment_ids = [item.equipment_id for item in data.items]
        if len(set(equipment_ids)) != len(equipment_ids):
            raise BusinessValidationError("Lo stesso apparato compare più volte nel movimento")

        movement = InventoryMovement(
            movement_type=data.movement_type.value,
            subtype=data.subtype,
            movement_date=data.movement_date or utcnow(),
            notes=data.notes,
            user_id=user.id if user is not None else None,
        )

        for item in data.items:
            equipment = await self.get_by_id(db, item.equipment_id)
            if not equipment.is_active:
                raise BusinessValidationError(f"L'apparato {equipment.code} è disattivato")

            equipment.stock, applied = apply_stock(equipment.stock, movement.movement_type, item.quantity)
            if applied < item.quantity:
                logger.warning(
                    "Salida di %s unità di %s: scaricate solo %s",
                    item.quantity, equipment.code, applied,
                )
            movement.items.append(
                InventoryMovementItem(
                    equipment_id=equipment.id,
                    quantity=item.quantity,
                    applied_quantity=applied,
                )
            )

        db.add(movement)
        await db.commit()
        await db.refresh(movement, ["items"])
        logger.info(
            "Registrato movimento %s (%s) con %s righe",
            movement.id, movement.movement_type, len(movement.items),
        )
        return movement

    async def delete_movement(self, db: AsyncSession, movement_id: uuid.UUID) -> None:
        """Elimina un movimento annullandone l'effetto sulla giacenza."""
        movement = await self.get_movement(db, movement_id)

        for item in movement.items:
            equipment = await self.get_by_id(db, item.equipment_id)
            if movement.movement_type == MovementType.IN.value:
                equipment.stock = max(0, equipment.stock - item.applied_quantity)
            else:
                equipment.stock += item.applied_quantity

        await db.delete(movement)
        await db.commit()
        logger.info("Eliminato movimento %s", movement_id)

    # ------------------------------------------------------------
    # Consegne
    # ------------------------------------------------------------
    async def list_assignments(
        self,
        db: AsyncSession,
        status: Optional[str] = None,
        equipment_id: Optional[uuid.UUID] = None,
        client_id: Optional[uuid.UUID] = None,
    ) -> list[EquipmentAssignment]:
        conditions = []
        if status:
            conditions.append(EquipmentAssignment.status == status)
        if equipment_id:
            conditions.append(EquipmentAssignment.equipment_id == equipment_id)
        if client_id:
            conditions.append(EquipmentAssignment.client_id == client_id)
        result = await db.execute(
            select(EquipmentAssignment)
            .where(*conditions)
            .order_by(EquipmentAssignment.assigned_at.desc())
        )
        return list(result.scalars().all())

    async def get_assignment(self, db: AsyncSession, assignment_id: uuid.UUID) -> EquipmentAssignment:
        assignment = await db.get(EquipmentAssignment, assignment_id)
        if assignment is None:
            raise NotFoundError(f"Consegna {assignment_id} non trovata")
        return assignment

    async def _get_client(self, db: AsyncSession, client_id: uuid.UUID) -> Client:
        client = await db.get(Client, client_id)
        if client is None:
            raise NotFoundError(f"Cliente con ID {client_id} non trovato")
        return client

    async def create_assignment(
        self,
        db: AsyncSession,
        data: AssignmentCreate,
        user: Optional[User] = None,
    ) -> EquipmentAssignment:
        """
        Consegna apparati scaricandoli dalla giacenza.

        Un apparato Disponible passa a En uso.

        Raises:
            NotFoundError: apparato o cliente inesistente
            BusinessValidationError: apparato disattivato o giacenza insufficiente
        """
        equipment = await self.get_by_id(db, data.equipment_id)
        if not equipment.is_active:
            raise BusinessValidationError(f"L'apparato {equipment.code} è disattivato")
        if data.client_id:
            await self._get_client(db, data.client_id)
        if equipment.stock < data.quantity:
            raise BusinessValidationError(
                f"Giacenza insufficiente per {equipment.code}: disponibili {equipment.stock}",
                extra={"stock": equipment.stock},
            )

        assignment = EquipmentAssignment(
            **data.model_dump(exclude={"assigned_at"}),
            assigned_at=data.assigned_at or utcnow(),
            status=AssignmentStatus.ACTIVE.value,
        )
        equipment.stock -= data.quantity
        if equipment.status == EquipmentStatus.AVAILABLE.value:
            self._record_status(db, equipment, EquipmentStatus.IN_USE.value, "Consegna", user)

        db.add(assignment)
        await db.commit()
        await db.refresh(assignment)
        logger.info(
            "Consegnate %s unità di %s (stock residuo %s)",
            assignment.quantity, equipment.code, equipment.stock,
        )
        return assignment

    async def _release_if_idle(
        self,
        db: AsyncSession,
        equipment: Equipment,
        closed_id: uuid.UUID,
        user: Optional[User],
    ) -> None:
        """Riporta a Disponible un apparato En uso senza altre consegne attive."""
        if equipment.status != EquipmentStatus.IN_USE.value:
            return
        others = (
            await db.execute(
                select(func.count(EquipmentAssignment.id)).where(
                    EquipmentAssignment.equipment_id == equipment.id,
                    EquipmentAssignment.status == AssignmentStatus.ACTIVE.value,
                    EquipmentAssignment.id != closed_id,
                )
            )
        ).scalar() or 0
        if not others:
            self._record_status(db, equipment, EquipmentStatus.AVAILABLE.value, "Restituzione", user)

    async def _close_assignment(
        self,
        db: AsyncSession,
        assignment_id: uuid.UUID,
        new_status: str,
        notes: Optional[str],
        user: Optional[User],
    ) -> EquipmentAssignment:
        assignment = await self.get_assignment(db, assignment_id)
        if assignment.status != AssignmentStatus.ACTIVE.value:
            raise BusinessValidationError(f"La consegna è già {assignment.status}")

        equipment = await self.get_by_id(db, assignment.equipment_id)
        assignment.status = new_status
        if notes:
            assignment.notes = notes
        if new_status == AssignmentStatus.RETURNED.value:
            assignment.returned_at = utcnow()
            equipment.stock += assignment.quantity
        await self._release_if_idle(db, equipment, assignment.id, user)

        await db.commit()
        await db.refresh(assignment)
        logger.info("Consegna %s di %s: %s", assignment.id, equipment.code, new_status)
        return assignment

    async def return_assignment(
        self,
        db: AsyncSession,
        assignment_id: uuid.UUID,
        notes: Optional[str] = None,
        user: Optional[User] = None,
    ) -> EquipmentAssignment:
        """Restituzione: le unità tornano in giacenza."""
        return await self._close_assignment(db, assignment_id, AssignmentStatus.RETURNED.value, notes, user)

    async def mark_assignment_lost(
        self,
        db: AsyncSession,
        assignment_id: uuid.UUID,
        notes: Optional[str] = None,
        user: Optional[User] = None,
    ) -> EquipmentAssignment:
        """Unità perse: la giacenza non viene reintegrata."""
        return await self._close_assignment(db, assignment_id, AssignmentStatus.LOST.value, notes, user)

    async def delete_assignment(
        self,
        db: AsyncSession,
        assignment_id: uuid.UUID,
        user: Optional[User] = None,
    ) -> None:
        """Elimina una consegna; se attiva le unità tornano in giacenza."""
        assignment = await self.get_assignment(db, assignment_id)
        if assignment.status == AssignmentStatus.ACTIVE.value:
            equipment = await self.get_by_id(db, assignment.equipment_id)
            equipment.stock += assignment.quantity
            await self._release_if_idle(db, equipment, assignment.id, user)
        await db.delete(assignment)
        await db.commit()
        logger.info("Eliminata consegna %s", assignment_id)

    # ------------------------------------------------------------
    # Manutenzioni
    # ------------------------------------------------------------
    async def list_maintenance(
        self,
        db: AsyncSession,
        equipment_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
    ) -> list[MaintenanceRecord]:
        conditions = []
        if equipment_id:
            conditions.append(MaintenanceRecord.equipment_id == equipment_id)
        if status:
            conditions.append(MaintenanceRecord.status == status)
        result = await db.execute(
            select(MaintenanceRecord)
            .where(*conditions)
            .order_by(MaintenanceRecord.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_maintenance(self, db: AsyncSession, record_id: uuid.UUID) -> MaintenanceRecord:
        record = await db.get(MaintenanceRecord, record_id)
        if record is None:
            raise NotFoundError(f"Manutenzione {record_id} non trovata")
        return record

    def _sync_repair_status(
        self,
        db: AsyncSession,
        equipment: Equipment,
        record: MaintenanceRecord,
        user: Optional[User],
    ) -> None:
        # Riparazione in corso: apparato in riparazione; completata: di nuovo disponibile
        if (
            record.maintenance_type == MaintenanceType.CORRECTIVE.value
            and record.status == MaintenanceStatus.IN_PROGRESS.value
            and equipment.status in (EquipmentStatus.AVAILABLE.value, EquipmentStatus.DAMAGED.value)
        ):
            self._record_status(db, equipment, EquipmentStatus.IN_REPAIR.value, "Riparazione", user)
        elif (
            record.status == MaintenanceStatus.COMPLETED.value
            and equipment.status == EquipmentStatus.IN_REPAIR.value
        ):
            self._record_status(db, equipment, EquipmentStatus.AVAILABLE.value, "Riparazione completata", user)

    async def create_maintenance(
        self,
        db: AsyncSession,
        data: MaintenanceCreate,
        user: Optional[User] = None,
    ) -> MaintenanceRecord:
        equipment = await self.get_by_id(db, data.equipment_id)
        record = MaintenanceRecord(
            **data.model_dump(exclude={"maintenance_type", "status"}),
            maintenance_type=data.maintenance_type.value,
            status=data.status.value,
        )
        if record.status == MaintenanceStatus.COMPLETED.value and record.finished_on is None:
            record.finished_on = today()
        self._sync_repair_status(db, equipment, record, user)

        db.add(record)
        await db.commit()
        await db.refresh(record)
        logger.info(
            "Registrata manutenzione %s per %s (%s)",
            record.maintenance_type, equipment.code, record.status,
        )
        return record

    async def update_maintenance(
        self,
        db: AsyncSession,
        record_id: uuid.UUID,
        data: MaintenanceUpdate,
        user: Optional[User] = None,
    ) -> MaintenanceRecord:
        record = await self.get_maintenance(db, record_id)
        equipment = await self.get_by_id(db, record.equipment_id)
        previous_status = record.status

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(record, field, value.value if isinstance(value, Enum) else value)
        if record.status == MaintenanceStatus.COMPLETED.value and record.finished_on is None:
            record.finished_on = today()
        if record.status != previous_status:
            self._sync_repair_status(db, equipment, record, user)

        await db.commit()
        await db.refresh(record)
        logger.info("Manutenzione %s: %s → %s", record.id, previous_status, record.status)
        return record

    async def delete_maintenance(self, db: AsyncSession, record_id: uuid.UUID) -> None:
        record = await self.get_maintenance(db, record_id)
        await db.delete(record)
        await db.commit()
        logger.info("Eliminata manutenzione %s", record_id)

    # ------------------------------------------------------------
    # Materiali di installazione
    # ------------------------------------------------------------
    async def list_materials(self, db: AsyncSession, client_id: uuid.UUID) -> list[InstallationMaterial]:
        await self._get_client(db, client_id)
        result = await db.execute(
            select(InstallationMaterial)
            .where(InstallationMaterial.client_id == client_id)
            .order_by(InstallationMaterial.installed_at.desc())
        )
        return list(result.scalars().all())

    async def add_materials(
        self,
        db: AsyncSession,
        data: InstallationMaterialsCreate,
        user: Optional[User] = None,
    ) -> list[InstallationMaterial]:
        """
        Registra i materiali installati presso un cliente.

        La giacenza viene scaricata con una Salida (causale Asignación).

        Raises:
            NotFoundError: cliente o apparato inesistente
            BusinessValidationError: apparato ripetuto, disattivato o con giacenza insufficiente
        """
        client = await self._get_client(db, data.client_id)
        equipment_ids = [item.equipment_id for item in data.items]
        if len(set(equipment_ids)) != len(equipment_ids):
            raise BusinessValidationError("Lo stesso apparato compare più volte")

        installed_at = data.installed_at or utcnow()
        movement = InventoryMovement(
            movement_type=MovementType.OUT.value,
            subtype=MovementSubtype.ASSIGNMENT.value,
            movement_date=installed_at,
            notes=f"Installazione cliente {client.code}",
            user_id=user.id if user is not None else None,
        )
        lines = []
        for item in data.items:
            equipment = await self.get_by_id(db, item.equipment_id)
            if not equipment.is_active:
                raise BusinessValidationError(f"L'apparato {equipment.code} è disattivato")
            if equipment.stock < item.quantity:
                raise BusinessValidationError(
                    f"Giacenza insufficiente per {equipment.code}: disponibili {equipment.stock}",
                    extra={"stock": equipment.stock},
                )
            lines.append((equipment, item))

        materials = []
        for equipment, item in lines:
            equipment.stock, applied = apply_stock(equipment.stock, MovementType.OUT.value, item.quantity)
            movement.items.append(
                InventoryMovementItem(
                    equipment_id=equipment.id,
                    quantity=item.quantity,
                    applied_quantity=applied,
                )
            )
            materials.append(
                InstallationMaterial(
                    client_id=client.id,
                    equipment_id=equipment.id,
                    quantity=item.quantity,
                    installed_at=installed_at,
                    notes=data.notes,
                )
            )

        db.add(movement)
        db.add_all(materials)
        await db.commit()
        for material in materials:
            await db.refresh(material)
        logger.info("Installati %s materiali presso %s", len(materials), client.code)
        return materials

    async def delete_material(
        self,
        db: AsyncSession,
        material_id: uuid.UUID,
        return_stock: bool = True,
        user: Optional[User] = None,
    ) -> None:
        """Elimina un materiale; con return_stock la quantità rientra con una Entrada (Devolución)."""
        material = await db.get(InstallationMaterial, material_id)
        if material is None:
            raise NotFoundError(f"Materiale {material_id} non trovato")

        if return_stock:
            equipment = await self.get_by_id(db, material.equipment_id)
            equipment.stock, applied = apply_stock(equipment.stock, MovementType.IN.value, material.quantity)
            movement = InventoryMovement(
                movement_type=MovementType.IN.value,
                subtype=MovementSubtype.RETURN.value,
                movement_date=utcnow(),
                notes="Rimozione materiale installato",
                user_id=user.id if user is not None else None,
            )
            movement.items.append(
                InventoryMovementItem(
                    equipment_id=equipment.id,
                    quantity=material.quantity,
                    applied_quantity=applied,
                )
            )
            db.add(movement)

        await db.delete(material)
        await db.commit()
        logger.info("Eliminato materiale %s (giacenza reintegrata: %s)", material_id, return_stock)
