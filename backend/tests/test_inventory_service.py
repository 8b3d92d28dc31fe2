"""
Test per InventoryService: apparati, storico stati, movimenti,
fornitori, consegne, manutenzioni e materiali installati.
"""

import uuid
from decimal import Decimal

import pytest

from isp_billing.core.exceptions import BusinessValidationError, ConflictError, DuplicateError, NotFoundError
from isp_billing.models.inventory import (
    AssignmentStatus,
    EquipmentStatus,
    MaintenanceStatus,
    MaintenanceType,
    MovementSubtype,
    MovementType,
)
from isp_billing.schemas.inventory import (
    AssignmentCreate,
    EquipmentCategoryCreate,
    EquipmentCreate,
    InstallationMaterialsCreate,
    MaintenanceCreate,
    MaintenanceUpdate,
    MovementCreate,
    MovementItemCreate,
    SupplierCreate,
)
from isp_billing.services.inventory_service import InventoryService, apply_stock


# ============================================================
# Giacenza (funzione pura)
# ============================================================


class TestApplyStock:
    """Test per apply_stock."""

    def test_entry_adds(self):
        """Test una Entrada somma la quantità."""
        assert apply_stock(3, MovementType.IN.value, 2) == (5, 2)

    def test_exit_floored_at_zero(self):
        """Test una Salida oltre la giacenza si ferma a zero."""
        assert apply_stock(2, MovementType.OUT.value, 5) == (0, 2)


# ============================================================
# Apparati
# ============================================================


class TestEquipment:
    """Test per creazione apparati e cambio di stato."""

    @pytest.mark.asyncio
    async def test_create_assigns_code(self, db):
        """Test codice EMS-XXXXXX assegnato alla creazione."""
        equipment = await InventoryService().create(db, EquipmentCreate(name="Router TP-Link", stock=4))

        assert equipment.code.startswith("EMS-")
        assert len(equipment.code) == 10
        assert equipment.status == EquipmentStatus.AVAILABLE.value

    @pytest.mark.asyncio
    async def test_status_change_history(self, db):
        """Test il cambio di stato viene registrato nello storico."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="ONU Huawei"))

        await service.change_status(db, equipment.id, EquipmentStatus.DAMAGED.value, reason="Caída")
        history = await service.status_history(db, equipment.id)

        assert [h.new_status for h in history] == [
            EquipmentStatus.AVAILABLE.value,
            EquipmentStatus.DAMAGED.value,
        ]
        assert history[-1].previous_status == EquipmentStatus.AVAILABLE.value

    @pytest.mark.asyncio
    async def test_low_stock(self, db):
        """Test apparati sotto la scorta minima."""
        service = InventoryService()
        await service.create(db, EquipmentCreate(name="Cable UTP", stock=1, min_stock=5))
        await service.create(db, EquipmentCreate(name="Conectores", stock=50, min_stock=5))

        low = await service.low_stock(db)

        assert [e.name for e in low] == ["Cable UTP"]

    @pytest.mark.asyncio
    async def test_duplicate_category(self, db):
        """Test nome categoria già esistente."""
        service = InventoryService()
        await service.create_category(db, EquipmentCategoryCreate(name="Routers"))

        with pytest.raises(DuplicateError):
            await service.create_category(db, EquipmentCategoryCreate(name="Routers"))


# ============================================================
# Movimenti
# ============================================================


class TestMovements:
    """Test per movimenti di magazzino."""

    @pytest.mark.asyncio
    async def test_exit_never_negative_and_delete_reverts(self, db):
        """Test Salida oltre giacenza → 0; eliminarla ripristina la giacenza."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Antena", stock=2))

        movement = await service.create_movement(
            db,
            MovementCreate(
                movement_type=MovementType.OUT,
                items=[MovementItemCreate(equipment_id=equipment.id, quantity=5)],
            ),
        )
        assert equipment.stock == 0
        assert movement.items[0].applied_quantity == 2

        await service.delete_movement(db, movement.id)

        assert equipment.stock == 2

    @pytest.mark.asyncio
    async def test_entry_adds_stock(self, db):
        """Test Entrada aumenta la giacenza."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Switch", stock=1))

        await service.create_movement(
            db,
            MovementCreate(
                movement_type=MovementType.IN,
                subtype="Compra",
                items=[MovementItemCreate(equipment_id=equipment.id, quantity=3)],
            ),
        )

        assert equipment.stock == 4

    @pytest.mark.asyncio
    async def test_repeated_equipment_rejected(self, db):
        """Test lo stesso apparato due volte nello stesso movimento."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Switch", stock=1))
        item = MovementItemCreate(equipment_id=equipment.id, quantity=1)

        with pytest.raises(BusinessValidationError):
            await service.create_movement(
                db, MovementCreate(movement_type=MovementType.IN, items=[item, item])
            )


# ============================================================
# Fornitori
# ============================================================


class TestSuppliers:
    """Test per anagrafica fornitori."""

    @pytest.mark.asyncio
    async def test_duplicate_name_ignores_case(self, db):
        """Test nome fornitore già esistente, maiuscole ignorate."""
        service = InventoryService()
        await service.create_supplier(db, SupplierCreate(name="Ubiquiti Nicaragua"))

        with pytest.raises(DuplicateError):
            await service.create_supplier(db, SupplierCreate(name="ubiquiti nicaragua "))

    @pytest.mark.asyncio
    async def test_delete_refused_with_active_equipment(self, db):
        """Test un fornitore con apparati attivi non si elimina."""
        service = InventoryService()
        supplier = await service.create_supplier(db, SupplierCreate(name="TP-Link"))
        equipment = await service.create(db, EquipmentCreate(name="Router", supplier_id=supplier.id))

        with pytest.raises(ConflictError):
            await service.delete_supplier(db, supplier.id)

        await service.delete(db, equipment.id)
        await service.delete_supplier(db, supplier.id)

        with pytest.raises(NotFoundError):
            await service.get_supplier(db, supplier.id)

    @pytest.mark.asyncio
    async def test_unknown_supplier_on_equipment(self, db):
        """Test apparato con fornitore inesistente."""
        with pytest.raises(NotFoundError):
            await InventoryService().create(
                db, EquipmentCreate(name="Router", supplier_id=uuid.uuid4())
            )


# ============================================================
# Consegne
# ============================================================


class TestAssignments:
    """Test per consegna e restituzione di apparati."""

    @pytest.mark.asyncio
    async def test_assignment_reduces_stock_and_sets_in_use(self, db, make_client):
        """Test la consegna scarica la giacenza e porta l'apparato En uso."""
        client = await make_client()
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="ONU Huawei", stock=5))

        assignment = await service.create_assignment(
            db, AssignmentCreate(equipment_id=equipment.id, quantity=2, client_id=client.id)
        )

        assert assignment.status == AssignmentStatus.ACTIVE.value
        assert equipment.stock == 3
        assert equipment.status == EquipmentStatus.IN_USE.value
        history = await service.status_history(db, equipment.id)
        assert history[-1].new_status == EquipmentStatus.IN_USE.value

    @pytest.mark.asyncio
    async def test_insufficient_stock(self, db):
        """Test quantità oltre la giacenza: nessuna consegna."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Antena", stock=1))

        with pytest.raises(BusinessValidationError) as exc_info:
            await service.create_assignment(
                db, AssignmentCreate(equipment_id=equipment.id, quantity=3, employee_name="Carlos")
            )

        assert exc_info.value.extra == {"stock": 1}
        assert equipment.stock == 1
        assert await service.list_assignments(db) == []

    @pytest.mark.asyncio
    async def test_return_restores_stock_and_status(self, db):
        """Test restituzione: giacenza reintegrata e apparato di nuovo Disponible."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Router", stock=2))
        first = await service.create_assignment(
            db, AssignmentCreate(equipment_id=equipment.id, employee_name="Carlos")
        )
        second = await service.create_assignment(
            db, AssignmentCreate(equipment_id=equipment.id, employee_name="Luis")
        )

        await service.return_assignment(db, first.id)
        assert equipment.stock == 1
        assert equipment.status == EquipmentStatus.IN_USE.value

        returned = await service.return_assignment(db, second.id, notes="Sin daños")
        assert returned.status == AssignmentStatus.RETURNED.value
        assert returned.returned_at is not None
        assert returned.notes == "Sin daños"
        assert equipment.stock == 2
        assert equipment.status == EquipmentStatus.AVAILABLE.value

    @pytest.mark.asyncio
    async def test_return_twice(self, db):
        """Test una consegna già chiusa non si restituisce."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Router", stock=1))
        assignment = await service.create_assignment(
            db, AssignmentCreate(equipment_id=equipment.id, employee_name="Carlos")
        )
        await service.return_assignment(db, assignment.id)

        with pytest.raises(BusinessValidationError):
            await service.return_assignment(db, assignment.id)

    @pytest.mark.asyncio
    async def test_lost_keeps_stock(self, db):
        """Test unità perse: la giacenza non rientra."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Router", stock=2))
        assignment = await service.create_assignment(
            db, AssignmentCreate(equipment_id=equipment.id, employee_name="Carlos")
        )

        lost = await service.mark_assignment_lost(db, assignment.id)

        assert lost.status == AssignmentStatus.LOST.value
        assert equipment.stock == 1

    @pytest.mark.asyncio
    async def test_delete_active_returns_stock(self, db, make_client):
        """Test eliminare una consegna attiva reintegra la giacenza."""
        client = await make_client()
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Router", stock=4))
        assignment = await service.create_assignment(
            db, AssignmentCreate(equipment_id=equipment.id, quantity=3, client_id=client.id)
        )

        await service.delete_assignment(db, assignment.id)

        assert equipment.stock == 4
        assert equipment.status == EquipmentStatus.AVAILABLE.value
        assert await service.list_assignments(db, client_id=client.id) == []

    def test_client_or_employee_required(self):
        """Test serve il cliente oppure il dipendente."""
        with pytest.raises(ValueError):
            AssignmentCreate(equipment_id=uuid.uuid4(), employee_name="  ")


# ============================================================
# Manutenzioni
# ============================================================


class TestMaintenance:
    """Test per manutenzioni e riparazioni."""

    @pytest.mark.asyncio
    async def test_repair_cycle(self, db):
        """Test riparazione in corso → En reparación; completata → Disponible."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Radio Mikrotik"))

        record = await service.create_maintenance(
            db,
            MaintenanceCreate(
                equipment_id=equipment.id,
                maintenance_type=MaintenanceType.CORRECTIVE,
                status=MaintenanceStatus.IN_PROGRESS,
                reported_problem="No enciende",
            ),
        )
        assert equipment.status == EquipmentStatus.IN_REPAIR.value

        completed = await service.update_maintenance(
            db,
            record.id,
            MaintenanceUpdate(
                status=MaintenanceStatus.COMPLETED,
                solution="Fuente cambiada",
                cost=Decimal("350"),
            ),
        )

        assert completed.status == MaintenanceStatus.COMPLETED.value
        assert completed.finished_on is not None
        assert completed.cost == Decimal("350")
        assert equipment.status == EquipmentStatus.AVAILABLE.value
        history = await service.status_history(db, equipment.id)
        assert [h.new_status for h in history][-2:] == [
            EquipmentStatus.IN_REPAIR.value,
            EquipmentStatus.AVAILABLE.value,
        ]

    @pytest.mark.asyncio
    async def test_preventive_keeps_status(self, db):
        """Test una manutenzione preventiva non cambia lo stato."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Switch"))

        await service.create_maintenance(
            db,
            MaintenanceCreate(
                equipment_id=equipment.id,
                maintenance_type=MaintenanceType.PREVENTIVE,
                status=MaintenanceStatus.IN_PROGRESS,
            ),
        )

        assert equipment.status == EquipmentStatus.AVAILABLE.value

    @pytest.mark.asyncio
    async def test_list_by_status(self, db):
        """Test filtro per stato."""
        service = InventoryService()
        equipment = await service.create(db, EquipmentCreate(name="Switch"))
        await service.create_maintenance(
            db, MaintenanceCreate(equipment_id=equipment.id, maintenance_type=MaintenanceType.PREVENTIVE)
        )

        scheduled = await service.list_maintenance(db, status=MaintenanceStatus.SCHEDULED.value)
        completed = await service.list_maintenance(db, status=MaintenanceStatus.COMPLETED.value)

        assert len(scheduled) == 1
        assert completed == []


# ============================================================
# Materiali di installazione
# ============================================================


class TestInstallationMaterials:
    """Test per materiali installati presso i clienti."""

    @pytest.mark.asyncio
    async def test_materials_recorded_as_exit(self, db, make_client):
        """Test i materiali scaricano la giacenza con una Salida (Asignación)."""
        client = await make_client()
        service = InventoryService()
        cable = await service.create(db, EquipmentCreate(name="Cable UTP", stock=100))
        connectors = await service.create(db, EquipmentCreate(name="Conectores RJ45", stock=20))

        materials = await service.add_materials(
            db,
            InstallationMaterialsCreate(
                client_id=client.id,
                items=[
                    MovementItemCreate(equipment_id=cable.id, quantity=30),
                    MovementItemCreate(equipment_id=connectors.id, quantity=2),
                ],
            ),
        )

        assert len(materials) == 2
        assert (cable.stock, connectors.stock) == (70, 18)
        movements, total = await service.list_movements(db)
        assert total == 1
        assert movements[0].movement_type == MovementType.OUT.value
        assert movements[0].subtype == MovementSubtype.ASSIGNMENT.value
        assert len(await service.list_materials(db, client.id)) == 2

    @pytest.mark.asyncio
    async def test_insufficient_stock_changes_nothing(self, db, make_client):
        """Test una riga senza giacenza annulla l'intera installazione."""
        client = await make_client()
        service = InventoryService()
        cable = await service.create(db, EquipmentCreate(name="Cable UTP", stock=100))
        antenna = await service.create(db, EquipmentCreate(name="Antena", stock=0))

        with pytest.raises(BusinessValidationError):
            await service.add_materials(
                db,
                InstallationMaterialsCreate(
                    client_id=client.id,
                    items=[
                        MovementItemCreate(equipment_id=cable.id, quantity=30),
                        MovementItemCreate(equipment_id=antenna.id, quantity=1),
                    ],
                ),
            )

        assert cable.stock == 100

    @pytest.mark.asyncio
    async def test_delete_returns_stock(self, db, make_client):
        """Test eliminare un materiale lo rimette in giacenza con una Entrada (Devolución)."""
        client = await make_client()
        service = InventoryService()
        cable = await service.create(db, EquipmentCreate(name="Cable UTP", stock=100))
        [material] = await service.add_materials(
            db,
            InstallationMaterialsCreate(
                client_id=client.id,
                items=[MovementItemCreate(equipment_id=cable.id, quantity=30)],
            ),
        )

        await service.delete_material(db, material.id)

        assert cable.stock == 100
        entries, _ = await service.list_movements(db, movement_type=MovementType.IN.value)
        assert [m.subtype for m in entries] == [MovementSubtype.RETURN.value]
        assert await service.list_materials(db, client.id) == []
