"""
Router FastAPI per l'Inventario Apparati
Progetto: ISP Billing (Gestionale ISP)

Endpoint per:
- categorie e ubicazioni
- apparati con cambio di stato e storico
- movimenti di magazzino (entrate/uscite)
- fornitori, consegne, manutenzioni e materiali installati
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from isp_billing.core.database import get_db
from isp_billing.core.deps import AdminUser, CurrentStaff
from isp_billing.core.seed import SeedData, get_seed_data
from isp_billing.models.inventory import AssignmentStatus, EquipmentStatus, MaintenanceStatus, MovementType
from isp_billing.schemas.common import count_pages
from isp_billing.schemas.inventory import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentReturn,
    EquipmentCategoryCreate,
    EquipmentCategoryRead,
    EquipmentCategoryUpdate,
    EquipmentCreate,
    EquipmentList,
    EquipmentRead,
    EquipmentStatusChange,
    EquipmentUpdate,
    InstallationMaterialRead,
    InstallationMaterialsCreate,
    LocationCreate,
    LocationRead,
    LocationUpdate,
    MaintenanceCreate,
    MaintenanceRead,
    MaintenanceUpdate,
    MovementCreate,
    MovementList,
    MovementRead,
    StatusHistoryRead,
    SupplierCreate,
    SupplierRead,
    SupplierUpdate,
)
from isp_billing.services.inventory_service import InventoryService

router = APIRouter(
    prefix="/inventario",
    tags=["Inventario"],
)


def get_inventory_service() -> InventoryService:
    return InventoryService()


# -------------------------------------------------------------------
# Categorie
# -------------------------------------------------------------------

@router.get("/categorias", name="inventario_categorie", response_model=list[EquipmentCategoryRead])
async def list_categories(
    _: CurrentStaff,
    only_active: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[EquipmentCategoryRead]:
    categories = await service.list_categories(db, only_active=only_active)
    return [EquipmentCategoryRead.model_validate(c) for c in categories]


@router.post(
    "/categorias",
    name="inventario_categoria_crea",
    response_model=EquipmentCategoryRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_category(
    data: EquipmentCategoryCreate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> EquipmentCategoryRead:
    return EquipmentCategoryRead.model_validate(await service.create_category(db, data))


@router.put(
    "/categorias/{category_id}",
    name="inventario_categoria_aggiorna",
    response_model=EquipmentCategoryRead,
)
async def update_category(
    category_id: uuid.UUID,
    data: EquipmentCategoryUpdate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> EquipmentCategoryRead:
    return EquipmentCategoryRead.model_validate(await service.update_category(db, category_id, data))


@router.delete(
    "/categorias/{category_id}",
    name="inventario_categoria_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_category(
    category_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> None:
    await service.delete_category(db, category_id)


# -------------------------------------------------------------------
# Ubicazioni
# -------------------------------------------------------------------

@router.get("/ubicaciones", name="inventario_ubicazioni", response_model=list[LocationRead])
async def list_locations(
    _: CurrentStaff,
    only_active: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[LocationRead]:
    return [LocationRead.model_validate(loc) for loc in await service.list_locations(db, only_active)]


@router.post(
    "/ubicaciones",
    name="inventario_ubicazione_crea",
    response_model=LocationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_location(
    data: LocationCreate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> LocationRead:
    return LocationRead.model_validate(await service.create_location(db, data))


@router.put("/ubicaciones/{location_id}", name="inventario_ubicazione_aggiorna", response_model=LocationRead)
async def update_location(
    location_id: uuid.UUID,
    data: LocationUpdate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> LocationRead:
    return LocationRead.model_validate(await service.update_location(db, location_id, data))


@router.delete(
    "/ubicaciones/{location_id}",
    name="inventario_ubicazione_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_location(
    location_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> None:
    await service.delete_location(db, location_id)


# -------------------------------------------------------------------
# Fornitori
# -------------------------------------------------------------------

@router.get("/proveedores", name="inventario_fornitori", response_model=list[SupplierRead])
async def list_suppliers(
    _: CurrentStaff,
    only_active: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[SupplierRead]:
    return [SupplierRead.model_validate(s) for s in await service.list_suppliers(db, only_active)]


@router.get("/proveedores/{supplier_id}", name="inventario_fornitore", response_model=SupplierRead)
async def get_supplier(
    supplier_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> SupplierRead:
    return SupplierRead.model_validate(await service.get_supplier(db, supplier_id))


@router.post(
    "/proveedores",
    name="inventario_fornitore_crea",
    response_model=SupplierRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_supplier(
    data: SupplierCreate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> SupplierRead:
    return SupplierRead.model_validate(await service.create_supplier(db, data))


@router.put("/proveedores/{supplier_id}", name="inventario_fornitore_aggiorna", response_model=SupplierRead)
async def update_supplier(
    supplier_id: uuid.UUID,
    data: SupplierUpdate,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> SupplierRead:
    return SupplierRead.model_validate(await service.update_supplier(db, supplier_id, data))


@router.delete(
    "/proveedores/{supplier_id}",
    name="inventario_fornitore_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_supplier(
    supplier_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> None:
    """Rifiutata (409) se il fornitore ha apparati attivi."""
    await service.delete_supplier(db, supplier_id)


# -------------------------------------------------------------------
# Movimenti
# -------------------------------------------------------------------

@router.get("/movimientos", name="inventario_movimenti", response_model=MovementList)
async def list_movements(
    _: CurrentStaff,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    movement_type: Optional[MovementType] = Query(None, alias="type"),
    equipment_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> MovementList:
    movements, total = await service.list_movements(
        db,
        page=page,
        per_page=per_page,
        movement_type=movement_type.value if movement_type else None,
        equipment_id=equipment_id,
    )
    return MovementList(
        items=[MovementRead.model_validate(m) for m in movements],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )


@router.get("/movimientos/{movement_id}", name="inventario_movimento", response_model=MovementRead)
async def get_movement(
    movement_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> MovementRead:
    return MovementRead.model_validate(await service.get_movement(db, movement_id))


@router.post(
    "/movimientos",
    name="inventario_movimento_crea",
    response_model=MovementRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_movement(
    data: MovementCreate,
    user: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> MovementRead:
    """
    Le uscite non portano la giacenza sotto zero: la quantità
    effettivamente scaricata è riportata in appliedQuantity.
    """
    return MovementRead.model_validate(await service.create_movement(db, data, user))


@router.delete(
    "/movimientos/{movement_id}",
    name="inventario_movimento_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_movement(
    movement_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> None:
    await service.delete_movement(db, movement_id)


# -------------------------------------------------------------------
# Apparati
# -------------------------------------------------------------------

@router.get("/estados", name="apparati_stati", response_model=list[str])
async def equipment_statuses(
    _: CurrentStaff,
    seed: SeedData = Depends(get_seed_data),
) -> list[str]:
    return list(seed.equipment_statuses)


@router.get("/equipos", name="apparati_lista", response_model=EquipmentList)
async def list_equipment(
    _: CurrentStaff,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    status_filter: Optional[EquipmentStatus] = Query(None, alias="status"),
    category_id: Optional[uuid.UUID] = Query(None),
    location_id: Optional[uuid.UUID] = Query(None),
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> EquipmentList:
    items, total = await service.get_all(
        db,
        page=page,
        per_page=per_page,
        search=search,
        status=status_filter.value if status_filter else None,
        category_id=category_id,
        location_id=location_id,
        include_inactive=include_inactive,
    )
    return EquipmentList(
        items=[EquipmentRead.model_validate(e) for e in items],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=count_pages(total, per_page),
    )


@router.get("/equipos/stock-bajo", name="apparati_scorta_bassa", response_model=list[EquipmentRead])
async def low_stock(
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[EquipmentRead]:
    return [EquipmentRead.model_validate(e) for e in await service.low_stock(db)]


@router.get("/equipos/{equipment_id}", name="apparato_dettaglio", response_model=EquipmentRead)
async def get_equipment(
    equipment_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> EquipmentRead:
    return EquipmentRead.model_validate(await service.get_by_id(db, equipment_id))


@router.post(
    "/equipos",
    name="apparato_crea",
    response_model=EquipmentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_equipment(
    data: EquipmentCreate,
    user: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> EquipmentRead:
    return EquipmentRead.model_validate(await service.create(db, data, user))


@router.put("/equipos/{equipment_id}", name="apparato_aggiorna", response_model=EquipmentRead)
async def update_equipment(
    equipment_id: uuid.UUID,
    data: EquipmentUpdate,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> EquipmentRead:
    return EquipmentRead.model_validate(await service.update(db, equipment_id, data))


@router.post("/equipos/{equipment_id}/estado", name="apparato_stato", response_model=EquipmentRead)
async def change_status(
    equipment_id: uuid.UUID,
    data: EquipmentStatusChange,
    user: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> EquipmentRead:
    equipment = await service.change_status(
        db, equipment_id, data.status.value, reason=data.reason, user=user
    )
    return EquipmentRead.model_validate(equipment)


@router.get(
    "/equipos/{equipment_id}/historial",
    name="apparato_storico",
    response_model=list[StatusHistoryRead],
)
async def status_history(
    equipment_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[StatusHistoryRead]:
    return [StatusHistoryRead.model_validate(h) for h in await service.status_history(db, equipment_id)]


@router.delete(
    "/equipos/{equipment_id}",
    name="apparato_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_equipment(
    equipment_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> None:
    """Disattiva l'apparato; storico e movimenti restano."""
    await service.delete(db, equipment_id)


# -------------------------------------------------------------------
# Consegne
# -------------------------------------------------------------------

@router.get("/asignaciones", name="inventario_consegne", response_model=list[AssignmentRead])
async def list_assignments(
    _: CurrentStaff,
    status_filter: Optional[AssignmentStatus] = Query(None, alias="status"),
    equipment_id: Optional[uuid.UUID] = Query(None),
    client_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[AssignmentRead]:
    assignments = await service.list_assignments(
        db,
        status=status_filter.value if status_filter else None,
        equipment_id=equipment_id,
        client_id=client_id,
    )
    return [AssignmentRead.model_validate(a) for a in assignments]


@router.get("/asignaciones/{assignment_id}", name="inventario_consegna", response_model=AssignmentRead)
async def get_assignment(
    assignment_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> AssignmentRead:
    return AssignmentRead.model_validate(await service.get_assignment(db, assignment_id))


@router.post(
    "/asignaciones",
    name="inventario_consegna_crea",
    response_model=AssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_assignment(
    data: AssignmentCreate,
    user: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> AssignmentRead:
    """Scarica la quantità dalla giacenza; 400 se la giacenza non basta."""
    return AssignmentRead.model_validate(await service.create_assignment(db, data, user))


@router.post(
    "/asignaciones/{assignment_id}/devolver",
    name="inventario_consegna_restituisci",
    response_model=AssignmentRead,
)
async def return_assignment(
    assignment_id: uuid.UUID,
    user: CurrentStaff,
    data: Optional[AssignmentReturn] = None,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> AssignmentRead:
    notes = data.notes if data else None
    assignment = await service.return_assignment(db, assignment_id, notes=notes, user=user)
    return AssignmentRead.model_validate(assignment)


@router.post(
    "/asignaciones/{assignment_id}/perdida",
    name="inventario_consegna_persa",
    response_model=AssignmentRead,
)
async def lose_assignment(
    assignment_id: uuid.UUID,
    user: CurrentStaff,
    data: Optional[AssignmentReturn] = None,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> AssignmentRead:
    notes = data.notes if data else None
    assignment = await service.mark_assignment_lost(db, assignment_id, notes=notes, user=user)
    return AssignmentRead.model_validate(assignment)


@router.delete(
    "/asignaciones/{assignment_id}",
    name="inventario_consegna_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_assignment(
    assignment_id: uuid.UUID,
    user: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> None:
    await service.delete_assignment(db, assignment_id, user)


# -------------------------------------------------------------------
# Manutenzioni
# -------------------------------------------------------------------

@router.get("/mantenimientos", name="inventario_manutenzioni", response_model=list[MaintenanceRead])
async def list_maintenance(
    _: CurrentStaff,
    equipment_id: Optional[uuid.UUID] = Query(None),
    status_filter: Optional[MaintenanceStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[MaintenanceRead]:
    records = await service.list_maintenance(
        db,
        equipment_id=equipment_id,
        status=status_filter.value if status_filter else None,
    )
    return [MaintenanceRead.model_validate(r) for r in records]


@router.get("/mantenimientos/{record_id}", name="inventario_manutenzione", response_model=MaintenanceRead)
async def get_maintenance(
    record_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> MaintenanceRead:
    return MaintenanceRead.model_validate(await service.get_maintenance(db, record_id))


@router.post(
    "/mantenimientos",
    name="inventario_manutenzione_crea",
    response_model=MaintenanceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_maintenance(
    data: MaintenanceCreate,
    user: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> MaintenanceRead:
    """Una riparazione En proceso porta l'apparato In riparazione."""
    return MaintenanceRead.model_validate(await service.create_maintenance(db, data, user))


@router.put(
    "/mantenimientos/{record_id}",
    name="inventario_manutenzione_aggiorna",
    response_model=MaintenanceRead,
)
async def update_maintenance(
    record_id: uuid.UUID,
    data: MaintenanceUpdate,
    user: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> MaintenanceRead:
    return MaintenanceRead.model_validate(await service.update_maintenance(db, record_id, data, user))


@router.delete(
    "/mantenimientos/{record_id}",
    name="inventario_manutenzione_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_maintenance(
    record_id: uuid.UUID,
    _: AdminUser,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> None:
    await service.delete_maintenance(db, record_id)


# -------------------------------------------------------------------
# Materiali di installazione
# -------------------------------------------------------------------

@router.get(
    "/materiales/cliente/{client_id}",
    name="inventario_materiali_cliente",
    response_model=list[InstallationMaterialRead],
)
async def list_materials(
    client_id: uuid.UUID,
    _: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[InstallationMaterialRead]:
    return [InstallationMaterialRead.model_validate(m) for m in await service.list_materials(db, client_id)]


@router.post(
    "/materiales",
    name="inventario_materiali_crea",
    response_model=list[InstallationMaterialRead],
    status_code=status.HTTP_201_CREATED,
)
async def add_materials(
    data: InstallationMaterialsCreate,
    user: CurrentStaff,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> list[InstallationMaterialRead]:
    materials = await service.add_materials(db, data, user)
    return [InstallationMaterialRead.model_validate(m) for m in materials]


@router.delete(
    "/materiales/{material_id}",
    name="inventario_materiale_elimina",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_material(
    material_id: uuid.UUID,
    user: AdminUser,
    return_stock: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
) -> None:
    await service.delete_material(db, material_id, return_stock=return_stock, user=user)
