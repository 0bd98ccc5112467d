"""Service for the Warehouse > Zone > Rack > Shelf hierarchy."""
from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional, Tuple
from datetime import datetime, timezone
import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import settings
from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.database import transaction
from backoffice.models.warehouse import Warehouse, WarehouseZone, WarehouseRack, WarehouseShelf
from backoffice.schemas.warehouse import (
    WarehouseCreate,
    WarehouseUpdate,
    ZoneCreate,
    ZoneUpdate,
    RackCreate,
    RackUpdate,
    ShelfCreate,
    ShelfUpdate,
    WarehouseGridCreate,
)
from backoffice.services.audit_service import AuditService
from backoffice.services.hierarchy_propagation import HierarchyPropagator
from backoffice.services.ordinal_rebalancer import (
    plan_insertion,
    plan_move,
    plan_removal,
    plan_reposition,
)
from backoffice.services.placement_service import PlacementService


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridResult:
    warehouse_id: uuid.UUID
    zones: int
    racks: int
    shelves: int
    total_entities: int
    batches_used: int


class WarehouseService:
    """Service for warehouse structure, ordering and bulk creation."""

    def __init__(self, db: AsyncSession, business_id: str, actor_id: Optional[str] = None):
        self.db = db
        self.business_id = business_id
        self.actor_id = actor_id
        self.audit = AuditService(db, business_id)
        self.propagator = HierarchyPropagator(db, business_id)
        self.placements = PlacementService(db, business_id)

    # ==================== LOOKUPS ====================

    async def _get(self, model, entity_id: uuid.UUID, label: str, for_update: bool = False):
        stmt = select(model).where(
            model.id == entity_id,
            model.business_id == self.business_id,
            model.is_deleted == False,  # noqa: E712
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        entity = result.scalar_one_or_none()
        if entity is None:
            raise NotFoundError(f"{label} {entity_id} not found", {"id": str(entity_id)})
        return entity

    async def get_warehouse(self, warehouse_id: uuid.UUID) -> Warehouse:
        return await self._get(Warehouse, warehouse_id, "Warehouse")

    async def get_zone(self, zone_id: uuid.UUID) -> WarehouseZone:
        return await self._get(WarehouseZone, zone_id, "Zone")

    async def get_rack(self, rack_id: uuid.UUID) -> WarehouseRack:
        return await self._get(WarehouseRack, rack_id, "Rack")

    async def get_shelf(self, shelf_id: uuid.UUID) -> WarehouseShelf:
        return await self._get(WarehouseShelf, shelf_id, "Shelf")

    async def _list(self, model, order_by, skip: int, limit: int, *filters) -> Tuple[list, int]:
        conditions = [
            model.business_id == self.business_id,
            model.is_deleted == False,  # noqa: E712
            *filters,
        ]
        total = (await self.db.execute(
            select(func.count(model.id)).where(*conditions)
        )).scalar() or 0
        result = await self.db.execute(
            select(model).where(*conditions).order_by(*order_by).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_warehouses(self, skip: int = 0, limit: int = 50) -> Tuple[List[Warehouse], int]:
        return await self._list(Warehouse, [Warehouse.name], skip, limit)

    async def get_zones(self, warehouse_id: uuid.UUID, skip: int = 0, limit: int = 50) -> Tuple[List[WarehouseZone], int]:
        return await self._list(
            WarehouseZone, [WarehouseZone.name], skip, limit,
            WarehouseZone.warehouse_id == warehouse_id,
        )

    async def get_racks(self, zone_id: uuid.UUID, skip: int = 0, limit: int = 50) -> Tuple[List[WarehouseRack], int]:
        return await self._list(
            WarehouseRack, [WarehouseRack.position], skip, limit,
            WarehouseRack.zone_id == zone_id,
        )

    async def get_shelves(self, rack_id: uuid.UUID, skip: int = 0, limit: int = 50) -> Tuple[List[WarehouseShelf], int]:
        return await self._list(
            WarehouseShelf, [WarehouseShelf.position], skip, limit,
            WarehouseShelf.rack_id == rack_id,
        )

    async def _count_active(self, model, *filters) -> int:
        result = await self.db.execute(
            select(func.count(model.id)).where(
                model.business_id == self.business_id,
                model.is_deleted == False,  # noqa: E712
                *filters,
            )
        )
        return result.scalar() or 0

    # ==================== ORDERING HELPERS ====================

    async def _siblings(self, model, parent_column, parent_id: uuid.UUID) -> list:
        """Non-deleted siblings under one parent, locked for the rewrite."""
        result = await self.db.execute(
            select(model)
            .where(
                model.business_id == self.business_id,
                parent_column == parent_id,
                model.is_deleted == False,  # noqa: E712
            )
            .order_by(model.position)
            .with_for_update()
        )
        return list(result.scalars().all())

    @staticmethod
    def _apply_positions(entities: list, changes: Dict[Hashable, int]) -> None:
        for entity in entities:
            if entity.id in changes:
                entity.position = changes[entity.id]

    async def _reposition(self, model, parent_column, entity, new_position: int, old_position: Optional[int]) -> None:
        siblings = await self._siblings(model, parent_column, getattr(entity, parent_column.key))
        changes = plan_reposition(
            [(s.id, s.position) for s in siblings],
            entity.id,
            new_position,
            expected_old=old_position,
        )
        self._apply_positions(siblings, changes)

    async def _close_gap(self, model, parent_column, entity) -> None:
        siblings = await self._siblings(model, parent_column, getattr(entity, parent_column.key))
        changes = plan_removal([(s.id, s.position) for s in siblings], entity.id)
        self._apply_positions(siblings, changes)

    async def _make_room(self, model, parent_column, parent_id: uuid.UUID, position: Optional[int]) -> int:
        siblings = await self._siblings(model, parent_column, parent_id)
        changes, new_position = plan_insertion([(s.id, s.position) for s in siblings], position)
        self._apply_positions(siblings, changes)
        return new_position

    def _soft_delete(self, entity) -> None:
        entity.is_deleted = True
        entity.deleted_at = datetime.now(timezone.utc)
        entity.updated_by = self.actor_id

    @staticmethod
    def _apply_update(entity, data) -> dict:
        """Copy set fields from an update schema, returning the old values."""
        update_data = data.model_dump(exclude_unset=True)
        old_values = {key: getattr(entity, key) for key in update_data}
        for key, value in update_data.items():
            setattr(entity, key, value)
        return old_values

    # ==================== WAREHOUSE MANAGEMENT ====================

    async def create_warehouse(self, data: WarehouseCreate) -> Warehouse:
        async with transaction(self.db):
            warehouse = Warehouse(
                business_id=self.business_id,
                **data.model_dump(),
                stats={},
                created_by=self.actor_id,
                updated_by=self.actor_id,
            )
            self.db.add(warehouse)
            await self.db.flush()
            await self.audit.log("CREATE", "WAREHOUSE", warehouse.id, self.actor_id,
                                 new_values={"name": warehouse.name})
        logger.info(f"Created warehouse {warehouse.name} ({warehouse.id})")
        return warehouse

    async def update_warehouse(self, warehouse_id: uuid.UUID, data: WarehouseUpdate) -> Warehouse:
        async with transaction(self.db):
            warehouse = await self._get(Warehouse, warehouse_id, "Warehouse", for_update=True)
            old_values = self._apply_update(warehouse, data)
            warehouse.updated_by = self.actor_id
            if "name" in old_values:
                await self.propagator.propagate(warehouse)
            await self.audit.log("UPDATE", "WAREHOUSE", warehouse.id, self.actor_id,
                                 old_values=old_values, new_values=data.model_dump(exclude_unset=True))
        return warehouse

    async def delete_warehouse(self, warehouse_id: uuid.UUID) -> None:
        async with transaction(self.db):
            warehouse = await self._get(Warehouse, warehouse_id, "Warehouse", for_update=True)
            zones = await self._count_active(WarehouseZone, WarehouseZone.warehouse_id == warehouse.id)
            if zones:
                raise ConflictError(
                    f"Warehouse {warehouse.name} still has {zones} active zones",
                    {"active_children": zones, "child_type": "zone"}
                )
            self._soft_delete(warehouse)
            await self.audit.log("DELETE", "WAREHOUSE", warehouse.id, self.actor_id)

    # ==================== ZONE MANAGEMENT ====================

    async def create_zone(self, data: ZoneCreate) -> WarehouseZone:
        async with transaction(self.db):
            warehouse = await self._get(Warehouse, data.warehouse_id, "Warehouse")
            zone = WarehouseZone(
                business_id=self.business_id,
                warehouse_id=warehouse.id,
                warehouse_name=warehouse.name,
                name=data.name,
                code=data.code,
                description=data.description,
                stats={},
                created_by=self.actor_id,
                updated_by=self.actor_id,
            )
            self.db.add(zone)
            await self.db.flush()
            await self.audit.log("CREATE", "ZONE", zone.id, self.actor_id, new_values={"name": zone.name})
        return zone

    async def update_zone(self, zone_id: uuid.UUID, data: ZoneUpdate) -> WarehouseZone:
        async with transaction(self.db):
            zone = await self._get(WarehouseZone, zone_id, "Zone", for_update=True)
            old_values = self._apply_update(zone, data)
            zone.updated_by = self.actor_id
            if "name" in old_values:
                await self.propagator.propagate(zone)
            await self.audit.log("UPDATE", "ZONE", zone.id, self.actor_id, old_values=old_values)
        return zone

    async def move_zone(self, zone_id: uuid.UUID, destination_warehouse_id: uuid.UUID) -> WarehouseZone:
        """Move a zone, with everything under it, to another warehouse."""
        async with transaction(self.db):
            zone = await self._get(WarehouseZone, zone_id, "Zone", for_update=True)
            if zone.warehouse_id == destination_warehouse_id:
                raise ValidationError(
                    "Zone is already in this warehouse",
                    {"warehouse_id": str(destination_warehouse_id)}
                )
            destination = await self._get(Warehouse, destination_warehouse_id, "Warehouse")
            old_warehouse_id = zone.warehouse_id

            zone.warehouse_id = destination.id
            zone.warehouse_name = destination.name
            zone.updated_by = self.actor_id
            await self.propagator.propagate(zone)

            await self.audit.log(
                "MOVE", "ZONE", zone.id, self.actor_id,
                old_values={"warehouse_id": str(old_warehouse_id)},
                new_values={"warehouse_id": str(destination.id)},
            )
        logger.info(f"Moved zone {zone.id} to warehouse {destination.id}")
        return zone

    async def delete_zone(self, zone_id: uuid.UUID) -> None:
        async with transaction(self.db):
            zone = await self._get(WarehouseZone, zone_id, "Zone", for_update=True)
            racks = await self._count_active(WarehouseRack, WarehouseRack.zone_id == zone.id)
            if racks:
                raise ConflictError(
                    f"Zone {zone.name} still has {racks} active racks",
                    {"active_children": racks, "child_type": "rack"}
                )
            self._soft_delete(zone)
            await self.audit.log("DELETE", "ZONE", zone.id, self.actor_id)

    # ==================== RACK MANAGEMENT ====================

    async def create_rack(self, data: RackCreate) -> WarehouseRack:
        """Create a rack, appended or inserted at ``data.position``."""
        async with transaction(self.db):
            zone = await self._get(WarehouseZone, data.zone_id, "Zone")
            position = await self._make_room(WarehouseRack, WarehouseRack.zone_id, zone.id, data.position)
            rack = WarehouseRack(
                business_id=self.business_id,
                warehouse_id=zone.warehouse_id,
                warehouse_name=zone.warehouse_name,
                zone_id=zone.id,
                zone_name=zone.name,
                name=data.name,
                code=data.code,
                description=data.description,
                position=position,
                stats={},
                created_by=self.actor_id,
                updated_by=self.actor_id,
            )
            self.db.add(rack)
            await self.db.flush()
            await self.audit.log("CREATE", "RACK", rack.id, self.actor_id,
                                 new_values={"name": rack.name, "position": position})
        return rack

    async def update_rack(self, rack_id: uuid.UUID, data: RackUpdate) -> WarehouseRack:
        async with transaction(self.db):
            rack = await self._get(WarehouseRack, rack_id, "Rack", for_update=True)
            old_values = self._apply_update(rack, data)
            rack.updated_by = self.actor_id
            if "name" in old_values:
                await self.propagator.propagate(rack)
            await self.audit.log("UPDATE", "RACK", rack.id, self.actor_id, old_values=old_values)
        return rack

    async def reposition_rack(
        self,
        rack_id: uuid.UUID,
        new_position: int,
        old_position: Optional[int] = None,
    ) -> None:
        """Reorder a rack among the racks of its zone."""
        async with transaction(self.db):
            rack = await self._get(WarehouseRack, rack_id, "Rack", for_update=True)
            before = rack.position
            await self._reposition(WarehouseRack, WarehouseRack.zone_id, rack, new_position, old_position)
            await self.audit.log(
                "REPOSITION", "RACK", rack.id, self.actor_id,
                old_values={"position": before}, new_values={"position": rack.position},
            )

    async def move_rack(
        self,
        rack_id: uuid.UUID,
        destination_zone_id: uuid.UUID,
        target_position: Optional[int] = None,
        old_position: Optional[int] = None,
    ) -> int:
        """Move a rack to another zone. Returns its position in the new zone."""
        async with transaction(self.db):
            rack = await self._get(WarehouseRack, rack_id, "Rack", for_update=True)
            if rack.zone_id == destination_zone_id:
                raise ValidationError(
                    "Rack is already in this zone; use reposition instead",
                    {"zone_id": str(destination_zone_id)}
                )
            destination = await self._get(WarehouseZone, destination_zone_id, "Zone")

            source_siblings = await self._siblings(WarehouseRack, WarehouseRack.zone_id, rack.zone_id)
            destination_siblings = await self._siblings(WarehouseRack, WarehouseRack.zone_id, destination.id)
            plan = plan_move(
                [(s.id, s.position) for s in source_siblings],
                [(s.id, s.position) for s in destination_siblings],
                rack.id,
                target_position=target_position,
                expected_old=old_position,
            )
            self._apply_positions(source_siblings, plan.source_changes)
            self._apply_positions(destination_siblings, plan.destination_changes)

            old_values = {"zone_id": str(rack.zone_id), "position": rack.position}
            rack.zone_id = destination.id
            rack.zone_name = destination.name
            rack.warehouse_id = destination.warehouse_id
            rack.warehouse_name = destination.warehouse_name
            rack.position = plan.new_position
            rack.updated_by = self.actor_id
            await self.propagator.propagate(rack)

            await self.audit.log(
                "MOVE", "RACK", rack.id, self.actor_id,
                old_values=old_values,
                new_values={"zone_id": str(destination.id), "position": plan.new_position},
            )
        logger.info(f"Moved rack {rack.id} to zone {destination.id} at position {plan.new_position}")
        return plan.new_position

    async def delete_rack(self, rack_id: uuid.UUID) -> None:
        async with transaction(self.db):
            rack = await self._get(WarehouseRack, rack_id, "Rack", for_update=True)
            shelves = await self._count_active(WarehouseShelf, WarehouseShelf.rack_id == rack.id)
            if shelves:
                raise ConflictError(
                    f"Rack {rack.name} still has {shelves} active shelves",
                    {"active_children": shelves, "child_type": "shelf"}
                )
            await self._close_gap(WarehouseRack, WarehouseRack.zone_id, rack)
            self._soft_delete(rack)
            await self.audit.log("DELETE", "RACK", rack.id, self.actor_id)

    # ==================== SHELF MANAGEMENT ====================

    async def create_shelf(self, data: ShelfCreate) -> WarehouseShelf:
        async with transaction(self.db):
            rack = await self._get(WarehouseRack, data.rack_id, "Rack")
            position = await self._make_room(WarehouseShelf, WarehouseShelf.rack_id, rack.id, data.position)
            shelf = WarehouseShelf(
                business_id=self.business_id,
                warehouse_id=rack.warehouse_id,
                warehouse_name=rack.warehouse_name,
                zone_id=rack.zone_id,
                zone_name=rack.zone_name,
                rack_id=rack.id,
                rack_name=rack.name,
                name=data.name,
                code=data.code,
                description=data.description,
                position=position,
                capacity=data.capacity,
                coordinates=data.coordinates,
                stats={},
                created_by=self.actor_id,
                updated_by=self.actor_id,
            )
            self.db.add(shelf)
            await self.db.flush()
            await self.audit.log("CREATE", "SHELF", shelf.id, self.actor_id,
                                 new_values={"name": shelf.name, "position": position})
        return shelf

    async def update_shelf(self, shelf_id: uuid.UUID, data: ShelfUpdate) -> WarehouseShelf:
        async with transaction(self.db):
            shelf = await self._get(WarehouseShelf, shelf_id, "Shelf", for_update=True)
            old_values = self._apply_update(shelf, data)
            shelf.updated_by = self.actor_id
            if "name" in old_values:
                await self.propagator.propagate(shelf)
            await self.audit.log("UPDATE", "SHELF", shelf.id, self.actor_id, old_values=old_values)
        return shelf

    async def reposition_shelf(
        self,
        shelf_id: uuid.UUID,
        new_position: int,
        old_position: Optional[int] = None,
    ) -> None:
        async with transaction(self.db):
            shelf = await self._get(WarehouseShelf, shelf_id, "Shelf", for_update=True)
            before = shelf.position
            await self._reposition(WarehouseShelf, WarehouseShelf.rack_id, shelf, new_position, old_position)
            await self.audit.log(
                "REPOSITION", "SHELF", shelf.id, self.actor_id,
                old_values={"position": before}, new_values={"position": shelf.position},
            )

    async def move_shelf(
        self,
        shelf_id: uuid.UUID,
        destination_rack_id: uuid.UUID,
        target_position: Optional[int] = None,
        old_position: Optional[int] = None,
    ) -> int:
        """Move a shelf, and the placements on it, to another rack."""
        async with transaction(self.db):
            shelf = await self._get(WarehouseShelf, shelf_id, "Shelf", for_update=True)
            if shelf.rack_id == destination_rack_id:
                raise ValidationError(
                    "Shelf is already on this rack; use reposition instead",
                    {"rack_id": str(destination_rack_id)}
                )
            destination = await self._get(WarehouseRack, destination_rack_id, "Rack")

            source_siblings = await self._siblings(WarehouseShelf, WarehouseShelf.rack_id, shelf.rack_id)
            destination_siblings = await self._siblings(WarehouseShelf, WarehouseShelf.rack_id, destination.id)
            plan = plan_move(
                [(s.id, s.position) for s in source_siblings],
                [(s.id, s.position) for s in destination_siblings],
                shelf.id,
                target_position=target_position,
                expected_old=old_position,
            )
            self._apply_positions(source_siblings, plan.source_changes)
            self._apply_positions(destination_siblings, plan.destination_changes)

            old_values = {"rack_id": str(shelf.rack_id), "position": shelf.position}
            shelf.rack_id = destination.id
            shelf.rack_name = destination.name
            shelf.zone_id = destination.zone_id
            shelf.zone_name = destination.zone_name
            shelf.warehouse_id = destination.warehouse_id
            shelf.warehouse_name = destination.warehouse_name
            shelf.position = plan.new_position
            shelf.updated_by = self.actor_id
            await self.propagator.propagate(shelf)

            await self.audit.log(
                "MOVE", "SHELF", shelf.id, self.actor_id,
                old_values=old_values,
                new_values={"rack_id": str(destination.id), "position": plan.new_position},
            )
        return plan.new_position

    async def delete_shelf(self, shelf_id: uuid.UUID) -> None:
        async with transaction(self.db):
            shelf = await self._get(WarehouseShelf, shelf_id, "Shelf", for_update=True)
            if await self.placements.shelf_has_stock(shelf.id):
                raise ConflictError(
                    f"Shelf {shelf.name} still holds stock",
                    {"shelf_id": str(shelf.id)}
                )
            await self._close_gap(WarehouseShelf, WarehouseShelf.rack_id, shelf)
            self._soft_delete(shelf)
            await self.audit.log("DELETE", "SHELF", shelf.id, self.actor_id)

    # ==================== INSTANT WAREHOUSE ====================

    def _validate_grid(self, data: WarehouseGridCreate) -> int:
        limits = (
            ("zones", data.zones, settings.GRID_MAX_ZONES),
            ("racks_per_zone", data.racks_per_zone, settings.GRID_MAX_RACKS_PER_ZONE),
            ("shelves_per_rack", data.shelves_per_rack, settings.GRID_MAX_SHELVES_PER_RACK),
        )
        for field, value, maximum in limits:
            if not 1 <= value <= maximum:
                raise ValidationError(
                    f"{field} must be between 1 and {maximum}",
                    {"field": field, "value": value, "max": maximum}
                )

        racks = data.zones * data.racks_per_zone
        total = 1 + data.zones + racks + racks * data.shelves_per_rack
        if total > settings.GRID_MAX_ENTITIES:
            raise ValidationError(
                f"Grid would create {total} entities; the limit is {settings.GRID_MAX_ENTITIES}",
                {"total_entities": total, "max": settings.GRID_MAX_ENTITIES}
            )
        return total

    async def create_warehouse_grid(self, data: WarehouseGridCreate) -> GridResult:
        """
        Create a warehouse with a full zone x rack x shelf grid.

        Rows are flushed in chunks of ``WRITE_BATCH_SIZE`` inside a single
        transaction, so a failure in any chunk leaves nothing behind.
        """
        total = self._validate_grid(data)

        warehouse = Warehouse(
            id=uuid.uuid4(),
            business_id=self.business_id,
            name=data.name,
            code=data.code,
            address=data.address,
            stats={
                "total_zones": data.zones,
                "total_racks": data.zones * data.racks_per_zone,
                "total_shelves": data.zones * data.racks_per_zone * data.shelves_per_rack,
                "total_products": 0,
            },
            created_by=self.actor_id,
            updated_by=self.actor_id,
        )
        entities: list = [warehouse]

        for z in range(1, data.zones + 1):
            zone_code = f"Z{z:02d}"
            zone = WarehouseZone(
                id=uuid.uuid4(),
                business_id=self.business_id,
                warehouse_id=warehouse.id,
                warehouse_name=warehouse.name,
                name=f"Zone-{z}",
                code=zone_code,
                stats={},
                created_by=self.actor_id,
                updated_by=self.actor_id,
            )
            entities.append(zone)
            for r in range(1, data.racks_per_zone + 1):
                rack_code = f"{zone_code}-R{r:02d}"
                rack = WarehouseRack(
                    id=uuid.uuid4(),
                    business_id=self.business_id,
                    warehouse_id=warehouse.id,
                    warehouse_name=warehouse.name,
                    zone_id=zone.id,
                    zone_name=zone.name,
                    name=f"Rack-{r}",
                    code=rack_code,
                    position=r,
                    stats={},
                    created_by=self.actor_id,
                    updated_by=self.actor_id,
                )
                entities.append(rack)
                for s in range(1, data.shelves_per_rack + 1):
                    entities.append(WarehouseShelf(
                        id=uuid.uuid4(),
                        business_id=self.business_id,
                        warehouse_id=warehouse.id,
                        warehouse_name=warehouse.name,
                        zone_id=zone.id,
                        zone_name=zone.name,
                        rack_id=rack.id,
                        rack_name=rack.name,
                        name=f"Shelf-{s}",
                        code=f"{rack_code}-S{s:02d}",
                        position=s,
                        stats={},
                        created_by=self.actor_id,
                        updated_by=self.actor_id,
                    ))

        batch_size = settings.WRITE_BATCH_SIZE
        batches_used = 0
        async with transaction(self.db):
            for start in range(0, len(entities), batch_size):
                self.db.add_all(entities[start:start + batch_size])
                await self.db.flush()
                batches_used += 1
            await self.audit.log(
                "CREATE", "WAREHOUSE", warehouse.id, self.actor_id,
                new_values={"name": warehouse.name, "total_entities": total},
                description="Instant warehouse grid",
            )

        logger.info(
            f"Created warehouse grid {warehouse.name}: {total} entities in {batches_used} batches"
        )
        return GridResult(
            warehouse_id=warehouse.id,
            zones=data.zones,
            racks=data.zones * data.racks_per_zone,
            shelves=data.zones * data.racks_per_zone * data.shelves_per_rack,
            total_entities=total,
            batches_used=batches_used,
        )
