"""Tests for the warehouse hierarchy: grid creation, ordering, moves and deletes."""
import pytest

from backoffice.config import settings
from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.schemas.warehouse import (
    RackCreate,
    RackUpdate,
    ShelfCreate,
    WarehouseCreate,
    WarehouseGridCreate,
    WarehouseUpdate,
    ZoneCreate,
)
from backoffice.services.audit_service import AuditService
from backoffice.services.inventory_service import InventoryService
from backoffice.services.ordinal_rebalancer import is_dense
from backoffice.services.warehouse_service import WarehouseService

from tests.conftest import ACTOR_ID, BUSINESS_ID


@pytest.fixture
def service(db_session):
    return WarehouseService(db_session, BUSINESS_ID, ACTOR_ID)


async def _positions(service, rack_zone_id):
    racks, _ = await service.get_racks(rack_zone_id)
    return [(rack.name, rack.position) for rack in racks]


class TestInstantWarehouse:
    async def test_grid_counts_and_codes(self, service):
        result = await service.create_warehouse_grid(WarehouseGridCreate(
            name="Grid", zones=2, racks_per_zone=3, shelves_per_rack=4,
        ))
        assert (result.zones, result.racks, result.shelves) == (2, 6, 24)
        assert result.total_entities == 1 + 2 + 6 + 24
        assert result.batches_used == 1

        zones, total = await service.get_zones(result.warehouse_id)
        assert total == 2
        assert [z.code for z in zones] == ["Z01", "Z02"]

        racks, _ = await service.get_racks(zones[1].id)
        assert [(r.code, r.name, r.position) for r in racks] == [
            ("Z02-R01", "Rack-1", 1),
            ("Z02-R02", "Rack-2", 2),
            ("Z02-R03", "Rack-3", 3),
        ]

        shelves, _ = await service.get_shelves(racks[2].id)
        assert [s.code for s in shelves] == ["Z02-R03-S01", "Z02-R03-S02", "Z02-R03-S03", "Z02-R03-S04"]
        assert all(s.zone_name == "Zone-2" and s.rack_name == "Rack-3" for s in shelves)
        assert all(s.warehouse_name == "Grid" for s in shelves)

    async def test_grid_flushes_in_batches(self, service, monkeypatch):
        monkeypatch.setattr(settings, "WRITE_BATCH_SIZE", 10)
        result = await service.create_warehouse_grid(WarehouseGridCreate(
            name="Chunked", zones=1, racks_per_zone=2, shelves_per_rack=10,
        ))
        # 1 + 1 + 2 + 20 rows
        assert result.total_entities == 24
        assert result.batches_used == 3

    @pytest.mark.parametrize(
        "zones,racks,shelves",
        [(51, 1, 1), (0, 1, 1), (1, 51, 1), (1, 1, 21), (1, 1, 0)],
    )
    async def test_grid_dimension_bounds(self, service, zones, racks, shelves):
        with pytest.raises(ValidationError):
            await service.create_warehouse_grid(WarehouseGridCreate(
                name="Too big", zones=zones, racks_per_zone=racks, shelves_per_rack=shelves,
            ))
        _, total = await service.get_warehouses()
        assert total == 0

    async def test_grid_entity_limit(self, service):
        # 1 + 10 + 250 + 5000 entities
        with pytest.raises(ValidationError) as exc:
            await service.create_warehouse_grid(WarehouseGridCreate(
                name="Too many", zones=10, racks_per_zone=25, shelves_per_rack=20,
            ))
        assert exc.value.details["total_entities"] == 5261


class TestRackOrdering:
    async def test_create_appends_then_inserts(self, service, grid):
        zone_id = grid["zones"][0].id
        await service.create_rack(RackCreate(zone_id=zone_id, name="Rack-3"))
        await service.create_rack(RackCreate(zone_id=zone_id, name="Rack-0", position=1))

        assert await _positions(service, zone_id) == [
            ("Rack-0", 1), ("Rack-1", 2), ("Rack-2", 3), ("Rack-3", 4),
        ]

    async def test_insert_past_end_rejected(self, service, grid):
        with pytest.raises(ValidationError):
            await service.create_rack(RackCreate(zone_id=grid["zones"][0].id, name="Far", position=4))

    async def test_reposition_shifts_siblings(self, service, grid):
        zone_id = grid["zones"][0].id
        await service.create_rack(RackCreate(zone_id=zone_id, name="Rack-3"))
        await service.create_rack(RackCreate(zone_id=zone_id, name="Rack-4"))
        racks, _ = await service.get_racks(zone_id)

        await service.reposition_rack(racks[0].id, 3, old_position=1)

        assert await _positions(service, zone_id) == [
            ("Rack-2", 1), ("Rack-3", 2), ("Rack-1", 3), ("Rack-4", 4),
        ]

    async def test_reposition_with_stale_position(self, service, grid):
        rack_id = grid["racks"][0].id
        with pytest.raises(ConflictError):
            await service.reposition_rack(rack_id, 2, old_position=2)

    async def test_reposition_out_of_range(self, service, grid):
        rack_id = grid["racks"][0].id
        with pytest.raises(ValidationError):
            await service.reposition_rack(rack_id, 3)

    async def test_delete_closes_gap(self, service, grid):
        zone_id = grid["zones"][0].id
        extra = await service.create_rack(RackCreate(zone_id=zone_id, name="Rack-3"))
        await service.delete_rack(extra.id)
        first = await service.create_rack(RackCreate(zone_id=zone_id, name="Rack-X", position=1))

        await service.delete_rack(first.id)
        positions = [p for _, p in await _positions(service, zone_id)]
        assert positions == [1, 2]

    async def test_delete_rack_with_shelves_conflicts(self, service, grid):
        rack_id = grid["racks"][0].id
        with pytest.raises(ConflictError) as exc:
            await service.delete_rack(rack_id)
        assert exc.value.details == {"active_children": 3, "child_type": "shelf"}


class TestMoves:
    async def test_move_rack_keeps_both_zones_dense(self, service, grid):
        source_zone, destination_zone = grid["zones"][0].id, grid["zones"][1].id
        rack_id = grid["racks"][0].id

        new_position = await service.move_rack(rack_id, destination_zone, target_position=1, old_position=1)
        assert new_position == 1

        assert await _positions(service, source_zone) == [("Rack-2", 1)]
        destination = await _positions(service, destination_zone)
        assert is_dense(p for _, p in destination)
        assert len(destination) == 3

        rack = await service.get_rack(rack_id)
        assert rack.zone_name == "Zone-2"
        shelves, _ = await service.get_shelves(rack_id)
        assert all(s.zone_id == destination_zone and s.zone_name == "Zone-2" for s in shelves)

    async def test_move_rack_within_same_zone_rejected(self, service, grid):
        rack_id, zone_id = grid["racks"][0].id, grid["zones"][0].id
        with pytest.raises(ValidationError):
            await service.move_rack(rack_id, zone_id)

    async def test_move_shelf_carries_placements(self, service, db_session, grid, products, shelf_location):
        inventory = InventoryService(db_session, BUSINESS_ID)
        inward = await inventory.apply_inward("WP-100", 3, **shelf_location)
        destination_rack = grid["racks"][1]
        destination_rack_id = destination_rack.id

        position = await service.move_shelf(shelf_location["shelf_id"], destination_rack_id)
        assert position == 4

        placement = await inventory.placements.get_placement(inward.placement_id)
        assert placement.rack_id == destination_rack_id
        assert placement.rack_name == "Rack-2"
        assert placement.location_path == "Zone-1 > Rack-2 > Shelf-1"

        source_shelves, _ = await service.get_shelves(shelf_location["rack_id"])
        assert [s.position for s in source_shelves] == [1, 2]

    async def test_move_zone_rewrites_descendants(self, service, grid, products, db_session, shelf_location):
        inventory = InventoryService(db_session, BUSINESS_ID)
        inward = await inventory.apply_inward("WP-100", 1, **shelf_location)
        other = await service.create_warehouse(WarehouseCreate(name="Overflow"))

        await service.move_zone(shelf_location["zone_id"], other.id)

        shelf = await service.get_shelf(shelf_location["shelf_id"])
        assert shelf.warehouse_id == other.id
        assert shelf.warehouse_name == "Overflow"
        placement = await inventory.placements.get_placement(inward.placement_id)
        assert placement.warehouse_id == other.id


class TestRenamePropagation:
    async def test_rack_rename_reaches_shelves_and_placements(
        self, service, db_session, grid, products, shelf_location
    ):
        inventory = InventoryService(db_session, BUSINESS_ID)
        inward = await inventory.apply_inward("WP-100", 2, **shelf_location)

        await service.update_rack(shelf_location["rack_id"], RackUpdate(name="Cold Rack"))

        shelves, _ = await service.get_shelves(shelf_location["rack_id"])
        assert {s.rack_name for s in shelves} == {"Cold Rack"}
        placement = await inventory.placements.get_placement(inward.placement_id)
        assert placement.location_path == "Zone-1 > Cold Rack > Shelf-1"

    async def test_warehouse_rename_reaches_every_level(self, service, grid, shelf_location):
        await service.update_warehouse(shelf_location["warehouse_id"], WarehouseUpdate(name="Renamed"))

        zone = await service.get_zone(shelf_location["zone_id"])
        rack = await service.get_rack(shelf_location["rack_id"])
        shelf = await service.get_shelf(shelf_location["shelf_id"])
        assert zone.warehouse_name == rack.warehouse_name == shelf.warehouse_name == "Renamed"


class TestDeletes:
    async def test_delete_shelf_with_stock_conflicts(self, service, db_session, grid, products, shelf_location):
        inventory = InventoryService(db_session, BUSINESS_ID)
        await inventory.apply_inward("WP-100", 1, **shelf_location)

        with pytest.raises(ConflictError):
            await service.delete_shelf(shelf_location["shelf_id"])

    async def test_delete_empty_shelf_closes_gap(self, service, grid, shelf_location):
        await service.delete_shelf(shelf_location["shelf_id"])

        with pytest.raises(NotFoundError):
            await service.get_shelf(shelf_location["shelf_id"])
        shelves, _ = await service.get_shelves(shelf_location["rack_id"])
        assert [(s.name, s.position) for s in shelves] == [("Shelf-2", 1), ("Shelf-3", 2)]

    async def test_delete_warehouse_with_zones_conflicts(self, service, grid, shelf_location):
        with pytest.raises(ConflictError) as exc:
            await service.delete_warehouse(shelf_location["warehouse_id"])
        assert exc.value.details["child_type"] == "zone"

    async def test_delete_bottom_up(self, service):
        warehouse = await service.create_warehouse(WarehouseCreate(name="Small"))
        zone = await service.create_zone(ZoneCreate(warehouse_id=warehouse.id, name="Z"))
        rack = await service.create_rack(RackCreate(zone_id=zone.id, name="R"))
        shelf = await service.create_shelf(ShelfCreate(rack_id=rack.id, name="S"))
        assert (rack.position, shelf.position) == (1, 1)

        await service.delete_shelf(shelf.id)
        await service.delete_rack(rack.id)
        await service.delete_zone(zone.id)
        await service.delete_warehouse(warehouse.id)

        _, total = await service.get_warehouses()
        assert total == 0


async def test_changes_are_audited(service, db_session, grid):
    rack_id = grid["racks"][0].id
    await service.reposition_rack(rack_id, 2)

    history = await AuditService(db_session, BUSINESS_ID).get_entity_history("RACK", rack_id)
    assert history[0].action == "REPOSITION"
    assert history[0].old_values == {"position": 1}
    assert history[0].new_values == {"position": 2}
    assert history[0].user_id == ACTOR_ID
