"""Tests for stock movements, placements and the inventory log."""
import uuid

import pytest

from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.services.inventory_service import InventoryService
from backoffice.services.product_service import ProductService

from tests.conftest import ACTOR_ID, BUSINESS_ID, OTHER_BUSINESS_ID


@pytest.fixture
def inventory(db_session):
    return InventoryService(db_session, BUSINESS_ID)


class TestProducts:
    async def test_duplicate_sku_conflicts(self, db_session, products):
        with pytest.raises(ConflictError):
            await ProductService(db_session, BUSINESS_ID).create_product("WP-100", "Again")

    async def test_same_sku_in_other_business(self, db_session, products):
        product = await ProductService(db_session, OTHER_BUSINESS_ID).create_product("WP-100", "Theirs")
        assert product.business_id == OTHER_BUSINESS_ID

    async def test_ensure_skus_exist_lists_every_missing_sku(self, db_session, products):
        with pytest.raises(NotFoundError) as exc:
            await ProductService(db_session, BUSINESS_ID).ensure_skus_exist(["WP-100", "NOPE-2", "NOPE-1"])
        assert exc.value.details["missing_skus"] == ["NOPE-1", "NOPE-2"]


class TestInward:
    async def test_first_inward_creates_placement(self, inventory, products, shelf_location):
        result = await inventory.apply_inward("WP-100", 5, **shelf_location, actor_id=ACTOR_ID)

        assert result.previous_physical_stock == 10
        assert result.new_physical_stock == 15
        assert result.previous_placement_quantity == 0
        assert result.new_placement_quantity == 5

        placement = await inventory.placements.get_placement(result.placement_id)
        assert placement.create_upcs is True
        assert placement.location_path == "Zone-1 > Rack-1 > Shelf-1"
        assert placement.last_movement_reason == "inward_addition"

    async def test_repeat_inward_merges_and_flips_flag(self, inventory, products, shelf_location):
        first = await inventory.apply_inward("WP-100", 5, **shelf_location)
        second = await inventory.apply_inward("WP-100", 3, **shelf_location)

        assert second.placement_id == first.placement_id
        assert second.previous_placement_quantity == 5
        assert second.new_placement_quantity == 8

        placement = await inventory.placements.get_placement(first.placement_id)
        assert placement.create_upcs is False

        third = await inventory.apply_inward("WP-100", 1, **shelf_location)
        placement = await inventory.placements.get_placement(third.placement_id)
        assert placement.create_upcs is True

        stock = await inventory.get_stock("WP-100")
        assert stock["inward_addition"] == 9
        assert stock["physical_stock"] == 19

    async def test_inward_over_cap_leaves_nothing(self, inventory, products, shelf_location):
        with pytest.raises(ValidationError):
            await inventory.apply_inward("WP-100", 501, **shelf_location)

        stock = await inventory.get_stock("WP-100")
        assert stock["inward_addition"] == 0
        assert await inventory.placements.list_placements() == []
        assert await inventory.list_inventory_logs("WP-100") == []

    async def test_inward_unknown_sku(self, inventory, products, shelf_location):
        with pytest.raises(NotFoundError):
            await inventory.apply_inward("NOPE", 1, **shelf_location)

    async def test_inconsistent_location_chain(self, inventory, products, grid, shelf_location):
        other_rack = grid["racks"][1].id
        with pytest.raises(ValidationError):
            await inventory.apply_inward("WP-100", 1, **{**shelf_location, "rack_id": other_rack})

    async def test_missing_location_level(self, inventory, products, shelf_location):
        with pytest.raises(ValidationError):
            await inventory.apply_inward("WP-100", 1, **{**shelf_location, "zone_id": None})

    async def test_unknown_shelf(self, inventory, products, shelf_location):
        with pytest.raises(NotFoundError):
            await inventory.apply_inward("WP-100", 1, **{**shelf_location, "shelf_id": uuid.uuid4()})

    async def test_inward_writes_log(self, inventory, products, shelf_location):
        await inventory.apply_inward("WP-100", 4, **shelf_location, source_reference="REF-1", actor_id=ACTOR_ID)

        logs = await inventory.list_inventory_logs("WP-100")
        assert len(logs) == 1
        log = logs[0]
        assert log.adjustment_type == "inward"
        assert log.adjustment_amount == 4
        assert log.changes == [{
            "field": "inward_addition",
            "field_label": "Inward Stock",
            "old_value": 0,
            "new_value": 4,
        }]
        assert log.stock_snapshot["previous_physical_stock"] == 10
        assert log.stock_snapshot["new_physical_stock"] == 14
        assert log.placement["shelf_name"] == "Shelf-1"
        assert log.source_reference == "REF-1"
        assert log.performed_by == ACTOR_ID

    async def test_auto_inward_uses_auto_addition(self, inventory, products, shelf_location):
        result = await inventory.apply_auto_inward("FLT-01", 2, **shelf_location)
        assert result.new_placement_quantity == 2

        stock = await inventory.get_stock("FLT-01")
        assert stock["auto_addition"] == 2
        assert stock["inward_addition"] == 0
        logs = await inventory.list_inventory_logs("FLT-01")
        assert [log.adjustment_type for log in logs] == ["auto_addition"]
        assert logs[0].source == "auto_inward"


class TestOutward:
    async def test_manual_deduction(self, inventory, products, shelf_location):
        inward = await inventory.apply_inward("WP-100", 5, **shelf_location)
        result = await inventory.apply_outward("WP-100", 2, inward.placement_id, reason="damaged")

        assert result.new_physical_stock == 13
        assert result.remaining_placement_quantity == 3
        stock = await inventory.get_stock("WP-100")
        assert stock["deduction"] == 2
        assert stock["auto_deduction"] == 0

        logs = await inventory.list_inventory_logs("WP-100")
        assert sorted(log.adjustment_type for log in logs) == ["deduction", "inward"]

    async def test_automatic_deduction(self, inventory, products, shelf_location):
        inward = await inventory.apply_inward("WP-100", 5, **shelf_location)
        await inventory.apply_outward("WP-100", 5, inward.placement_id, automatic=True)

        stock = await inventory.get_stock("WP-100")
        assert stock["auto_deduction"] == 5

        logs = await inventory.list_inventory_logs("WP-100")
        assert sorted(log.adjustment_type for log in logs) == ["auto_deduction", "inward"]

    async def test_placement_kept_at_zero(self, inventory, products, shelf_location):
        inward = await inventory.apply_inward("WP-100", 2, **shelf_location)
        await inventory.apply_outward("WP-100", 2, inward.placement_id)

        placement = await inventory.placements.get_placement(inward.placement_id)
        assert placement.quantity == 0
        assert await inventory.placements.list_placements() == []
        assert len(await inventory.placements.list_placements(include_empty=True)) == 1

    async def test_cannot_take_more_than_placement_holds(self, inventory, products, shelf_location):
        inward = await inventory.apply_inward("WP-100", 2, **shelf_location)
        placement_id = inward.placement_id

        with pytest.raises(ValidationError):
            await inventory.apply_outward("WP-100", 3, placement_id)

        stock = await inventory.get_stock("WP-100")
        assert stock["deduction"] == 0
        placement = await inventory.placements.get_placement(placement_id)
        assert placement.quantity == 2

    async def test_cannot_exceed_physical_stock(self, inventory, products, shelf_location):
        inward = await inventory.apply_inward("FLT-01", 2, **shelf_location)
        with pytest.raises(ValidationError):
            await inventory.apply_outward("FLT-01", 3, inward.placement_id)

    async def test_placement_must_hold_the_sku(self, inventory, products, shelf_location):
        inward = await inventory.apply_inward("FLT-01", 2, **shelf_location)
        with pytest.raises(ValidationError):
            await inventory.apply_outward("WP-100", 1, inward.placement_id)


class TestBlocking:
    async def test_block_and_unblock(self, inventory, products):
        delta = await inventory.block_stock("WP-100", 4)
        assert delta.new_available_stock == 6
        assert delta.new_physical_stock == 10

        await inventory.unblock_stock("WP-100", 1)
        stock = await inventory.get_stock("WP-100")
        assert stock["blocked_stock"] == 3
        assert stock["available_stock"] == 7

    async def test_unblock_more_than_blocked(self, inventory, products):
        await inventory.block_stock("WP-100", 1)
        with pytest.raises(ValidationError):
            await inventory.unblock_stock("WP-100", 2)

    async def test_block_more_than_available(self, inventory, products):
        with pytest.raises(ValidationError):
            await inventory.block_stock("WP-100", 11)


async def test_placements_listed_per_product(inventory, products, grid, shelf_location):
    second_shelf = grid["shelves"][1]
    await inventory.apply_inward("WP-100", 3, **shelf_location)
    await inventory.apply_inward("WP-100", 4, **{**shelf_location, "shelf_id": second_shelf.id})
    await inventory.apply_inward("FLT-01", 1, **shelf_location)

    product = await inventory.products.require_by_sku("WP-100")
    placements = await inventory.placements.list_placements_for_product(product.id)
    assert [(p.shelf_name, p.quantity) for p in placements] == [("Shelf-1", 3), ("Shelf-2", 4)]
