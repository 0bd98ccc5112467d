"""Tests for the inventory ledger arithmetic."""
import pytest

from backoffice.core.exceptions import ValidationError
from backoffice.services.inventory_ledger import (
    InventoryCounters,
    MovementKind,
    apply_ledger_delta,
    replay,
    validate_quantity,
)


class TestCounters:
    def test_physical_and_available_are_derived(self):
        counters = InventoryCounters(
            opening_stock=10, inward_addition=5, deduction=3,
            auto_addition=2, auto_deduction=1, blocked_stock=4,
        )
        assert counters.physical_stock == 13
        assert counters.available_stock == 9

    def test_from_mapping_treats_missing_and_null_as_zero(self):
        counters = InventoryCounters.from_mapping({"opening_stock": 7, "deduction": None})
        assert counters.as_dict() == {
            "opening_stock": 7,
            "inward_addition": 0,
            "deduction": 0,
            "auto_addition": 0,
            "auto_deduction": 0,
            "blocked_stock": 0,
        }


class TestApplyLedgerDelta:
    def test_inward_increments_inward_addition(self):
        delta = apply_ledger_delta(InventoryCounters(opening_stock=10), MovementKind.INWARD, 5)
        assert delta.field == "inward_addition"
        assert (delta.old_value, delta.new_value) == (0, 5)
        assert delta.previous_physical_stock == 10
        assert delta.new_physical_stock == 15

    @pytest.mark.parametrize(
        "kind,field",
        [
            ("outward-manual", "deduction"),
            ("outward-auto", "auto_deduction"),
            ("auto-inward", "auto_addition"),
            ("block", "blocked_stock"),
        ],
    )
    def test_each_kind_touches_one_counter(self, kind, field):
        before = InventoryCounters(opening_stock=20)
        delta = apply_ledger_delta(before, kind, 4)
        changed = {k for k, v in delta.after.as_dict().items() if v != before.as_dict()[k]}
        assert changed == {field}

    @pytest.mark.parametrize(
        "kind,adjustment_type",
        [
            ("inward", "inward"),
            ("outward-manual", "deduction"),
            ("outward-auto", "auto_deduction"),
            ("auto-inward", "auto_addition"),
            ("block", "block"),
        ],
    )
    def test_adjustment_type_for_log(self, kind, adjustment_type):
        delta = apply_ledger_delta(InventoryCounters(opening_stock=20), kind, 1)
        assert delta.adjustment_type == adjustment_type

    def test_block_moves_available_not_physical(self):
        delta = apply_ledger_delta(InventoryCounters(opening_stock=10), MovementKind.BLOCK, 3)
        assert delta.new_physical_stock == 10
        assert delta.new_available_stock == 7

    def test_unblock_decrements_blocked(self):
        delta = apply_ledger_delta(
            InventoryCounters(opening_stock=10, blocked_stock=3), MovementKind.UNBLOCK, 2
        )
        assert delta.after.blocked_stock == 1
        assert delta.new_available_stock == 9

    @pytest.mark.parametrize("qty", [0, -1, 2.5, "3", True, None])
    def test_rejects_non_positive_or_non_integer(self, qty):
        with pytest.raises(ValidationError):
            apply_ledger_delta(InventoryCounters(opening_stock=10), MovementKind.INWARD, qty)

    def test_rejects_quantity_over_cap(self):
        with pytest.raises(ValidationError) as exc:
            apply_ledger_delta(InventoryCounters(), MovementKind.INWARD, 501, max_qty=500)
        assert exc.value.details["max_qty"] == 500

    def test_cap_is_inclusive(self):
        delta = apply_ledger_delta(InventoryCounters(), MovementKind.INWARD, 500, max_qty=500)
        assert delta.new_physical_stock == 500

    def test_outward_cannot_exceed_physical(self):
        with pytest.raises(ValidationError):
            apply_ledger_delta(InventoryCounters(opening_stock=3), MovementKind.OUTWARD_MANUAL, 4)

    def test_unblock_cannot_exceed_blocked(self):
        with pytest.raises(ValidationError):
            apply_ledger_delta(InventoryCounters(opening_stock=10, blocked_stock=1), MovementKind.UNBLOCK, 2)

    def test_block_cannot_exceed_available(self):
        with pytest.raises(ValidationError):
            apply_ledger_delta(InventoryCounters(opening_stock=5, blocked_stock=4), MovementKind.BLOCK, 2)

    def test_unknown_kind_is_rejected(self):
        with pytest.raises(ValueError):
            apply_ledger_delta(InventoryCounters(), "teleport", 1)

    def test_change_entry_carries_label(self):
        entry = apply_ledger_delta(InventoryCounters(), MovementKind.INWARD, 2).change_entry()
        assert entry == {
            "field": "inward_addition",
            "field_label": "Inward Stock",
            "old_value": 0,
            "new_value": 2,
        }


def test_replay_matches_formula():
    counters = replay(
        InventoryCounters(opening_stock=10),
        [
            (MovementKind.INWARD, 5),
            (MovementKind.OUTWARD_MANUAL, 3),
            (MovementKind.AUTO_INWARD, 2),
            (MovementKind.OUTWARD_AUTO, 1),
            (MovementKind.BLOCK, 4),
            (MovementKind.UNBLOCK, 1),
        ],
    )
    assert counters.physical_stock == 10 + 5 - 3 + 2 - 1
    assert counters.available_stock == counters.physical_stock - 3


def test_validate_quantity_returns_value():
    assert validate_quantity(12, max_qty=500) == 12
