"""Tests for the PO and GRN state machines."""
from decimal import Decimal
from types import SimpleNamespace

import pytest

from backoffice.core.exceptions import InvalidTransitionError, ValidationError
from backoffice.services import grn_state_machine, po_state_machine


def _po(status="confirmed", lines=(("A", 10),)):
    return SimpleNamespace(
        po_number="PO-00001",
        status=status,
        confirmed_at=None,
        completed_at=None,
        cancelled_at=None,
        cancel_reason=None,
        items=[
            SimpleNamespace(sku=sku, ordered_qty=qty, received_qty=0, rejected_qty=0, status="pending")
            for sku, qty in lines
        ],
    )


def _grn_item(sku="A", expected=10, received=10, rejected=0, unit_cost="2.50"):
    return SimpleNamespace(
        sku=sku,
        expected_qty=expected,
        received_qty=received,
        rejected_qty=rejected,
        unit_cost=Decimal(unit_cost),
        accepted_qty=0,
        not_received_qty=0,
        total_cost=Decimal("0"),
    )


class TestPOTransitions:
    @pytest.mark.parametrize(
        "source,target",
        [
            ("draft", "confirmed"),
            ("draft", "cancelled"),
            ("confirmed", "partially_received"),
            ("confirmed", "closed"),
            ("confirmed", "cancelled"),
            ("partially_received", "fully_received"),
            ("partially_received", "closed"),
            ("fully_received", "closed"),
        ],
    )
    def test_allowed(self, source, target):
        assert po_state_machine.can_transition(source, target)

    @pytest.mark.parametrize(
        "source,target",
        [
            ("draft", "fully_received"),
            ("partially_received", "cancelled"),
            ("closed", "confirmed"),
            ("cancelled", "draft"),
            ("confirmed", "confirmed"),
        ],
    )
    def test_rejected(self, source, target):
        with pytest.raises(InvalidTransitionError) as exc:
            po_state_machine.validate_transition(source, target)
        assert exc.value.details["source"] == source
        assert exc.value.details["target"] == target
        assert exc.value.details["allowed"] == po_state_machine.get_allowed_transitions(source)

    def test_terminal_statuses(self):
        assert po_state_machine.is_terminal("closed")
        assert po_state_machine.is_terminal("cancelled")
        assert not po_state_machine.is_terminal("draft")

    def test_transition_stamps(self):
        po = _po(status="draft")
        po_state_machine.transition_po(po, "confirmed")
        assert po.status == "confirmed"
        assert po.confirmed_at is not None

        po_state_machine.transition_po(po, "cancelled", reason="supplier out of stock")
        assert po.cancelled_at is not None
        assert po.cancel_reason == "supplier out of stock"


class TestReceiptDerivation:
    def test_item_status(self):
        assert po_state_machine.derive_item_status(0, 10) == "pending"
        assert po_state_machine.derive_item_status(4, 10) == "partially_received"
        assert po_state_machine.derive_item_status(10, 10) == "fully_received"
        assert po_state_machine.derive_item_status(12, 10) == "fully_received"

    def test_partial_then_full(self):
        po = _po(lines=(("A", 10), ("B", 5)))
        assert po_state_machine.apply_receipt(po, {"A": 10}) == "partially_received"
        assert po_state_machine.apply_receipt(po, {"B": 5}) == "fully_received"
        assert po.completed_at is not None

    def test_reverse_returns_to_confirmed(self):
        po = _po()
        po_state_machine.apply_receipt(po, {"A": 4}, {"A": 1})
        status = po_state_machine.reverse_receipt(po, {"A": 4}, {"A": 1})
        assert status == "confirmed"
        assert po.items[0].received_qty == 0
        assert po.items[0].rejected_qty == 0
        assert po.items[0].status == "pending"

    def test_reverse_floors_at_zero(self):
        po = _po()
        po_state_machine.reverse_receipt(po, {"A": 3})
        assert po.items[0].received_qty == 0

    def test_frozen_statuses_are_kept(self):
        po = _po(status="closed")
        assert po_state_machine.apply_receipt(po, {"A": 10}) == "closed"
        assert po.items[0].status == "fully_received"


class TestGRNStateMachine:
    def test_only_draft_moves(self):
        assert grn_state_machine.can_transition("draft", "completed")
        assert grn_state_machine.can_transition("draft", "cancelled")
        for target in ("draft", "cancelled", "completed"):
            assert not grn_state_machine.can_transition("completed", target)
            assert not grn_state_machine.can_transition("cancelled", target)

    def test_same_state_is_invalid(self):
        with pytest.raises(InvalidTransitionError):
            grn_state_machine.validate_transition("draft", "draft")

    def test_derive_item_fields(self):
        item = _grn_item(expected=10, received=8, rejected=2, unit_cost="1.255")
        grn_state_machine.derive_item_fields(item)
        assert item.accepted_qty == 6
        assert item.not_received_qty == 2
        assert item.total_cost == Decimal("10.04")

    def test_rejected_over_received(self):
        with pytest.raises(ValidationError):
            grn_state_machine.derive_item_fields(_grn_item(received=2, rejected=3))

    def test_negative_quantities(self):
        with pytest.raises(ValidationError):
            grn_state_machine.derive_item_fields(_grn_item(received=-1))

    def test_recompute_totals(self):
        grn = SimpleNamespace(items=[
            _grn_item("A", expected=10, received=10, unit_cost="2.00"),
            _grn_item("B", expected=5, received=3, rejected=1, unit_cost="1.50"),
        ])
        grn_state_machine.recompute_totals(grn)
        assert grn.total_expected_qty == 15
        assert grn.total_received_qty == 13
        assert grn.total_not_received_qty == 2
        assert grn.total_received_value == Decimal("24.50")

    def test_duplicate_skus(self):
        assert grn_state_machine.find_duplicate_skus(["A", "B", "A"]) == ["A"]
        with pytest.raises(ValidationError) as exc:
            grn_state_machine.ensure_unique_skus(["A", "B", "A"])
        assert exc.value.details["duplicate_skus"] == ["A"]

    def test_po_contribution(self):
        items = [SimpleNamespace(sku="A", accepted_qty=6, rejected_qty=2)]
        assert grn_state_machine.po_contribution(items) == ({"A": 6}, {"A": 2})
