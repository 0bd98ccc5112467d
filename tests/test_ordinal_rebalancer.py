"""Tests for sibling position planning."""
import pytest

from backoffice.core.exceptions import ConflictError, ValidationError
from backoffice.services.ordinal_rebalancer import (
    is_dense,
    plan_insertion,
    plan_move,
    plan_removal,
    plan_reposition,
)


def _apply(siblings, changes):
    return {sibling_id: changes.get(sibling_id, position) for sibling_id, position in siblings}


FOUR = [("a", 1), ("b", 2), ("c", 3), ("d", 4)]


class TestReposition:
    def test_move_down_shifts_between_up(self):
        changes = plan_reposition(FOUR, "a", 3)
        assert changes == {"a": 3, "b": 1, "c": 2}
        assert _apply(FOUR, changes) == {"a": 3, "b": 1, "c": 2, "d": 4}

    def test_move_up_shifts_between_down(self):
        changes = plan_reposition(FOUR, "d", 2)
        assert _apply(FOUR, changes) == {"a": 1, "b": 3, "c": 4, "d": 2}

    def test_same_position_is_noop(self):
        assert plan_reposition(FOUR, "b", 2) == {}

    @pytest.mark.parametrize("position", [0, 5, -1])
    def test_out_of_range(self, position):
        with pytest.raises(ValidationError):
            plan_reposition(FOUR, "a", position)

    def test_stale_expected_position_conflicts(self):
        with pytest.raises(ConflictError):
            plan_reposition(FOUR, "a", 3, expected_old=2)

    @pytest.mark.parametrize("item", ["a", "b", "c", "d"])
    @pytest.mark.parametrize("target", [1, 2, 3, 4])
    def test_result_stays_dense(self, item, target):
        assert is_dense(_apply(FOUR, plan_reposition(FOUR, item, target)).values())


class TestRemovalAndInsertion:
    def test_removal_closes_gap(self):
        changes = plan_removal(FOUR, "b")
        assert changes == {"c": 2, "d": 3}

    def test_append_when_no_target(self):
        assert plan_insertion(FOUR) == ({}, 5)

    def test_append_to_empty_parent(self):
        assert plan_insertion([]) == ({}, 1)

    def test_insert_shifts_at_and_after_target(self):
        changes, position = plan_insertion(FOUR, 2)
        assert position == 2
        assert changes == {"b": 3, "c": 4, "d": 5}

    def test_insert_range_allows_one_past_end(self):
        assert plan_insertion(FOUR, 5) == ({}, 5)
        with pytest.raises(ValidationError):
            plan_insertion(FOUR, 6)


class TestMove:
    def test_move_keeps_both_parents_dense(self):
        source = [("x", 1), ("y", 2), ("z", 3)]
        destination = [("p", 1), ("q", 2)]
        plan = plan_move(source, destination, "y", target_position=1)

        remaining = _apply([s for s in source if s[0] != "y"], plan.source_changes)
        assert is_dense(remaining.values())

        moved = _apply(destination, plan.destination_changes)
        moved["y"] = plan.new_position
        assert moved == {"p": 2, "q": 3, "y": 1}
        assert is_dense(moved.values())

    def test_move_appends_by_default(self):
        plan = plan_move([("x", 1)], [("p", 1), ("q", 2)], "x")
        assert plan.new_position == 3
        assert plan.source_changes == {}

    def test_move_checks_expected_position(self):
        with pytest.raises(ConflictError):
            plan_move([("x", 1)], [], "x", expected_old=4)


def test_is_dense():
    assert is_dense([2, 1, 3])
    assert is_dense([])
    assert not is_dense([1, 1, 2])
    assert not is_dense([1, 3])
