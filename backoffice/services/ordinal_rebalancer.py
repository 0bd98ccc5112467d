"""
Ordinal rebalancing for racks within a zone and shelves within a rack.

Siblings of one parent hold the positions ``1..N`` with no gaps or
duplicates. The planning functions below take ``(id, position)`` pairs and
return ``{id: new_position}`` for every sibling that must change, so the
caller can write all of them in the same transaction.
"""
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Optional, Sequence, Tuple

from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError


Sibling = Tuple[Hashable, int]


@dataclass(frozen=True)
class MovePlan:
    source_changes: Dict[Hashable, int]
    destination_changes: Dict[Hashable, int]
    new_position: int


def _position_of(siblings: Sequence[Sibling], item_id: Hashable) -> int:
    for sibling_id, position in siblings:
        if sibling_id == item_id:
            return position
    raise NotFoundError(f"Item {item_id} is not among the siblings", {"id": str(item_id)})


def _check_expected(current: int, expected_old: Optional[int]) -> None:
    if expected_old is not None and expected_old != current:
        raise ConflictError(
            f"Position changed since it was read (expected {expected_old}, found {current})",
            {"expected_position": expected_old, "current_position": current}
        )


def is_dense(positions: Iterable[int]) -> bool:
    """True if ``positions`` is exactly ``{1..N}`` with no duplicates."""
    positions = list(positions)
    return sorted(positions) == list(range(1, len(positions) + 1))


def plan_reposition(
    siblings: Sequence[Sibling],
    item_id: Hashable,
    new_position: int,
    expected_old: Optional[int] = None,
) -> Dict[Hashable, int]:
    """
    Move one item to ``new_position`` among its own siblings.

    Moving down shifts the siblings in ``(old, new]`` up by one slot
    (position - 1). Moving up shifts the siblings in ``[new, old)`` down
    (position + 1). Same position is a no-op.
    """
    old_position = _position_of(siblings, item_id)
    _check_expected(old_position, expected_old)

    count = len(siblings)
    if isinstance(new_position, bool) or not isinstance(new_position, int) or not 1 <= new_position <= count:
        raise ValidationError(
            f"Position must be between 1 and {count}",
            {"position": new_position, "max_position": count}
        )

    if new_position == old_position:
        return {}

    changes: Dict[Hashable, int] = {item_id: new_position}
    for sibling_id, position in siblings:
        if sibling_id == item_id:
            continue
        if new_position > old_position and old_position < position <= new_position:
            changes[sibling_id] = position - 1
        elif new_position < old_position and new_position <= position < old_position:
            changes[sibling_id] = position + 1
    return changes


def plan_removal(siblings: Sequence[Sibling], item_id: Hashable) -> Dict[Hashable, int]:
    """Close the gap left by removing ``item_id`` from its parent."""
    old_position = _position_of(siblings, item_id)
    return {
        sibling_id: position - 1
        for sibling_id, position in siblings
        if sibling_id != item_id and position > old_position
    }


def plan_insertion(
    siblings: Sequence[Sibling],
    target_position: Optional[int] = None,
) -> Tuple[Dict[Hashable, int], int]:
    """
    Make room for a new sibling.

    Without ``target_position`` the item is appended at ``max + 1`` (``1``
    for an empty parent). Otherwise every sibling at or after the target
    shifts up by one.
    """
    if target_position is None:
        return {}, max((position for _, position in siblings), default=0) + 1

    limit = len(siblings) + 1
    if isinstance(target_position, bool) or not isinstance(target_position, int) or not 1 <= target_position <= limit:
        raise ValidationError(
            f"Position must be between 1 and {limit}",
            {"position": target_position, "max_position": limit}
        )

    changes = {
        sibling_id: position + 1
        for sibling_id, position in siblings
        if position >= target_position
    }
    return changes, target_position


def plan_move(
    source_siblings: Sequence[Sibling],
    destination_siblings: Sequence[Sibling],
    item_id: Hashable,
    target_position: Optional[int] = None,
    expected_old: Optional[int] = None,
) -> MovePlan:
    """Take ``item_id`` out of its source ordering and insert it into the destination."""
    _check_expected(_position_of(source_siblings, item_id), expected_old)
    source_changes = plan_removal(source_siblings, item_id)
    destination_changes, new_position = plan_insertion(destination_siblings, target_position)
    return MovePlan(
        source_changes=source_changes,
        destination_changes=destination_changes,
        new_position=new_position,
    )
