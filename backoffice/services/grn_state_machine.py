"""
GRN State Machine

``draft`` is the only state a GRN can leave. It ends in ``completed`` (stock
inwarded) or ``cancelled`` (PO contribution reversed). Same-state requests
are rejected like any other transition outside the table.
"""

from collections import Counter
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Sequence

from backoffice.core.exceptions import InvalidTransitionError, ValidationError
from backoffice.models.purchase import GRNStatus


GRN_TRANSITIONS: Dict[str, List[str]] = {
    GRNStatus.DRAFT.value: [GRNStatus.COMPLETED.value, GRNStatus.CANCELLED.value],
    GRNStatus.COMPLETED.value: [],
    GRNStatus.CANCELLED.value: [],
}

TWO_PLACES = Decimal("0.01")


def can_transition(current_status: str, new_status: str) -> bool:
    return new_status in GRN_TRANSITIONS.get(current_status, [])


def validate_transition(current_status: str, new_status: str) -> None:
    if not can_transition(current_status, new_status):
        raise InvalidTransitionError(
            "GRN",
            current_status,
            new_status,
            GRN_TRANSITIONS.get(current_status, []),
        )


def is_editable(status: str) -> bool:
    return status == GRNStatus.DRAFT.value


def ensure_editable(grn) -> None:
    if not is_editable(grn.status):
        raise ValidationError(
            f"GRN {grn.grn_number} is {grn.status}; items can only be changed in draft",
            {"status": grn.status}
        )


def find_duplicate_skus(skus: Iterable[str]) -> List[str]:
    counts = Counter(skus)
    return sorted(sku for sku, count in counts.items() if count > 1)


def ensure_unique_skus(skus: Sequence[str]) -> None:
    duplicates = find_duplicate_skus(skus)
    if duplicates:
        raise ValidationError(
            f"Duplicate SKUs found: {', '.join(duplicates)}",
            {"duplicate_skus": duplicates}
        )


def derive_item_fields(item) -> None:
    """Recompute accepted, not-received and total cost on one line."""
    if item.received_qty < 0 or item.expected_qty < 0 or item.rejected_qty < 0:
        raise ValidationError(
            f"Quantities for {item.sku} cannot be negative",
            {"sku": item.sku}
        )
    if item.rejected_qty > item.received_qty:
        raise ValidationError(
            f"Rejected quantity for {item.sku} cannot exceed received quantity",
            {"sku": item.sku, "received_qty": item.received_qty, "rejected_qty": item.rejected_qty}
        )
    item.accepted_qty = item.received_qty - item.rejected_qty
    item.not_received_qty = max(0, item.expected_qty - item.received_qty)
    unit_cost = Decimal(str(item.unit_cost or 0))
    item.total_cost = (unit_cost * item.received_qty).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def recompute_totals(grn) -> None:
    """Recompute derived fields on every line and the four aggregates."""
    for item in grn.items:
        derive_item_fields(item)
    grn.total_expected_qty = sum(item.expected_qty for item in grn.items)
    grn.total_received_qty = sum(item.received_qty for item in grn.items)
    grn.total_not_received_qty = sum(item.not_received_qty for item in grn.items)
    grn.total_received_value = sum(
        (Decimal(str(item.total_cost)) for item in grn.items), Decimal("0")
    ).quantize(TWO_PLACES)


def po_contribution(items) -> tuple[Mapping[str, int], Mapping[str, int]]:
    """Per-SKU ``(accepted, rejected)`` quantities a GRN adds to its PO."""
    accepted = {item.sku: item.accepted_qty for item in items}
    rejected = {item.sku: item.rejected_qty for item in items}
    return accepted, rejected
