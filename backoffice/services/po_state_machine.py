"""
Purchase Order State Machine

This module is the single source of truth for PO status changes, both the
manual transitions a user requests and the statuses derived from received
quantities when GRNs are created or cancelled.
"""

from typing import Dict, Iterable, List, Mapping, Optional
from datetime import datetime, timezone
import logging

from backoffice.core.exceptions import InvalidTransitionError
from backoffice.models.purchase import POStatus, POItemStatus


logger = logging.getLogger(__name__)


# =============================================================================
# TRANSITION RULES
# =============================================================================

# current_status -> [allowed next statuses]
PO_TRANSITIONS: Dict[str, List[str]] = {
    POStatus.DRAFT.value: [
        POStatus.CONFIRMED.value,           # Send to supplier
        POStatus.CANCELLED.value,           # Cancel draft
    ],
    POStatus.CONFIRMED.value: [
        POStatus.PARTIALLY_RECEIVED.value,  # Start receiving goods
        POStatus.CLOSED.value,              # Close without receipt
        POStatus.CANCELLED.value,           # Cancel
    ],
    POStatus.PARTIALLY_RECEIVED.value: [
        POStatus.FULLY_RECEIVED.value,      # All remaining goods received
        POStatus.CLOSED.value,              # Close with partial receipt
    ],
    POStatus.FULLY_RECEIVED.value: [
        POStatus.CLOSED.value,
    ],
    POStatus.CLOSED.value: [],              # Terminal
    POStatus.CANCELLED.value: [],           # Terminal
}

# Statuses whose items can still be replaced
EDITABLE_STATUSES = (POStatus.DRAFT.value, POStatus.CONFIRMED.value)

# Statuses that accept new GRNs
RECEIVABLE_STATUSES = (
    POStatus.CONFIRMED.value,
    POStatus.PARTIALLY_RECEIVED.value,
    POStatus.FULLY_RECEIVED.value,
)

# POs in these statuses no longer hold a party open
SETTLED_STATUSES = (
    POStatus.CLOSED.value,
    POStatus.CANCELLED.value,
    POStatus.FULLY_RECEIVED.value,
)

# Statuses that receipt-driven derivation leaves alone
FROZEN_STATUSES = (
    POStatus.DRAFT.value,
    POStatus.CLOSED.value,
    POStatus.CANCELLED.value,
)

ITEM_STATUS_RANK = {
    POItemStatus.PENDING.value: 0,
    POItemStatus.PARTIALLY_RECEIVED.value: 1,
    POItemStatus.FULLY_RECEIVED.value: 2,
}


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def can_transition(current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in PO_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: str) -> List[str]:
    """Get list of statuses that can be transitioned to from current status."""
    return list(PO_TRANSITIONS.get(current_status, []))


def validate_transition(current_status: str, new_status: str) -> None:
    """Raise InvalidTransitionError unless the table allows the move."""
    if not can_transition(current_status, new_status):
        raise InvalidTransitionError(
            "purchase order",
            current_status,
            new_status,
            get_allowed_transitions(current_status),
        )


def is_terminal(status: str) -> bool:
    return len(PO_TRANSITIONS.get(status, [])) == 0


def transition_po(po, new_status: str, reason: Optional[str] = None) -> None:
    """
    Validate and apply a manual status change, stamping lifecycle timestamps.
    """
    validate_transition(po.status, new_status)
    now = datetime.now(timezone.utc)
    old_status = po.status
    po.status = new_status

    if new_status == POStatus.CONFIRMED.value:
        po.confirmed_at = now
    elif new_status in (POStatus.FULLY_RECEIVED.value, POStatus.CLOSED.value):
        po.completed_at = now
    elif new_status == POStatus.CANCELLED.value:
        po.cancelled_at = now
        po.cancel_reason = reason

    logger.info(f"PO {po.po_number}: {old_status} -> {new_status}")


# =============================================================================
# RECEIPT DERIVATION
# =============================================================================

def derive_item_status(received_qty: int, expected_qty: int) -> str:
    """Status of one PO line from its received quantity alone."""
    if received_qty <= 0:
        return POItemStatus.PENDING.value
    if received_qty < expected_qty:
        return POItemStatus.PARTIALLY_RECEIVED.value
    return POItemStatus.FULLY_RECEIVED.value


def derive_order_status(current_status: str, item_statuses: Iterable[str]) -> str:
    """
    Order status implied by its item statuses.

    Draft, closed and cancelled orders keep their status.
    """
    if current_status in FROZEN_STATUSES:
        return current_status

    statuses = list(item_statuses)
    if statuses and all(s == POItemStatus.FULLY_RECEIVED.value for s in statuses):
        return POStatus.FULLY_RECEIVED.value
    if any(s != POItemStatus.PENDING.value for s in statuses):
        return POStatus.PARTIALLY_RECEIVED.value
    return POStatus.CONFIRMED.value


def refresh_po_status(po) -> str:
    """Re-derive every item status and the order status in place."""
    for item in po.items:
        item.status = derive_item_status(item.received_qty, item.ordered_qty)
    new_status = derive_order_status(po.status, [item.status for item in po.items])
    if new_status != po.status:
        logger.info(f"PO {po.po_number}: status derived {po.status} -> {new_status}")
        if new_status == POStatus.FULLY_RECEIVED.value:
            po.completed_at = datetime.now(timezone.utc)
        elif po.status == POStatus.FULLY_RECEIVED.value:
            po.completed_at = None
        po.status = new_status
    return po.status


def apply_receipt(
    po,
    accepted_by_sku: Mapping[str, int],
    rejected_by_sku: Optional[Mapping[str, int]] = None,
) -> str:
    """Add a GRN's accepted/rejected quantities to the matching PO lines."""
    rejected_by_sku = rejected_by_sku or {}
    for item in po.items:
        item.received_qty = (item.received_qty or 0) + accepted_by_sku.get(item.sku, 0)
        item.rejected_qty = (item.rejected_qty or 0) + rejected_by_sku.get(item.sku, 0)
    return refresh_po_status(po)


def reverse_receipt(
    po,
    accepted_by_sku: Mapping[str, int],
    rejected_by_sku: Optional[Mapping[str, int]] = None,
) -> str:
    """Subtract a GRN's contribution from the PO lines, flooring at zero."""
    rejected_by_sku = rejected_by_sku or {}
    for item in po.items:
        item.received_qty = max(0, (item.received_qty or 0) - accepted_by_sku.get(item.sku, 0))
        item.rejected_qty = max(0, (item.rejected_qty or 0) - rejected_by_sku.get(item.sku, 0))
    return refresh_po_status(po)
