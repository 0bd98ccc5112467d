"""
Inventory ledger arithmetic.

Stock for a product is described by six additive counters. Physical and
available stock are always derived:

    physical  = opening + inward_addition - deduction + auto_addition - auto_deduction
    available = physical - blocked_stock

Movements never overwrite a counter; each kind increments exactly one
counter (``unblock`` is the single decrement, on ``blocked_stock``).
Every mutation goes through ``apply_ledger_delta`` so that callers share one
set of preconditions. This module does no I/O.
"""
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Mapping, Optional

from backoffice.core.exceptions import ValidationError


class MovementKind(str, Enum):
    """Kinds of stock movement the ledger understands."""
    INWARD = "inward"
    OUTWARD_MANUAL = "outward-manual"
    OUTWARD_AUTO = "outward-auto"
    AUTO_INWARD = "auto-inward"
    BLOCK = "block"
    UNBLOCK = "unblock"


# kind -> (counter, sign applied to the counter)
MOVEMENT_COUNTERS = {
    MovementKind.INWARD: ("inward_addition", 1),
    MovementKind.OUTWARD_MANUAL: ("deduction", 1),
    MovementKind.OUTWARD_AUTO: ("auto_deduction", 1),
    MovementKind.AUTO_INWARD: ("auto_addition", 1),
    MovementKind.BLOCK: ("blocked_stock", 1),
    MovementKind.UNBLOCK: ("blocked_stock", -1),
}

FIELD_LABELS = {
    "opening_stock": "Opening Stock",
    "inward_addition": "Inward Stock",
    "deduction": "Deduction",
    "auto_addition": "Auto Addition",
    "auto_deduction": "Auto Deduction",
    "blocked_stock": "Blocked Stock",
}

# kind -> adjustment type recorded on the inventory log
ADJUSTMENT_TYPES = {
    MovementKind.INWARD: "inward",
    MovementKind.OUTWARD_MANUAL: "deduction",
    MovementKind.OUTWARD_AUTO: "auto_deduction",
    MovementKind.AUTO_INWARD: "auto_addition",
    MovementKind.BLOCK: "block",
    MovementKind.UNBLOCK: "unblock",
}

OUTWARD_KINDS = (MovementKind.OUTWARD_MANUAL, MovementKind.OUTWARD_AUTO)


@dataclass(frozen=True)
class InventoryCounters:
    opening_stock: int = 0
    inward_addition: int = 0
    deduction: int = 0
    auto_addition: int = 0
    auto_deduction: int = 0
    blocked_stock: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "InventoryCounters":
        """Build counters from a dict, treating absent or null fields as 0."""
        return cls(**{f.name: int(data.get(f.name) or 0) for f in fields(cls)})

    @classmethod
    def from_product(cls, product: Any) -> "InventoryCounters":
        return cls(**{f.name: int(getattr(product, f.name, 0) or 0) for f in fields(cls)})

    @property
    def physical_stock(self) -> int:
        return (
            self.opening_stock
            + self.inward_addition
            - self.deduction
            + self.auto_addition
            - self.auto_deduction
        )

    @property
    def available_stock(self) -> int:
        return self.physical_stock - self.blocked_stock

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class LedgerDelta:
    """Outcome of one applied movement."""
    kind: MovementKind
    qty: int
    field: str
    before: InventoryCounters
    after: InventoryCounters

    @property
    def adjustment_type(self) -> str:
        return ADJUSTMENT_TYPES[self.kind]

    @property
    def old_value(self) -> int:
        return getattr(self.before, self.field)

    @property
    def new_value(self) -> int:
        return getattr(self.after, self.field)

    @property
    def previous_physical_stock(self) -> int:
        return self.before.physical_stock

    @property
    def new_physical_stock(self) -> int:
        return self.after.physical_stock

    @property
    def previous_available_stock(self) -> int:
        return self.before.available_stock

    @property
    def new_available_stock(self) -> int:
        return self.after.available_stock

    def change_entry(self) -> dict:
        """Audit-log change record for the counter that moved."""
        return {
            "field": self.field,
            "field_label": FIELD_LABELS[self.field],
            "old_value": self.old_value,
            "new_value": self.new_value,
        }

    def stock_snapshot(self) -> dict:
        return {
            "previous_physical_stock": self.previous_physical_stock,
            "new_physical_stock": self.new_physical_stock,
            "previous_available_stock": self.previous_available_stock,
            "new_available_stock": self.new_available_stock,
        }


def validate_quantity(qty: Any, max_qty: Optional[int] = None) -> int:
    """Return ``qty`` if it is a positive integer within ``max_qty``."""
    if isinstance(qty, bool) or not isinstance(qty, int):
        raise ValidationError(
            "Quantity must be a positive integer",
            {"qty": qty}
        )
    if qty <= 0:
        raise ValidationError(
            "Quantity must be a positive integer",
            {"qty": qty}
        )
    if max_qty is not None and qty > max_qty:
        raise ValidationError(
            f"Quantity {qty} exceeds the maximum of {max_qty} units per line",
            {"qty": qty, "max_qty": max_qty}
        )
    return qty


def apply_ledger_delta(
    counters: InventoryCounters,
    kind: MovementKind | str,
    qty: Any,
    max_qty: Optional[int] = None,
) -> LedgerDelta:
    """
    Apply one movement to ``counters`` and return the before/after pair.

    Raises:
        ValidationError: ``qty`` is not a positive integer, exceeds
            ``max_qty``, would drive physical stock below zero (outward)
            or would release more than is blocked (unblock).
    """
    kind = MovementKind(kind)
    qty = validate_quantity(qty, max_qty)

    if kind in OUTWARD_KINDS and qty > counters.physical_stock:
        raise ValidationError(
            f"Cannot deduct {qty} units; only {counters.physical_stock} in physical stock",
            {"qty": qty, "physical_stock": counters.physical_stock}
        )
    if kind == MovementKind.UNBLOCK and qty > counters.blocked_stock:
        raise ValidationError(
            f"Cannot unblock {qty} units; only {counters.blocked_stock} blocked",
            {"qty": qty, "blocked_stock": counters.blocked_stock}
        )
    if kind == MovementKind.BLOCK and qty > counters.available_stock:
        raise ValidationError(
            f"Cannot block {qty} units; only {counters.available_stock} available",
            {"qty": qty, "available_stock": counters.available_stock}
        )

    field, sign = MOVEMENT_COUNTERS[kind]
    after = replace(counters, **{field: getattr(counters, field) + sign * qty})
    return LedgerDelta(kind=kind, qty=qty, field=field, before=counters, after=after)


def replay(opening: InventoryCounters, movements) -> InventoryCounters:
    """Fold a sequence of ``(kind, qty)`` movements over ``opening``."""
    counters = opening
    for kind, qty in movements:
        counters = apply_ledger_delta(counters, kind, qty).after
    return counters
