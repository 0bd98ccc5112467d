"""Purchase order and goods receipt note models."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.database import Base
from backoffice.db_types import JSONType, UUIDType


class POStatus(str, Enum):
    """Purchase Order status."""
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    PARTIALLY_RECEIVED = "partially_received"
    FULLY_RECEIVED = "fully_received"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class POItemStatus(str, Enum):
    """Receipt status of one PO line."""
    PENDING = "pending"
    PARTIALLY_RECEIVED = "partially_received"
    FULLY_RECEIVED = "fully_received"


class GRNStatus(str, Enum):
    """Goods Receipt Note status."""
    DRAFT = "draft"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PurchaseOrder(Base):
    """Purchase order raised on a supplier party."""
    __tablename__ = "purchase_orders"
    __table_args__ = (
        Index("ix_po_business_number", "business_id", "po_number", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    po_number: Mapped[str] = mapped_column(String(30), nullable=False, comment="PO-00001")

    supplier_party_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("parties.id"), nullable=False, index=True
    )
    supplier_name: Mapped[str] = mapped_column(String(200), nullable=False)

    warehouse_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    warehouse_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(30),
        default=POStatus.DRAFT.value,
        nullable=False,
        index=True,
        comment="draft, confirmed, partially_received, fully_received, closed, cancelled"
    )

    currency: Mapped[str] = mapped_column(String(3), default="INR", nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    expected_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Lifecycle stamps
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    items: Mapped[List["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.line_number",
        lazy="selectin",
    )

    def item_by_sku(self, sku: str) -> Optional["PurchaseOrderItem"]:
        for item in self.items:
            if item.sku == sku:
                return item
        return None

    def __repr__(self) -> str:
        return f"<PurchaseOrder(number='{self.po_number}', status='{self.status}')>"


class PurchaseOrderItem(Base):
    """Line items in a Purchase Order."""
    __tablename__ = "purchase_order_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    product_name: Mapped[str] = mapped_column(String(300), nullable=False)

    ordered_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    received_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rejected_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[str] = mapped_column(
        String(30),
        default=POItemStatus.PENDING.value,
        nullable=False,
        comment="pending, partially_received, fully_received"
    )

    purchase_order: Mapped["PurchaseOrder"] = relationship("PurchaseOrder", back_populates="items")

    def __repr__(self) -> str:
        return f"<PurchaseOrderItem(sku='{self.sku}', received={self.received_qty}/{self.ordered_qty})>"


class GoodsReceiptNote(Base):
    """
    Goods Receipt Note model.
    Records material received against a PO and, once completed,
    the shelf it was inwarded to.
    """
    __tablename__ = "goods_receipt_notes"
    __table_args__ = (
        Index("ix_grn_business_number", "business_id", "grn_number", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    grn_number: Mapped[str] = mapped_column(String(30), nullable=False, comment="GRN-00001")

    purchase_order_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("purchase_orders.id"), nullable=False, index=True
    )
    po_number: Mapped[str] = mapped_column(String(30), nullable=False)

    warehouse_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    warehouse_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=GRNStatus.DRAFT.value,
        nullable=False,
        index=True,
        comment="draft, completed, cancelled"
    )

    # Aggregates, recomputed whenever items change
    total_expected_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_received_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_not_received_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_received_value: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    inspected_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Inward
    inwarded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    inwarded_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    inward_location: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    items: Mapped[List["GRNItem"]] = relationship(
        "GRNItem",
        back_populates="grn",
        cascade="all, delete-orphan",
        order_by="GRNItem.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<GoodsReceiptNote(number='{self.grn_number}', status='{self.status}')>"


class GRNItem(Base):
    """Line item of a GRN. ``accepted_qty`` is what reaches stock."""
    __tablename__ = "grn_items"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    grn_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("goods_receipt_notes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    product_name: Mapped[str] = mapped_column(String(300), nullable=False)

    expected_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    received_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rejected_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    accepted_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    not_received_qty: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)

    grn: Mapped["GoodsReceiptNote"] = relationship("GoodsReceiptNote", back_populates="items")

    def __repr__(self) -> str:
        return f"<GRNItem(sku='{self.sku}', accepted={self.accepted_qty})>"
