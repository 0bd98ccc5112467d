import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base
from backoffice.db_types import JSONType, UUIDType


class InventoryLog(Base):
    """
    One row per applied stock movement.

    ``changes`` lists the counter that moved as
    ``{field, field_label, old_value, new_value}`` and ``stock_snapshot``
    carries physical/available stock before and after.
    """
    __tablename__ = "inventory_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("products.id"), nullable=False, index=True
    )
    product_sku: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    action: Mapped[str] = mapped_column(String(50), nullable=False, default="inventory_adjusted")
    changes: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    adjustment_type: Mapped[str] = mapped_column(String(30), nullable=False)
    adjustment_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    source: Mapped[str] = mapped_column(String(50), nullable=False)
    source_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    grn_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

    placement: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    stock_snapshot: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    performed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        return f"<InventoryLog(sku='{self.product_sku}', type='{self.adjustment_type}', amount={self.adjustment_amount})>"
