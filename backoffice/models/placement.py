import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base
from backoffice.db_types import UUIDType


class Placement(Base):
    """
    Quantity of one product stored on one shelf.

    There is at most one row per (business, product, shelf). Rows are kept
    when their quantity reaches zero.
    """
    __tablename__ = "placements"
    __table_args__ = (
        UniqueConstraint("business_id", "product_id", "shelf_id", name="uq_placement_product_shelf"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    product_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("products.id"), nullable=False, index=True
    )
    product_sku: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Location (denormalized)
    warehouse_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    warehouse_name: Mapped[str] = mapped_column(String(200), nullable=False)
    zone_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    zone_name: Mapped[str] = mapped_column(String(200), nullable=False)
    rack_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    rack_name: Mapped[str] = mapped_column(String(200), nullable=False)
    shelf_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("warehouse_shelves.id"), nullable=False, index=True
    )
    shelf_name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Flipped on every repeat inward; read by barcode tooling
    create_upcs: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_movement_reason: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    last_movement_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    @property
    def location_path(self) -> str:
        return f"{self.zone_name} > {self.rack_name} > {self.shelf_name}"

    def __repr__(self) -> str:
        return f"<Placement(sku='{self.product_sku}', shelf='{self.shelf_name}', qty={self.quantity})>"
