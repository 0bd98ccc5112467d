import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base
from backoffice.db_types import UUIDType


class Product(Base):
    """
    Catalog product with its inventory counters.

    The six counters are only ever incremented. Physical and available
    stock are derived from them and never stored.
    """
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("business_id", "sku", name="uq_product_business_sku"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    sku: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)

    # Inventory counters
    opening_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    inward_addition: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deduction: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    auto_addition: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    auto_deduction: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    blocked_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

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
    def physical_stock(self) -> int:
        return (
            (self.opening_stock or 0)
            + (self.inward_addition or 0)
            - (self.deduction or 0)
            + (self.auto_addition or 0)
            - (self.auto_deduction or 0)
        )

    @property
    def available_stock(self) -> int:
        return self.physical_stock - (self.blocked_stock or 0)

    def __repr__(self) -> str:
        return f"<Product(sku='{self.sku}', physical={self.physical_stock})>"
