import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base
from backoffice.db_types import JSONType, UUIDType


class PartyType(str, Enum):
    """Trading party role."""
    SUPPLIER = "supplier"
    CUSTOMER = "customer"
    BOTH = "both"


class Party(Base):
    """
    Supplier / customer master.

    GSTIN is unique per business across active and inactive parties.
    Deactivation is a soft delete through ``is_active``.
    """
    __tablename__ = "parties"
    __table_args__ = (
        UniqueConstraint("business_id", "gstin", name="uq_party_business_gstin"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PartyType.SUPPLIER.value,
        comment="supplier, customer, both"
    )
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    contact_person: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    gstin: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    pan: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    bank_details: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    default_payment_terms: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

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
    def is_supplier(self) -> bool:
        return self.type in (PartyType.SUPPLIER.value, PartyType.BOTH.value)

    def __repr__(self) -> str:
        return f"<Party(name='{self.name}', type='{self.type}')>"
