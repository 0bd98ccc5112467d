import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base
from backoffice.db_types import JSONType, UUIDType


class AuditLog(Base):
    """
    Audit log for document and hierarchy changes.
    Records: party, purchase order, GRN and warehouse structure mutations.
    """
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Who performed the action
    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # Actions: CREATE, UPDATE, DELETE, STATUS_CHANGE, MOVE, REPOSITION, ...
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # Entity types: PARTY, PURCHASE_ORDER, GRN, WAREHOUSE, ZONE, RACK, SHELF
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

    # Change tracking
    old_values: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        return f"<AuditLog(action='{self.action}', entity='{self.entity_type}')>"
