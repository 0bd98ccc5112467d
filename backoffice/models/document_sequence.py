import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base
from backoffice.db_types import UUIDType


class DocumentSequence(Base):
    """Per-business running counter for one document type (PO, GRN)."""
    __tablename__ = "document_sequences"
    __table_args__ = (
        UniqueConstraint("business_id", "document_type", name="uq_document_sequence"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    document_type: Mapped[str] = mapped_column(String(10), nullable=False)
    current_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    padding: Mapped[int] = mapped_column(Integer, default=5, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def get_next_number(self) -> str:
        """Increment the counter and return the formatted number, e.g. GRN-00001."""
        self.current_number = (self.current_number or 0) + 1
        return f"{self.document_type}-{str(self.current_number).zfill(self.padding)}"

    def __repr__(self) -> str:
        return f"<DocumentSequence(type='{self.document_type}', current={self.current_number})>"
