"""Audit service for recording document and hierarchy changes."""
from typing import Optional, List, Any
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.audit_log import AuditLog


class AuditService:
    """Service for audit log operations."""

    def __init__(self, db: AsyncSession, business_id: str):
        self.db = db
        self.business_id = business_id

    async def log(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[uuid.UUID] = None,
        user_id: Optional[str] = None,
        old_values: Optional[dict[str, Any]] = None,
        new_values: Optional[dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> AuditLog:
        """
        Add an audit entry to the current transaction.

        The entry is flushed, not committed; it persists only if the
        surrounding operation commits.
        """
        audit_log = AuditLog(
            business_id=self.business_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            old_values=old_values,
            new_values=new_values,
            description=description,
        )
        self.db.add(audit_log)
        await self.db.flush()
        return audit_log

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: uuid.UUID,
        limit: int = 50,
    ) -> List[AuditLog]:
        """Audit history of one entity, newest first."""
        stmt = (
            select(AuditLog)
            .where(
                AuditLog.business_id == self.business_id,
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == entity_id,
            )
            .order_by(AuditLog.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
