"""Supplier / customer master with GSTIN and PAN validation."""
from typing import List, Optional, Tuple
import logging
import re
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.database import transaction
from backoffice.models.party import Party, PartyType
from backoffice.models.purchase import PurchaseOrder
from backoffice.schemas.party import PartyCreate, PartyUpdate
from backoffice.services.audit_service import AuditService
from backoffice.services.po_state_machine import SETTLED_STATUSES


logger = logging.getLogger(__name__)


GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$")
PAN_PATTERN = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]{1}$")


def normalise_gstin(gstin: Optional[str]) -> Optional[str]:
    """Upper-case and validate a GSTIN. Blank values become None."""
    if gstin is None or not gstin.strip():
        return None
    gstin = gstin.strip().upper()
    if not GSTIN_PATTERN.match(gstin):
        raise ValidationError("Invalid GSTIN format", {"gstin": gstin})
    return gstin


def normalise_pan(pan: Optional[str]) -> Optional[str]:
    if pan is None or not pan.strip():
        return None
    pan = pan.strip().upper()
    if not PAN_PATTERN.match(pan):
        raise ValidationError("Invalid PAN format", {"pan": pan})
    return pan


class PartyService:
    """Service for party master data."""

    def __init__(self, db: AsyncSession, business_id: str, actor_id: Optional[str] = None):
        self.db = db
        self.business_id = business_id
        self.actor_id = actor_id
        self.audit = AuditService(db, business_id)

    async def get_party(self, party_id: uuid.UUID, for_update: bool = False) -> Party:
        stmt = select(Party).where(Party.id == party_id, Party.business_id == self.business_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        party = result.scalar_one_or_none()
        if party is None:
            raise NotFoundError(f"Party {party_id} not found", {"party_id": str(party_id)})
        return party

    async def get_parties(
        self,
        party_type: Optional[PartyType] = None,
        is_active: Optional[bool] = True,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[Party], int]:
        filters = [Party.business_id == self.business_id]
        if party_type == PartyType.SUPPLIER:
            filters.append(Party.type.in_([PartyType.SUPPLIER.value, PartyType.BOTH.value]))
        elif party_type == PartyType.CUSTOMER:
            filters.append(Party.type.in_([PartyType.CUSTOMER.value, PartyType.BOTH.value]))
        elif party_type == PartyType.BOTH:
            filters.append(Party.type == PartyType.BOTH.value)
        if is_active is not None:
            filters.append(Party.is_active == is_active)
        if search:
            filters.append(Party.name.ilike(f"%{search}%"))

        total = (await self.db.execute(select(func.count(Party.id)).where(*filters))).scalar() or 0
        result = await self.db.execute(
            select(Party).where(*filters).order_by(Party.name).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def _ensure_gstin_available(self, gstin: Optional[str], exclude_id: Optional[uuid.UUID] = None) -> None:
        if gstin is None:
            return
        stmt = select(Party).where(Party.business_id == self.business_id, Party.gstin == gstin)
        if exclude_id is not None:
            stmt = stmt.where(Party.id != exclude_id)
        existing = (await self.db.execute(stmt)).scalars().first()
        if existing is not None:
            raise ConflictError(
                f"GSTIN {gstin} is already used by {existing.name}",
                {"gstin": gstin, "existing_party_id": str(existing.id), "existing_party_name": existing.name}
            )

    async def create_party(self, data: PartyCreate) -> Party:
        name = data.name.strip()
        if not name:
            raise ValidationError("Party name is required")
        gstin = normalise_gstin(data.gstin)
        pan = normalise_pan(data.pan)

        async with transaction(self.db):
            await self._ensure_gstin_available(gstin)
            party = Party(
                business_id=self.business_id,
                name=name,
                type=data.type.value,
                code=data.code,
                contact_person=data.contact_person,
                phone=data.phone,
                email=data.email,
                address=data.address.model_dump() if data.address else None,
                gstin=gstin,
                pan=pan,
                bank_details=data.bank_details.model_dump() if data.bank_details else None,
                default_payment_terms=data.default_payment_terms,
                notes=data.notes,
                is_active=True,
                created_by=self.actor_id,
                updated_by=self.actor_id,
            )
            self.db.add(party)
            await self.db.flush()
            await self.audit.log("CREATE", "PARTY", party.id, self.actor_id,
                                 new_values={"name": party.name, "type": party.type, "gstin": gstin})

        logger.info(f"Created party {party.name} ({party.type})")
        return party

    async def update_party(self, party_id: uuid.UUID, data: PartyUpdate) -> Party:
        update_data = data.model_dump(exclude_unset=True)
        if "name" in update_data:
            if not (update_data["name"] or "").strip():
                raise ValidationError("Party name is required")
            update_data["name"] = update_data["name"].strip()
        if "gstin" in update_data:
            update_data["gstin"] = normalise_gstin(update_data["gstin"])
        if "pan" in update_data:
            update_data["pan"] = normalise_pan(update_data["pan"])
        if update_data.get("type") is not None:
            update_data["type"] = PartyType(update_data["type"]).value

        async with transaction(self.db):
            party = await self.get_party(party_id, for_update=True)
            if "gstin" in update_data:
                await self._ensure_gstin_available(update_data["gstin"], exclude_id=party.id)
            old_values = {key: getattr(party, key) for key in update_data}
            for key, value in update_data.items():
                setattr(party, key, value)
            party.updated_by = self.actor_id
            await self.audit.log("UPDATE", "PARTY", party.id, self.actor_id,
                                 old_values=old_values, new_values=update_data)
        return party

    async def deactivate_party(self, party_id: uuid.UUID) -> Party:
        """
        Soft-delete a party.

        Raises:
            ValidationError: the party is already inactive
            ConflictError: open purchase orders still reference it
        """
        async with transaction(self.db):
            party = await self.get_party(party_id, for_update=True)
            if not party.is_active:
                raise ValidationError(f"Party {party.name} is already inactive")

            result = await self.db.execute(
                select(PurchaseOrder.po_number).where(
                    PurchaseOrder.business_id == self.business_id,
                    PurchaseOrder.supplier_party_id == party.id,
                    PurchaseOrder.status.not_in(SETTLED_STATUSES),
                ).order_by(PurchaseOrder.po_number)
            )
            open_pos = list(result.scalars().all())
            if open_pos:
                raise ConflictError(
                    f"Party {party.name} has {len(open_pos)} open purchase orders",
                    {"open_po_numbers": open_pos}
                )

            party.is_active = False
            party.updated_by = self.actor_id
            await self.audit.log("DELETE", "PARTY", party.id, self.actor_id,
                                 description="Party deactivated")

        logger.info(f"Deactivated party {party.name}")
        return party
