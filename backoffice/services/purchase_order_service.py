"""Service for purchase orders raised on supplier parties."""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple
import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import settings
from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.database import transaction
from backoffice.models.purchase import (
    GoodsReceiptNote,
    POItemStatus,
    POStatus,
    PurchaseOrder,
    PurchaseOrderItem,
)
from backoffice.schemas.purchase import POItemCreate, PurchaseOrderCreate, PurchaseOrderUpdate
from backoffice.services.audit_service import AuditService
from backoffice.services.document_sequence_service import DocumentSequenceService
from backoffice.services.grn_state_machine import ensure_unique_skus
from backoffice.services.party_service import PartyService
from backoffice.services.po_state_machine import EDITABLE_STATUSES, transition_po
from backoffice.services.product_service import ProductService
from backoffice.services.warehouse_service import WarehouseService


logger = logging.getLogger(__name__)

DELETABLE_STATUSES = (POStatus.DRAFT.value, POStatus.CANCELLED.value)


class PurchaseOrderService:
    """Service for purchase order lifecycle."""

    def __init__(self, db: AsyncSession, business_id: str, actor_id: Optional[str] = None):
        self.db = db
        self.business_id = business_id
        self.actor_id = actor_id
        self.audit = AuditService(db, business_id)
        self.products = ProductService(db, business_id)

    async def get_po(self, po_id: uuid.UUID, for_update: bool = False) -> PurchaseOrder:
        stmt = select(PurchaseOrder).where(
            PurchaseOrder.id == po_id,
            PurchaseOrder.business_id == self.business_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        po = result.scalar_one_or_none()
        if po is None:
            raise NotFoundError(f"Purchase order {po_id} not found", {"po_id": str(po_id)})
        return po

    async def get_pos(
        self,
        status: Optional[str] = None,
        supplier_party_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[PurchaseOrder], int]:
        filters = [PurchaseOrder.business_id == self.business_id]
        if status:
            filters.append(PurchaseOrder.status == status)
        if supplier_party_id:
            filters.append(PurchaseOrder.supplier_party_id == supplier_party_id)

        total = (await self.db.execute(select(func.count(PurchaseOrder.id)).where(*filters))).scalar() or 0
        result = await self.db.execute(
            select(PurchaseOrder)
            .where(*filters)
            .order_by(PurchaseOrder.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def _build_items(self, items: List[POItemCreate]) -> Tuple[List[PurchaseOrderItem], Decimal]:
        if not items:
            raise ValidationError("At least one item is required")
        ensure_unique_skus([item.sku for item in items])
        for item in items:
            if item.ordered_qty <= 0:
                raise ValidationError(
                    f"Ordered quantity for {item.sku} must be greater than 0",
                    {"sku": item.sku, "ordered_qty": item.ordered_qty}
                )
            if item.unit_cost < 0:
                raise ValidationError(
                    f"Unit cost for {item.sku} cannot be negative",
                    {"sku": item.sku, "unit_cost": str(item.unit_cost)}
                )
        products = await self.products.ensure_skus_exist([item.sku for item in items])

        built = []
        total = Decimal("0")
        for line_number, item in enumerate(items, start=1):
            built.append(PurchaseOrderItem(
                line_number=line_number,
                sku=item.sku,
                product_name=products[item.sku].name,
                ordered_qty=item.ordered_qty,
                unit_cost=item.unit_cost,
                received_qty=0,
                rejected_qty=0,
                status=POItemStatus.PENDING.value,
            ))
            total += item.unit_cost * item.ordered_qty
        return built, total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    async def create_po(self, data: PurchaseOrderCreate) -> PurchaseOrder:
        async with transaction(self.db):
            supplier = await PartyService(self.db, self.business_id).get_party(data.supplier_party_id)
            if not supplier.is_active:
                raise ValidationError(f"Supplier {supplier.name} is inactive")
            if not supplier.is_supplier:
                raise ValidationError(
                    f"Party {supplier.name} is not a supplier",
                    {"party_type": supplier.type}
                )

            warehouse = None
            if data.warehouse_id:
                warehouse = await WarehouseService(self.db, self.business_id).get_warehouse(data.warehouse_id)

            items, total_amount = await self._build_items(data.items)
            po_number = await DocumentSequenceService(self.db, self.business_id).get_next_number("PO")

            po = PurchaseOrder(
                business_id=self.business_id,
                po_number=po_number,
                supplier_party_id=supplier.id,
                supplier_name=supplier.name,
                warehouse_id=warehouse.id if warehouse else None,
                warehouse_name=warehouse.name if warehouse else None,
                status=POStatus.DRAFT.value,
                currency=(data.currency or settings.DEFAULT_CURRENCY).upper(),
                total_amount=total_amount,
                expected_date=data.expected_date,
                notes=data.notes,
                items=items,
                created_by=self.actor_id,
                updated_by=self.actor_id,
            )
            self.db.add(po)
            await self.db.flush()
            await self.audit.log("CREATE", "PURCHASE_ORDER", po.id, self.actor_id,
                                 new_values={"po_number": po_number, "total_amount": str(total_amount)})

        logger.info(f"Created {po.po_number} for {po.supplier_name}")
        return po

    async def update_po(self, po_id: uuid.UUID, data: PurchaseOrderUpdate) -> PurchaseOrder:
        """
        Update a PO. Items may only be replaced while draft or confirmed;
        status changes go through the transition table.
        """
        async with transaction(self.db):
            po = await self.get_po(po_id, for_update=True)
            old_status = po.status

            if data.items is not None:
                if po.status not in EDITABLE_STATUSES:
                    raise ValidationError(
                        f"Items of {po.po_number} cannot be changed in status {po.status}",
                        {"status": po.status}
                    )
                items, total_amount = await self._build_items(data.items)
                po.items = items
                po.total_amount = total_amount

            if data.expected_date is not None:
                po.expected_date = data.expected_date
            if data.notes is not None:
                po.notes = data.notes

            if data.status is not None:
                transition_po(po, data.status, reason=data.cancel_reason)

            po.updated_by = self.actor_id
            await self.db.flush()
            await self.audit.log(
                "UPDATE", "PURCHASE_ORDER", po.id, self.actor_id,
                old_values={"status": old_status},
                new_values={"status": po.status, "items_replaced": data.items is not None},
            )
        return po

    async def delete_po(self, po_id: uuid.UUID) -> None:
        async with transaction(self.db):
            po = await self.get_po(po_id, for_update=True)
            if po.status not in DELETABLE_STATUSES:
                raise ValidationError(
                    f"Only draft or cancelled purchase orders can be deleted; {po.po_number} is {po.status}",
                    {"status": po.status}
                )
            result = await self.db.execute(
                select(GoodsReceiptNote.grn_number).where(
                    GoodsReceiptNote.business_id == self.business_id,
                    GoodsReceiptNote.purchase_order_id == po.id,
                )
            )
            grn_numbers = list(result.scalars().all())
            if grn_numbers:
                raise ConflictError(
                    f"{po.po_number} has goods receipt notes and cannot be deleted",
                    {"grn_numbers": grn_numbers}
                )
            await self.audit.log("DELETE", "PURCHASE_ORDER", po.id, self.actor_id,
                                 old_values={"po_number": po.po_number})
            await self.db.delete(po)

        logger.info(f"Deleted {po.po_number}")
