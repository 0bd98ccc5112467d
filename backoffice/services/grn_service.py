"""
Goods Receipt Note service.

A GRN records what arrived against a purchase order. While it is a draft
its accepted and rejected quantities are already counted on the PO lines.
Completing it inwards the accepted stock onto one shelf; cancelling it
gives the quantities back to the PO. Each operation is one transaction.
"""
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.database import transaction
from backoffice.models.purchase import GoodsReceiptNote, GRNItem, GRNStatus
from backoffice.schemas.purchase import GRNCreate, GRNItemCreate, GRNUpdate, InwardItem, InwardLocation
from backoffice.services import grn_state_machine
from backoffice.services import po_state_machine
from backoffice.services.audit_service import AuditService
from backoffice.services.document_sequence_service import DocumentSequenceService
from backoffice.services.inventory_service import InventoryService
from backoffice.services.location import resolve_location
from backoffice.services.product_service import ProductService
from backoffice.services.purchase_order_service import PurchaseOrderService
from backoffice.services.warehouse_service import WarehouseService


logger = logging.getLogger(__name__)


class GRNService:
    """Service for GRN creation, editing, inward and cancellation."""

    def __init__(self, db: AsyncSession, business_id: str, actor_id: Optional[str] = None):
        self.db = db
        self.business_id = business_id
        self.actor_id = actor_id
        self.audit = AuditService(db, business_id)
        self.products = ProductService(db, business_id)
        self.purchase_orders = PurchaseOrderService(db, business_id, actor_id)
        self.inventory = InventoryService(db, business_id)

    # ==================== QUERIES ====================

    async def get_grn(self, grn_id: uuid.UUID, for_update: bool = False) -> GoodsReceiptNote:
        stmt = select(GoodsReceiptNote).where(
            GoodsReceiptNote.id == grn_id,
            GoodsReceiptNote.business_id == self.business_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        grn = result.scalar_one_or_none()
        if grn is None:
            raise NotFoundError(f"GRN {grn_id} not found", {"grn_id": str(grn_id)})
        return grn

    async def get_grns(
        self,
        purchase_order_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Tuple[List[GoodsReceiptNote], int]:
        filters = [GoodsReceiptNote.business_id == self.business_id]
        if purchase_order_id:
            filters.append(GoodsReceiptNote.purchase_order_id == purchase_order_id)
        if status:
            filters.append(GoodsReceiptNote.status == status)

        total = (await self.db.execute(select(func.count(GoodsReceiptNote.id)).where(*filters))).scalar() or 0
        result = await self.db.execute(
            select(GoodsReceiptNote)
            .where(*filters)
            .order_by(GoodsReceiptNote.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # ==================== ITEMS ====================

    async def _build_items(self, po, items: List[GRNItemCreate]) -> List[GRNItem]:
        """Validate a full item list and return new GRN lines with derived fields."""
        if not items:
            raise ValidationError("At least one item is required")
        skus = [item.sku for item in items]
        grn_state_machine.ensure_unique_skus(skus)
        products = await self.products.ensure_skus_exist(skus)

        not_on_po = sorted(sku for sku in skus if po.item_by_sku(sku) is None)
        if not_on_po:
            raise ValidationError(
                f"SKUs not on {po.po_number}: {', '.join(not_on_po)}",
                {"skus_not_on_po": not_on_po}
            )

        built = []
        for line_number, item in enumerate(items, start=1):
            if item.unit_cost < 0:
                raise ValidationError(f"Unit cost for {item.sku} cannot be negative", {"sku": item.sku})
            line = GRNItem(
                line_number=line_number,
                sku=item.sku,
                product_name=products[item.sku].name,
                expected_qty=item.expected_qty,
                received_qty=item.received_qty,
                rejected_qty=item.rejected_qty,
                rejection_reason=item.rejection_reason,
                unit_cost=item.unit_cost,
            )
            grn_state_machine.derive_item_fields(line)
            built.append(line)
        return built

    # ==================== OPERATIONS ====================

    async def create_grn(self, data: GRNCreate) -> GoodsReceiptNote:
        """Create a draft GRN and count its quantities on the PO."""
        async with transaction(self.db):
            po = await self.purchase_orders.get_po(data.purchase_order_id, for_update=True)
            if po.status not in po_state_machine.RECEIVABLE_STATUSES:
                raise ValidationError(
                    f"Cannot receive goods against {po.po_number} in status {po.status}",
                    {"po_status": po.status}
                )

            items = await self._build_items(po, data.items)

            warehouse_id = data.warehouse_id or po.warehouse_id
            warehouse_name = po.warehouse_name
            if data.warehouse_id and data.warehouse_id != po.warehouse_id:
                warehouse = await WarehouseService(self.db, self.business_id).get_warehouse(data.warehouse_id)
                warehouse_name = warehouse.name

            grn_number = await DocumentSequenceService(self.db, self.business_id).get_next_number("GRN")
            grn = GoodsReceiptNote(
                business_id=self.business_id,
                grn_number=grn_number,
                purchase_order_id=po.id,
                po_number=po.po_number,
                warehouse_id=warehouse_id,
                warehouse_name=warehouse_name,
                status=GRNStatus.DRAFT.value,
                notes=data.notes,
                items=items,
                created_by=self.actor_id,
                updated_by=self.actor_id,
            )
            grn_state_machine.recompute_totals(grn)
            self.db.add(grn)

            accepted, rejected = grn_state_machine.po_contribution(items)
            po_state_machine.apply_receipt(po, accepted, rejected)
            po.updated_by = self.actor_id

            await self.db.flush()
            await self.audit.log("CREATE", "GRN", grn.id, self.actor_id,
                                 new_values={"grn_number": grn_number, "po_number": po.po_number,
                                             "po_status": po.status})

        logger.info(f"Created {grn.grn_number} against {po.po_number}; PO now {po.status}")
        return grn

    async def update_grn(self, grn_id: uuid.UUID, data: GRNUpdate) -> GoodsReceiptNote:
        """
        Edit a draft GRN. Replacing items swaps the GRN's contribution on
        the PO: the old quantities are reversed and the new ones applied.
        """
        async with transaction(self.db):
            grn = await self.get_grn(grn_id, for_update=True)
            grn_state_machine.ensure_editable(grn)

            if data.items is not None:
                po = await self.purchase_orders.get_po(grn.purchase_order_id, for_update=True)
                new_items = await self._build_items(po, data.items)

                old_accepted, old_rejected = grn_state_machine.po_contribution(grn.items)
                po_state_machine.reverse_receipt(po, old_accepted, old_rejected)

                grn.items = new_items
                grn_state_machine.recompute_totals(grn)

                new_accepted, new_rejected = grn_state_machine.po_contribution(new_items)
                po_state_machine.apply_receipt(po, new_accepted, new_rejected)
                po.updated_by = self.actor_id

            if data.notes is not None:
                grn.notes = data.notes
            if data.inspected_by is not None:
                grn.inspected_by = data.inspected_by

            grn.updated_by = self.actor_id
            await self.db.flush()
            await self.audit.log("UPDATE", "GRN", grn.id, self.actor_id,
                                 new_values={"items_replaced": data.items is not None})
        return grn

    async def complete_grn(
        self,
        grn_id: uuid.UUID,
        location: InwardLocation,
        items: Optional[List[InwardItem]] = None,
    ) -> dict:
        """
        Inward a draft GRN's accepted stock onto one shelf and mark it completed.

        Without ``items`` every line with ``accepted_qty > 0`` is inwarded.
        With ``items`` only those SKUs are, each at most its accepted
        quantity. Ledger updates, placement upserts, inventory logs and the
        GRN status change commit together or not at all. A GRN with nothing
        accepted is refused and stays draft.
        """
        async with transaction(self.db):
            grn = await self.get_grn(grn_id, for_update=True)
            grn_state_machine.validate_transition(grn.status, GRNStatus.COMPLETED.value)

            shelf = await resolve_location(
                self.db, self.business_id,
                location.warehouse_id, location.zone_id, location.rack_id, location.shelf_id,
            )
            lines = self._select_inward_lines(grn, items)

            results = []
            for sku, product_name, qty in lines:
                product = await self.products.require_by_sku(sku, for_update=True)
                inward = await self.inventory.record_inward(
                    product,
                    qty,
                    shelf,
                    source="grn_inward",
                    source_reference=grn.grn_number,
                    actor_id=self.actor_id,
                    grn_id=grn.id,
                )
                results.append({
                    "sku": sku,
                    "product_name": product_name,
                    "quantity_inwarded": qty,
                    "placement_id": inward.placement_id,
                    "previous_physical_stock": inward.previous_physical_stock,
                    "new_physical_stock": inward.new_physical_stock,
                })

            grn.status = GRNStatus.COMPLETED.value
            grn.inwarded_at = datetime.now(timezone.utc)
            grn.inwarded_by = self.actor_id
            grn.inward_location = shelf.as_dict()
            if grn.warehouse_id is None:
                grn.warehouse_id = shelf.warehouse_id
                grn.warehouse_name = shelf.warehouse_name
            grn.updated_by = self.actor_id

            await self.db.flush()
            await self.audit.log(
                "STATUS_CHANGE", "GRN", grn.id, self.actor_id,
                old_values={"status": GRNStatus.DRAFT.value},
                new_values={"status": grn.status, "location": shelf.path, "lines": len(results)},
            )

        logger.info(f"Inwarded {grn.grn_number}: {len(results)} lines to {shelf.path}")
        return {
            "grn_number": grn.grn_number,
            "location": f"{shelf.warehouse_name} > {shelf.path}",
            "items": results,
        }

    @staticmethod
    def _select_inward_lines(grn, items: Optional[List[InwardItem]]) -> List[tuple]:
        by_sku = {line.sku: line for line in grn.items}
        if items is None:
            lines = [
                (line.sku, line.product_name, line.accepted_qty)
                for line in grn.items
                if line.accepted_qty > 0
            ]
            if not lines:
                raise ValidationError(
                    "No accepted quantity to inward",
                    {"grn_number": grn.grn_number}
                )
            return lines

        if not items:
            raise ValidationError("At least one item is required")
        grn_state_machine.ensure_unique_skus([item.sku for item in items])
        unknown = sorted(item.sku for item in items if item.sku not in by_sku)
        if unknown:
            raise ValidationError(
                f"SKUs not on {grn.grn_number}: {', '.join(unknown)}",
                {"skus_not_on_grn": unknown}
            )
        lines = []
        for item in items:
            line = by_sku[item.sku]
            if item.accepted_qty > line.accepted_qty:
                raise ValidationError(
                    f"Cannot inward {item.accepted_qty} of {item.sku}; only {line.accepted_qty} accepted",
                    {"sku": item.sku, "accepted_qty": line.accepted_qty}
                )
            lines.append((line.sku, line.product_name, item.accepted_qty))
        return lines

    async def cancel_grn(self, grn_id: uuid.UUID) -> dict:
        """Cancel a draft GRN and reverse its quantities on the PO."""
        async with transaction(self.db):
            grn = await self.get_grn(grn_id, for_update=True)
            grn_state_machine.validate_transition(grn.status, GRNStatus.CANCELLED.value)

            po = await self.purchase_orders.get_po(grn.purchase_order_id, for_update=True)
            old_po_status = po.status
            accepted, rejected = grn_state_machine.po_contribution(grn.items)
            new_po_status = po_state_machine.reverse_receipt(po, accepted, rejected)
            po.updated_by = self.actor_id

            grn.status = GRNStatus.CANCELLED.value
            grn.cancelled_at = datetime.now(timezone.utc)
            grn.cancelled_by = self.actor_id
            grn.updated_by = self.actor_id

            await self.db.flush()
            await self.audit.log(
                "STATUS_CHANGE", "GRN", grn.id, self.actor_id,
                old_values={"status": GRNStatus.DRAFT.value, "po_status": old_po_status},
                new_values={"status": grn.status, "po_status": new_po_status},
            )

        logger.info(f"Cancelled {grn.grn_number}; {po.po_number} now {new_po_status}")
        return {"po_id": po.id, "new_po_status": new_po_status}

    async def delete_grn(self, grn_id: uuid.UUID) -> None:
        async with transaction(self.db):
            grn = await self.get_grn(grn_id, for_update=True)
            if grn.status != GRNStatus.CANCELLED.value:
                raise ValidationError(
                    f"Only cancelled GRNs can be deleted; {grn.grn_number} is {grn.status}",
                    {"status": grn.status}
                )
            await self.audit.log("DELETE", "GRN", grn.id, self.actor_id,
                                 old_values={"grn_number": grn.grn_number})
            await self.db.delete(grn)
