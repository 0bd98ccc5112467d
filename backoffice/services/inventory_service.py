"""
Inventory service: applies ledger movements to products and placements.

Every counter change goes through ``apply_ledger_delta`` and leaves one
``InventoryLog`` row in the same transaction. Public operations commit;
the ``record_*`` helpers only flush so that GRN completion can run many of
them as a single unit.
"""
from dataclasses import dataclass
from typing import List, Optional
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import settings
from backoffice.core.exceptions import ValidationError
from backoffice.database import transaction
from backoffice.models.inventory_log import InventoryLog
from backoffice.models.placement import Placement
from backoffice.models.product import Product
from backoffice.services.inventory_ledger import (
    InventoryCounters,
    LedgerDelta,
    MovementKind,
    apply_ledger_delta,
)
from backoffice.services.location import ShelfLocation, resolve_location
from backoffice.services.placement_service import PlacementService
from backoffice.services.product_service import ProductService


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InwardResult:
    sku: str
    quantity: int
    placement_id: uuid.UUID
    previous_physical_stock: int
    new_physical_stock: int
    previous_placement_quantity: int
    new_placement_quantity: int


@dataclass(frozen=True)
class OutwardResult:
    sku: str
    quantity: int
    placement_id: uuid.UUID
    previous_physical_stock: int
    new_physical_stock: int
    remaining_placement_quantity: int


def _placement_snapshot(placement: Placement) -> dict:
    return {
        "placement_id": str(placement.id),
        "warehouse_id": str(placement.warehouse_id),
        "warehouse_name": placement.warehouse_name,
        "zone_id": str(placement.zone_id),
        "zone_name": placement.zone_name,
        "rack_id": str(placement.rack_id),
        "rack_name": placement.rack_name,
        "shelf_id": str(placement.shelf_id),
        "shelf_name": placement.shelf_name,
    }


class InventoryService:
    """Service for stock movements on products and their placements."""

    def __init__(self, db: AsyncSession, business_id: str):
        self.db = db
        self.business_id = business_id
        self.products = ProductService(db, business_id)
        self.placements = PlacementService(db, business_id)

    # ==================== LEDGER ====================

    async def record_movement(
        self,
        product: Product,
        kind: MovementKind,
        qty: int,
        source: str,
        source_reference: Optional[str] = None,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
        grn_id: Optional[uuid.UUID] = None,
        placement: Optional[Placement] = None,
    ) -> LedgerDelta:
        """Apply one movement to ``product`` and log it. Flushes, does not commit."""
        delta = apply_ledger_delta(
            InventoryCounters.from_product(product),
            kind,
            qty,
            max_qty=settings.INWARD_MAX_UNITS_PER_LINE,
        )
        setattr(product, delta.field, delta.new_value)
        product.updated_by = actor_id

        self.db.add(InventoryLog(
            business_id=self.business_id,
            product_id=product.id,
            product_sku=product.sku,
            action="inventory_adjusted",
            changes=[delta.change_entry()],
            adjustment_type=delta.adjustment_type,
            adjustment_amount=delta.qty,
            reason=reason,
            source=source,
            source_reference=source_reference,
            grn_id=grn_id,
            placement=_placement_snapshot(placement) if placement is not None else None,
            stock_snapshot=delta.stock_snapshot(),
            performed_by=actor_id,
        ))
        await self.db.flush()

        logger.info(
            f"{product.sku}: {delta.kind.value} {delta.qty} "
            f"(physical {delta.previous_physical_stock} -> {delta.new_physical_stock}) "
            f"ref={source_reference}"
        )
        return delta

    async def record_inward(
        self,
        product: Product,
        qty: int,
        location: ShelfLocation,
        source: str,
        source_reference: Optional[str] = None,
        actor_id: Optional[str] = None,
        grn_id: Optional[uuid.UUID] = None,
        movement_reason: str = "inward_addition",
    ) -> InwardResult:
        """Ledger inward plus placement upsert on ``location``. Flushes, does not commit."""
        # Validate the quantity before the placement is touched
        delta_preview = apply_ledger_delta(
            InventoryCounters.from_product(product),
            MovementKind.INWARD,
            qty,
            max_qty=settings.INWARD_MAX_UNITS_PER_LINE,
        )
        placement, previous_quantity = await self.placements.upsert_placement(
            product,
            location,
            delta_preview.qty,
            movement_reason=movement_reason,
            reference=source_reference,
            actor_id=actor_id,
        )
        delta = await self.record_movement(
            product,
            MovementKind.INWARD,
            qty,
            source=source,
            source_reference=source_reference,
            actor_id=actor_id,
            grn_id=grn_id,
            placement=placement,
        )
        return InwardResult(
            sku=product.sku,
            quantity=qty,
            placement_id=placement.id,
            previous_physical_stock=delta.previous_physical_stock,
            new_physical_stock=delta.new_physical_stock,
            previous_placement_quantity=previous_quantity,
            new_placement_quantity=placement.quantity,
        )

    # ==================== OPERATIONS ====================

    async def apply_inward(
        self,
        sku: str,
        qty: int,
        warehouse_id: uuid.UUID,
        zone_id: uuid.UUID,
        rack_id: uuid.UUID,
        shelf_id: uuid.UUID,
        source_reference: Optional[str] = None,
        actor_id: Optional[str] = None,
        source: str = "manual_inward",
    ) -> InwardResult:
        """Receive ``qty`` units of ``sku`` onto a shelf."""
        async with transaction(self.db):
            location = await resolve_location(
                self.db, self.business_id, warehouse_id, zone_id, rack_id, shelf_id
            )
            product = await self.products.require_by_sku(sku, for_update=True)
            return await self.record_inward(
                product,
                qty,
                location,
                source=source,
                source_reference=source_reference,
                actor_id=actor_id,
            )

    async def apply_outward(
        self,
        sku: str,
        qty: int,
        placement_id: uuid.UUID,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
        automatic: bool = False,
        source_reference: Optional[str] = None,
    ) -> OutwardResult:
        """
        Deduct ``qty`` units of ``sku`` from one placement.

        Manual deductions land on ``deduction``; automatic ones (order
        fulfilment) on ``auto_deduction``.
        """
        kind = MovementKind.OUTWARD_AUTO if automatic else MovementKind.OUTWARD_MANUAL
        async with transaction(self.db):
            product = await self.products.require_by_sku(sku, for_update=True)
            placement = await self.placements.get_placement(placement_id, for_update=True)
            if placement.product_id != product.id:
                raise ValidationError(
                    f"Placement {placement_id} does not hold {sku}",
                    {"placement_id": str(placement_id), "sku": sku}
                )
            delta = await self.record_movement(
                product,
                kind,
                qty,
                source="order_fulfilment" if automatic else "manual_deduction",
                source_reference=source_reference,
                actor_id=actor_id,
                reason=reason,
                placement=placement,
            )
            await self.placements.decrement_placement(
                placement,
                qty,
                movement_reason=kind.value,
                reference=source_reference,
                actor_id=actor_id,
            )
            return OutwardResult(
                sku=product.sku,
                quantity=qty,
                placement_id=placement.id,
                previous_physical_stock=delta.previous_physical_stock,
                new_physical_stock=delta.new_physical_stock,
                remaining_placement_quantity=placement.quantity,
            )

    async def apply_auto_inward(
        self,
        sku: str,
        qty: int,
        warehouse_id: uuid.UUID,
        zone_id: uuid.UUID,
        rack_id: uuid.UUID,
        shelf_id: uuid.UUID,
        source_reference: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> InwardResult:
        """System-driven restock (e.g. a returned order) onto a shelf."""
        async with transaction(self.db):
            location = await resolve_location(
                self.db, self.business_id, warehouse_id, zone_id, rack_id, shelf_id
            )
            product = await self.products.require_by_sku(sku, for_update=True)
            apply_ledger_delta(
                InventoryCounters.from_product(product),
                MovementKind.AUTO_INWARD,
                qty,
                max_qty=settings.INWARD_MAX_UNITS_PER_LINE,
            )
            placement, previous_quantity = await self.placements.upsert_placement(
                product, location, qty,
                movement_reason="auto_addition",
                reference=source_reference,
                actor_id=actor_id,
            )
            delta = await self.record_movement(
                product,
                MovementKind.AUTO_INWARD,
                qty,
                source="auto_inward",
                source_reference=source_reference,
                actor_id=actor_id,
                placement=placement,
            )
            return InwardResult(
                sku=product.sku,
                quantity=qty,
                placement_id=placement.id,
                previous_physical_stock=delta.previous_physical_stock,
                new_physical_stock=delta.new_physical_stock,
                previous_placement_quantity=previous_quantity,
                new_placement_quantity=placement.quantity,
            )

    async def block_stock(
        self,
        sku: str,
        qty: int,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
        source_reference: Optional[str] = None,
    ) -> LedgerDelta:
        """Reserve available stock, e.g. for an unshipped order."""
        async with transaction(self.db):
            product = await self.products.require_by_sku(sku, for_update=True)
            return await self.record_movement(
                product, MovementKind.BLOCK, qty,
                source="block",
                source_reference=source_reference,
                actor_id=actor_id,
                reason=reason,
            )

    async def unblock_stock(
        self,
        sku: str,
        qty: int,
        actor_id: Optional[str] = None,
        reason: Optional[str] = None,
        source_reference: Optional[str] = None,
    ) -> LedgerDelta:
        async with transaction(self.db):
            product = await self.products.require_by_sku(sku, for_update=True)
            return await self.record_movement(
                product, MovementKind.UNBLOCK, qty,
                source="unblock",
                source_reference=source_reference,
                actor_id=actor_id,
                reason=reason,
            )

    # ==================== QUERIES ====================

    async def get_stock(self, sku: str) -> dict:
        product = await self.products.require_by_sku(sku)
        counters = InventoryCounters.from_product(product)
        return {
            "sku": product.sku,
            "name": product.name,
            **counters.as_dict(),
            "physical_stock": counters.physical_stock,
            "available_stock": counters.available_stock,
        }

    async def list_inventory_logs(self, sku: str, limit: int = 100) -> List[InventoryLog]:
        """Movement history for one SKU, newest first."""
        result = await self.db.execute(
            select(InventoryLog)
            .where(
                InventoryLog.business_id == self.business_id,
                InventoryLog.product_sku == sku,
            )
            .order_by(InventoryLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
