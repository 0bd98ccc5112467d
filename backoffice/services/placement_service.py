"""
Placement store: how much of each product sits on each shelf.

Methods here flush but never commit. They run inside the transaction of
the inventory, GRN or warehouse operation that calls them.
"""
from typing import List, Optional
import logging
import uuid

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.models.placement import Placement
from backoffice.models.product import Product
from backoffice.services.location import ShelfLocation


logger = logging.getLogger(__name__)


class PlacementService:
    """Service for product-on-shelf quantities."""

    def __init__(self, db: AsyncSession, business_id: str):
        self.db = db
        self.business_id = business_id

    async def get_placement(self, placement_id: uuid.UUID, for_update: bool = False) -> Placement:
        stmt = select(Placement).where(
            Placement.id == placement_id,
            Placement.business_id == self.business_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        placement = result.scalar_one_or_none()
        if placement is None:
            raise NotFoundError(f"Placement {placement_id} not found", {"placement_id": str(placement_id)})
        return placement

    async def find_placement(self, product_id: uuid.UUID, shelf_id: uuid.UUID) -> Optional[Placement]:
        result = await self.db.execute(
            select(Placement)
            .where(
                Placement.business_id == self.business_id,
                Placement.product_id == product_id,
                Placement.shelf_id == shelf_id,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def upsert_placement(
        self,
        product: Product,
        location: ShelfLocation,
        delta_qty: int,
        movement_reason: str,
        reference: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> tuple[Placement, int]:
        """
        Add ``delta_qty`` to the product's placement on ``location``'s shelf.

        An existing placement is incremented and its ``create_upcs`` flag
        flipped. A new one starts at ``delta_qty`` with ``create_upcs`` set.
        Returns the placement and its quantity before the change.

        Raises:
            ValidationError: the change would leave a negative quantity
        """
        placement = await self.find_placement(product.id, location.shelf_id)

        if placement is not None:
            previous = placement.quantity
            if previous + delta_qty < 0:
                raise ValidationError(
                    f"Placement of {product.sku} on {location.shelf_name} holds {previous} units; cannot remove {-delta_qty}",
                    {"placement_id": str(placement.id), "quantity": previous, "delta": delta_qty}
                )
            placement.quantity = previous + delta_qty
            placement.create_upcs = not placement.create_upcs
            placement.last_movement_reason = movement_reason
            placement.last_movement_reference = reference
            placement.updated_by = actor_id
        else:
            previous = 0
            if delta_qty < 0:
                raise ValidationError(
                    f"No placement of {product.sku} on {location.shelf_name} to remove stock from",
                    {"sku": product.sku, "shelf_id": str(location.shelf_id)}
                )
            placement = Placement(
                business_id=self.business_id,
                product_id=product.id,
                product_sku=product.sku,
                quantity=delta_qty,
                warehouse_id=location.warehouse_id,
                warehouse_name=location.warehouse_name,
                zone_id=location.zone_id,
                zone_name=location.zone_name,
                rack_id=location.rack_id,
                rack_name=location.rack_name,
                shelf_id=location.shelf_id,
                shelf_name=location.shelf_name,
                create_upcs=True,
                last_movement_reason=movement_reason,
                last_movement_reference=reference,
                created_by=actor_id,
                updated_by=actor_id,
            )
            self.db.add(placement)

        await self.db.flush()
        logger.debug(f"Placement {product.sku}@{location.shelf_name}: {previous} -> {placement.quantity}")
        return placement, previous

    async def decrement_placement(
        self,
        placement: Placement,
        qty: int,
        movement_reason: str,
        reference: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> int:
        """Remove ``qty`` from a placement. The row stays even at zero."""
        if qty > placement.quantity:
            raise ValidationError(
                f"Placement holds {placement.quantity} units; cannot remove {qty}",
                {"placement_id": str(placement.id), "quantity": placement.quantity, "qty": qty}
            )
        previous = placement.quantity
        placement.quantity = previous - qty
        placement.last_movement_reason = movement_reason
        placement.last_movement_reference = reference
        placement.updated_by = actor_id
        await self.db.flush()
        return previous

    async def list_placements_for_product(self, product_id: uuid.UUID) -> List[Placement]:
        """Placements holding stock of one product, ``location_path`` available on each."""
        result = await self.db.execute(
            select(Placement)
            .where(
                Placement.business_id == self.business_id,
                Placement.product_id == product_id,
                Placement.quantity > 0,
            )
            .order_by(Placement.zone_name, Placement.rack_name, Placement.shelf_name)
        )
        return list(result.scalars().all())

    async def list_placements(
        self,
        warehouse_id: Optional[uuid.UUID] = None,
        shelf_id: Optional[uuid.UUID] = None,
        include_empty: bool = False,
    ) -> List[Placement]:
        stmt = select(Placement).where(Placement.business_id == self.business_id)
        if warehouse_id:
            stmt = stmt.where(Placement.warehouse_id == warehouse_id)
        if shelf_id:
            stmt = stmt.where(Placement.shelf_id == shelf_id)
        if not include_empty:
            stmt = stmt.where(Placement.quantity > 0)
        result = await self.db.execute(stmt.order_by(Placement.product_sku))
        return list(result.scalars().all())

    async def shelf_has_stock(self, shelf_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(func.count(Placement.id)).where(
                Placement.business_id == self.business_id,
                Placement.shelf_id == shelf_id,
                Placement.quantity > 0,
            )
        )
        return (result.scalar() or 0) > 0
