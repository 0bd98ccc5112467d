"""Resolution of a warehouse > zone > rack > shelf chain into one location."""
from dataclasses import dataclass, asdict
from typing import Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import NotFoundError, ValidationError
from backoffice.models.warehouse import Warehouse, WarehouseZone, WarehouseRack, WarehouseShelf


@dataclass(frozen=True)
class ShelfLocation:
    warehouse_id: uuid.UUID
    warehouse_name: str
    zone_id: uuid.UUID
    zone_name: str
    rack_id: uuid.UUID
    rack_name: str
    shelf_id: uuid.UUID
    shelf_name: str

    @property
    def path(self) -> str:
        return f"{self.zone_name} > {self.rack_name} > {self.shelf_name}"

    def as_dict(self) -> dict:
        return {key: str(value) if isinstance(value, uuid.UUID) else value for key, value in asdict(self).items()}


async def _get_active(db: AsyncSession, model, business_id: str, entity_id, label: str):
    if entity_id is None:
        raise ValidationError(f"{label} is required for a complete location", {"missing": label})
    result = await db.execute(
        select(model).where(
            model.id == entity_id,
            model.business_id == business_id,
            model.is_deleted == False,  # noqa: E712
        )
    )
    entity = result.scalar_one_or_none()
    if entity is None:
        raise NotFoundError(f"{label} {entity_id} not found", {"id": str(entity_id)})
    return entity


async def resolve_location(
    db: AsyncSession,
    business_id: str,
    warehouse_id: Optional[uuid.UUID],
    zone_id: Optional[uuid.UUID],
    rack_id: Optional[uuid.UUID],
    shelf_id: Optional[uuid.UUID],
) -> ShelfLocation:
    """
    Load every level of the chain and check that each belongs to its parent.

    Raises:
        ValidationError: a level is missing or the chain is inconsistent
        NotFoundError: a level does not exist or is deleted
    """
    warehouse = await _get_active(db, Warehouse, business_id, warehouse_id, "Warehouse")
    zone = await _get_active(db, WarehouseZone, business_id, zone_id, "Zone")
    rack = await _get_active(db, WarehouseRack, business_id, rack_id, "Rack")
    shelf = await _get_active(db, WarehouseShelf, business_id, shelf_id, "Shelf")

    if zone.warehouse_id != warehouse.id or rack.zone_id != zone.id or shelf.rack_id != rack.id:
        raise ValidationError(
            "Location levels do not belong to each other",
            {
                "warehouse_id": str(warehouse.id),
                "zone_id": str(zone.id),
                "rack_id": str(rack.id),
                "shelf_id": str(shelf.id),
            }
        )

    return ShelfLocation(
        warehouse_id=warehouse.id,
        warehouse_name=warehouse.name,
        zone_id=zone.id,
        zone_name=zone.name,
        rack_id=rack.id,
        rack_name=rack.name,
        shelf_id=shelf.id,
        shelf_name=shelf.name,
    )
