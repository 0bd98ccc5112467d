"""
Propagation of denormalized ancestor ids and names.

Zones, racks, shelves and placements each carry copies of their ancestors'
ids and names. Whenever a node is renamed or moved, ``HierarchyPropagator``
rewrites those copies on every descendant in the current transaction.
"""
from typing import Dict, List, Type
import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.placement import Placement
from backoffice.models.warehouse import Warehouse, WarehouseZone, WarehouseRack, WarehouseShelf


logger = logging.getLogger(__name__)


LEVELS = ("warehouse", "zone", "rack", "shelf")

LEVEL_OF: Dict[Type, str] = {
    Warehouse: "warehouse",
    WarehouseZone: "zone",
    WarehouseRack: "rack",
    WarehouseShelf: "shelf",
}

DESCENDANTS: Dict[str, List[Type]] = {
    "warehouse": [WarehouseZone, WarehouseRack, WarehouseShelf, Placement],
    "zone": [WarehouseRack, WarehouseShelf, Placement],
    "rack": [WarehouseShelf, Placement],
    "shelf": [Placement],
}


def ancestry_values(node) -> dict:
    """Columns a descendant of ``node`` copies from it and its ancestors."""
    level = LEVEL_OF[type(node)]
    values = {f"{level}_name": node.name}
    for ancestor in LEVELS[:LEVELS.index(level)]:
        values[f"{ancestor}_id"] = getattr(node, f"{ancestor}_id")
        values[f"{ancestor}_name"] = getattr(node, f"{ancestor}_name")
    return values


class HierarchyPropagator:
    """Rewrites denormalized copies below one hierarchy node."""

    def __init__(self, db: AsyncSession, business_id: str):
        self.db = db
        self.business_id = business_id

    async def propagate(self, node) -> int:
        """Push ``node``'s name and ancestry down to all descendants. Returns rows touched."""
        level = LEVEL_OF[type(node)]
        values = ancestry_values(node)
        await self.db.flush()
        touched = 0
        for model in DESCENDANTS[level]:
            key = getattr(model, f"{level}_id")
            result = await self.db.execute(
                update(model)
                .where(model.business_id == self.business_id, key == node.id)
                .values(**values)
                .execution_options(synchronize_session="fetch")
            )
            touched += result.rowcount or 0
        logger.debug(f"Propagated {level} {node.id} to {touched} descendant rows")
        return touched
