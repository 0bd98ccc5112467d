"""Inventory API: products, stock movements and placements."""
from typing import List
import uuid

from fastapi import APIRouter, Query, status

from backoffice.api.deps import DB, Actor, BusinessId
from backoffice.schemas.inventory import (
    BlockRequest,
    InventoryLogResponse,
    InwardRequest,
    InwardResponse,
    LedgerChangeResponse,
    OutwardRequest,
    OutwardResponse,
    PlacementResponse,
    ProductCreate,
    StockResponse,
)
from backoffice.services.inventory_service import InventoryService
from backoffice.services.product_service import ProductService


router = APIRouter()


def _ledger_change(delta) -> LedgerChangeResponse:
    return LedgerChangeResponse(
        field=delta.field,
        old_value=delta.old_value,
        new_value=delta.new_value,
        **delta.stock_snapshot(),
    )


# ==================== PRODUCTS ====================

@router.post("/products", response_model=StockResponse, status_code=status.HTTP_201_CREATED)
async def create_product(business_id: BusinessId, data: ProductCreate, db: DB, actor_id: Actor):
    """Add a product to the catalog with its opening stock."""
    product = await ProductService(db, business_id).create_product(
        data.sku, data.name, data.opening_stock, actor_id=actor_id
    )
    return await InventoryService(db, business_id).get_stock(product.sku)


@router.get("/products/{sku}/stock", response_model=StockResponse)
async def get_stock(business_id: BusinessId, sku: str, db: DB, actor_id: Actor):
    return await InventoryService(db, business_id).get_stock(sku)


@router.get("/products/{sku}/logs", response_model=List[InventoryLogResponse])
async def list_inventory_logs(
    business_id: BusinessId,
    sku: str,
    db: DB,
    actor_id: Actor,
    limit: int = Query(100, ge=1, le=500),
):
    logs = await InventoryService(db, business_id).list_inventory_logs(sku, limit=limit)
    return [InventoryLogResponse.model_validate(log) for log in logs]


@router.get("/products/{sku}/placements", response_model=List[PlacementResponse])
async def list_product_placements(business_id: BusinessId, sku: str, db: DB, actor_id: Actor):
    """Shelves currently holding this product."""
    service = InventoryService(db, business_id)
    product = await service.products.require_by_sku(sku)
    placements = await service.placements.list_placements_for_product(product.id)
    return [PlacementResponse.model_validate(p) for p in placements]


# ==================== MOVEMENTS ====================

@router.post("/inventory/inward", response_model=InwardResponse)
async def inward_stock(business_id: BusinessId, data: InwardRequest, db: DB, actor_id: Actor):
    result = await InventoryService(db, business_id).apply_inward(
        data.sku,
        data.qty,
        data.warehouse_id,
        data.zone_id,
        data.rack_id,
        data.shelf_id,
        source_reference=data.source_reference,
        actor_id=actor_id,
    )
    return InwardResponse.model_validate(result)


@router.post("/inventory/auto-inward", response_model=InwardResponse)
async def auto_inward_stock(business_id: BusinessId, data: InwardRequest, db: DB, actor_id: Actor):
    """System-driven restock (returns and similar) counted as auto addition."""
    result = await InventoryService(db, business_id).apply_auto_inward(
        data.sku,
        data.qty,
        data.warehouse_id,
        data.zone_id,
        data.rack_id,
        data.shelf_id,
        source_reference=data.source_reference,
        actor_id=actor_id,
    )
    return InwardResponse.model_validate(result)


@router.post("/inventory/deduct", response_model=OutwardResponse)
async def deduct_stock(business_id: BusinessId, data: OutwardRequest, db: DB, actor_id: Actor):
    result = await InventoryService(db, business_id).apply_outward(
        data.sku,
        data.qty,
        data.placement_id,
        actor_id=actor_id,
        reason=data.reason,
        automatic=data.automatic,
        source_reference=data.source_reference,
    )
    return OutwardResponse.model_validate(result)


@router.post("/inventory/block", response_model=LedgerChangeResponse)
async def block_stock(business_id: BusinessId, data: BlockRequest, db: DB, actor_id: Actor):
    delta = await InventoryService(db, business_id).block_stock(
        data.sku, data.qty, actor_id=actor_id, reason=data.reason, source_reference=data.source_reference
    )
    return _ledger_change(delta)


@router.post("/inventory/unblock", response_model=LedgerChangeResponse)
async def unblock_stock(business_id: BusinessId, data: BlockRequest, db: DB, actor_id: Actor):
    delta = await InventoryService(db, business_id).unblock_stock(
        data.sku, data.qty, actor_id=actor_id, reason=data.reason, source_reference=data.source_reference
    )
    return _ledger_change(delta)


@router.get("/placements", response_model=List[PlacementResponse])
async def list_placements(
    business_id: BusinessId,
    db: DB,
    actor_id: Actor,
    warehouse_id: uuid.UUID | None = Query(None),
    shelf_id: uuid.UUID | None = Query(None),
):
    service = InventoryService(db, business_id)
    placements = await service.placements.list_placements(warehouse_id=warehouse_id, shelf_id=shelf_id)
    return [PlacementResponse.model_validate(p) for p in placements]
