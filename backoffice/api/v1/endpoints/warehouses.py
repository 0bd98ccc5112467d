"""Warehouse hierarchy API endpoints."""
from math import ceil
import uuid

from fastapi import APIRouter, Query, status

from backoffice.api.deps import DB, Actor, BusinessId
from backoffice.schemas.base import ListResponse
from backoffice.schemas.warehouse import (
    MoveResponse,
    RackCreate,
    RackMove,
    RackResponse,
    RackUpdate,
    RepositionRequest,
    ShelfCreate,
    ShelfMove,
    ShelfResponse,
    ShelfUpdate,
    WarehouseCreate,
    WarehouseGridCreate,
    WarehouseGridResponse,
    WarehouseResponse,
    WarehouseUpdate,
    ZoneCreate,
    ZoneMove,
    ZoneResponse,
    ZoneUpdate,
)
from backoffice.services.warehouse_service import WarehouseService


router = APIRouter()


def _page(items, total: int, page: int, size: int, schema) -> ListResponse:
    return ListResponse(
        items=[schema.model_validate(item) for item in items],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


# ==================== WAREHOUSES ====================

@router.get("/warehouses", response_model=ListResponse[WarehouseResponse])
async def list_warehouses(
    business_id: BusinessId,
    db: DB,
    actor_id: Actor,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
):
    items, total = await WarehouseService(db, business_id).get_warehouses((page - 1) * size, size)
    return _page(items, total, page, size, WarehouseResponse)


@router.post("/warehouses", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
async def create_warehouse(business_id: BusinessId, data: WarehouseCreate, db: DB, actor_id: Actor):
    warehouse = await WarehouseService(db, business_id, actor_id).create_warehouse(data)
    return WarehouseResponse.model_validate(warehouse)


@router.post("/warehouses/instant", response_model=WarehouseGridResponse, status_code=status.HTTP_201_CREATED)
async def create_instant_warehouse(business_id: BusinessId, data: WarehouseGridCreate, db: DB, actor_id: Actor):
    """Create a warehouse with a full zone x rack x shelf grid."""
    result = await WarehouseService(db, business_id, actor_id).create_warehouse_grid(data)
    return WarehouseGridResponse.model_validate(result)


@router.get("/warehouses/{warehouse_id}", response_model=WarehouseResponse)
async def get_warehouse(business_id: BusinessId, warehouse_id: uuid.UUID, db: DB, actor_id: Actor):
    return WarehouseResponse.model_validate(await WarehouseService(db, business_id).get_warehouse(warehouse_id))


@router.patch("/warehouses/{warehouse_id}", response_model=WarehouseResponse)
async def update_warehouse(
    business_id: BusinessId, warehouse_id: uuid.UUID, data: WarehouseUpdate, db: DB, actor_id: Actor
):
    warehouse = await WarehouseService(db, business_id, actor_id).update_warehouse(warehouse_id, data)
    return WarehouseResponse.model_validate(warehouse)


@router.delete("/warehouses/{warehouse_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_warehouse(business_id: BusinessId, warehouse_id: uuid.UUID, db: DB, actor_id: Actor):
    await WarehouseService(db, business_id, actor_id).delete_warehouse(warehouse_id)


# ==================== ZONES ====================

@router.get("/warehouses/{warehouse_id}/zones", response_model=ListResponse[ZoneResponse])
async def list_zones(
    business_id: BusinessId,
    warehouse_id: uuid.UUID,
    db: DB,
    actor_id: Actor,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
):
    items, total = await WarehouseService(db, business_id).get_zones(warehouse_id, (page - 1) * size, size)
    return _page(items, total, page, size, ZoneResponse)


@router.post("/zones", response_model=ZoneResponse, status_code=status.HTTP_201_CREATED)
async def create_zone(business_id: BusinessId, data: ZoneCreate, db: DB, actor_id: Actor):
    zone = await WarehouseService(db, business_id, actor_id).create_zone(data)
    return ZoneResponse.model_validate(zone)


@router.patch("/zones/{zone_id}", response_model=ZoneResponse)
async def update_zone(business_id: BusinessId, zone_id: uuid.UUID, data: ZoneUpdate, db: DB, actor_id: Actor):
    zone = await WarehouseService(db, business_id, actor_id).update_zone(zone_id, data)
    return ZoneResponse.model_validate(zone)


@router.post("/zones/{zone_id}/move", response_model=ZoneResponse)
async def move_zone(business_id: BusinessId, zone_id: uuid.UUID, data: ZoneMove, db: DB, actor_id: Actor):
    zone = await WarehouseService(db, business_id, actor_id).move_zone(zone_id, data.destination_warehouse_id)
    return ZoneResponse.model_validate(zone)


@router.delete("/zones/{zone_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_zone(business_id: BusinessId, zone_id: uuid.UUID, db: DB, actor_id: Actor):
    await WarehouseService(db, business_id, actor_id).delete_zone(zone_id)


# ==================== RACKS ====================

@router.get("/zones/{zone_id}/racks", response_model=ListResponse[RackResponse])
async def list_racks(
    business_id: BusinessId,
    zone_id: uuid.UUID,
    db: DB,
    actor_id: Actor,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
):
    items, total = await WarehouseService(db, business_id).get_racks(zone_id, (page - 1) * size, size)
    return _page(items, total, page, size, RackResponse)


@router.post("/racks", response_model=RackResponse, status_code=status.HTTP_201_CREATED)
async def create_rack(business_id: BusinessId, data: RackCreate, db: DB, actor_id: Actor):
    rack = await WarehouseService(db, business_id, actor_id).create_rack(data)
    return RackResponse.model_validate(rack)


@router.patch("/racks/{rack_id}", response_model=RackResponse)
async def update_rack(business_id: BusinessId, rack_id: uuid.UUID, data: RackUpdate, db: DB, actor_id: Actor):
    rack = await WarehouseService(db, business_id, actor_id).update_rack(rack_id, data)
    return RackResponse.model_validate(rack)


@router.post("/racks/{rack_id}/reposition", status_code=status.HTTP_204_NO_CONTENT)
async def reposition_rack(
    business_id: BusinessId, rack_id: uuid.UUID, data: RepositionRequest, db: DB, actor_id: Actor
):
    await WarehouseService(db, business_id, actor_id).reposition_rack(
        rack_id, data.new_position, old_position=data.old_position
    )


@router.post("/racks/{rack_id}/move", response_model=MoveResponse)
async def move_rack(business_id: BusinessId, rack_id: uuid.UUID, data: RackMove, db: DB, actor_id: Actor):
    new_position = await WarehouseService(db, business_id, actor_id).move_rack(
        rack_id,
        data.destination_zone_id,
        target_position=data.target_position,
        old_position=data.old_position,
    )
    return MoveResponse(id=rack_id, new_position=new_position)


@router.delete("/racks/{rack_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rack(business_id: BusinessId, rack_id: uuid.UUID, db: DB, actor_id: Actor):
    await WarehouseService(db, business_id, actor_id).delete_rack(rack_id)


# ==================== SHELVES ====================

@router.get("/racks/{rack_id}/shelves", response_model=ListResponse[ShelfResponse])
async def list_shelves(
    business_id: BusinessId,
    rack_id: uuid.UUID,
    db: DB,
    actor_id: Actor,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
):
    items, total = await WarehouseService(db, business_id).get_shelves(rack_id, (page - 1) * size, size)
    return _page(items, total, page, size, ShelfResponse)


@router.post("/shelves", response_model=ShelfResponse, status_code=status.HTTP_201_CREATED)
async def create_shelf(business_id: BusinessId, data: ShelfCreate, db: DB, actor_id: Actor):
    shelf = await WarehouseService(db, business_id, actor_id).create_shelf(data)
    return ShelfResponse.model_validate(shelf)


@router.patch("/shelves/{shelf_id}", response_model=ShelfResponse)
async def update_shelf(business_id: BusinessId, shelf_id: uuid.UUID, data: ShelfUpdate, db: DB, actor_id: Actor):
    shelf = await WarehouseService(db, business_id, actor_id).update_shelf(shelf_id, data)
    return ShelfResponse.model_validate(shelf)


@router.post("/shelves/{shelf_id}/reposition", status_code=status.HTTP_204_NO_CONTENT)
async def reposition_shelf(
    business_id: BusinessId, shelf_id: uuid.UUID, data: RepositionRequest, db: DB, actor_id: Actor
):
    await WarehouseService(db, business_id, actor_id).reposition_shelf(
        shelf_id, data.new_position, old_position=data.old_position
    )


@router.post("/shelves/{shelf_id}/move", response_model=MoveResponse)
async def move_shelf(business_id: BusinessId, shelf_id: uuid.UUID, data: ShelfMove, db: DB, actor_id: Actor):
    new_position = await WarehouseService(db, business_id, actor_id).move_shelf(
        shelf_id,
        data.destination_rack_id,
        target_position=data.target_position,
        old_position=data.old_position,
    )
    return MoveResponse(id=shelf_id, new_position=new_position)


@router.delete("/shelves/{shelf_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shelf(business_id: BusinessId, shelf_id: uuid.UUID, db: DB, actor_id: Actor):
    await WarehouseService(db, business_id, actor_id).delete_shelf(shelf_id)
