"""Purchase order and GRN API endpoints."""
from math import ceil
from typing import Optional
import uuid

from fastapi import APIRouter, Query, status

from backoffice.api.deps import DB, Actor, BusinessId
from backoffice.schemas.base import ListResponse
from backoffice.schemas.purchase import (
    GRNCancelResponse,
    GRNCreate,
    GRNInwardRequest,
    GRNInwardResponse,
    GRNResponse,
    GRNUpdate,
    PurchaseOrderCreate,
    PurchaseOrderResponse,
    PurchaseOrderUpdate,
)
from backoffice.services.grn_service import GRNService
from backoffice.services.purchase_order_service import PurchaseOrderService


router = APIRouter()


# ==================== PURCHASE ORDERS ====================

@router.get("/purchase-orders", response_model=ListResponse[PurchaseOrderResponse])
async def list_purchase_orders(
    business_id: BusinessId,
    db: DB,
    actor_id: Actor,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    status_filter: Optional[str] = Query(None, alias="status"),
    supplier_party_id: Optional[uuid.UUID] = Query(None),
):
    items, total = await PurchaseOrderService(db, business_id).get_pos(
        status=status_filter, supplier_party_id=supplier_party_id, skip=(page - 1) * size, limit=size
    )
    return ListResponse(
        items=[PurchaseOrderResponse.model_validate(po) for po in items],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


@router.post("/purchase-orders", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(business_id: BusinessId, data: PurchaseOrderCreate, db: DB, actor_id: Actor):
    po = await PurchaseOrderService(db, business_id, actor_id).create_po(data)
    return PurchaseOrderResponse.model_validate(po)


@router.get("/purchase-orders/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(business_id: BusinessId, po_id: uuid.UUID, db: DB, actor_id: Actor):
    return PurchaseOrderResponse.model_validate(await PurchaseOrderService(db, business_id).get_po(po_id))


@router.patch("/purchase-orders/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    business_id: BusinessId, po_id: uuid.UUID, data: PurchaseOrderUpdate, db: DB, actor_id: Actor
):
    po = await PurchaseOrderService(db, business_id, actor_id).update_po(po_id, data)
    return PurchaseOrderResponse.model_validate(po)


@router.delete("/purchase-orders/{po_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_purchase_order(business_id: BusinessId, po_id: uuid.UUID, db: DB, actor_id: Actor):
    await PurchaseOrderService(db, business_id, actor_id).delete_po(po_id)


# ==================== GOODS RECEIPT NOTES ====================

@router.get("/grns", response_model=ListResponse[GRNResponse])
async def list_grns(
    business_id: BusinessId,
    db: DB,
    actor_id: Actor,
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    purchase_order_id: Optional[uuid.UUID] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
):
    items, total = await GRNService(db, business_id).get_grns(
        purchase_order_id=purchase_order_id, status=status_filter, skip=(page - 1) * size, limit=size
    )
    return ListResponse(
        items=[GRNResponse.model_validate(grn) for grn in items],
        total=total,
        page=page,
        size=size,
        pages=ceil(total / size) if total > 0 else 1,
    )


@router.post("/grns", response_model=GRNResponse, status_code=status.HTTP_201_CREATED)
async def create_grn(business_id: BusinessId, data: GRNCreate, db: DB, actor_id: Actor):
    grn = await GRNService(db, business_id, actor_id).create_grn(data)
    return GRNResponse.model_validate(grn)


@router.get("/grns/{grn_id}", response_model=GRNResponse)
async def get_grn(business_id: BusinessId, grn_id: uuid.UUID, db: DB, actor_id: Actor):
    return GRNResponse.model_validate(await GRNService(db, business_id).get_grn(grn_id))


@router.patch("/grns/{grn_id}", response_model=GRNResponse)
async def update_grn(business_id: BusinessId, grn_id: uuid.UUID, data: GRNUpdate, db: DB, actor_id: Actor):
    grn = await GRNService(db, business_id, actor_id).update_grn(grn_id, data)
    return GRNResponse.model_validate(grn)


@router.post("/grns/{grn_id}/inward", response_model=GRNInwardResponse)
async def inward_grn(
    business_id: BusinessId, grn_id: uuid.UUID, data: GRNInwardRequest, db: DB, actor_id: Actor
):
    """Inward the GRN's accepted stock onto one shelf and complete it."""
    result = await GRNService(db, business_id, actor_id).complete_grn(grn_id, data.location, data.items)
    return GRNInwardResponse.model_validate(result)


@router.post("/grns/{grn_id}/cancel", response_model=GRNCancelResponse)
async def cancel_grn(business_id: BusinessId, grn_id: uuid.UUID, db: DB, actor_id: Actor):
    result = await GRNService(db, business_id, actor_id).cancel_grn(grn_id)
    return GRNCancelResponse.model_validate(result)


@router.delete("/grns/{grn_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_grn(business_id: BusinessId, grn_id: uuid.UUID, db: DB, actor_id: Actor):
    await GRNService(db, business_id, actor_id).delete_grn(grn_id)
