"""Pydantic schemas for purchase orders and goods receipt notes."""
from pydantic import Field

from backoffice.schemas.base import BaseCreateSchema, BaseResponseSchema
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
import uuid


# ==================== PURCHASE ORDER SCHEMAS ====================

class POItemCreate(BaseCreateSchema):
    sku: str = Field(..., min_length=1, max_length=100)
    ordered_qty: int
    unit_cost: Decimal = Decimal("0")


class PurchaseOrderCreate(BaseCreateSchema):
    supplier_party_id: uuid.UUID
    warehouse_id: Optional[uuid.UUID] = None
    currency: Optional[str] = Field(None, max_length=3)
    expected_date: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[POItemCreate]


class PurchaseOrderUpdate(BaseCreateSchema):
    status: Optional[str] = None
    cancel_reason: Optional[str] = None
    expected_date: Optional[datetime] = None
    notes: Optional[str] = None
    items: Optional[List[POItemCreate]] = None


class POItemResponse(BaseResponseSchema):
    id: uuid.UUID
    line_number: int
    sku: str
    product_name: str
    ordered_qty: int
    unit_cost: Decimal
    received_qty: int
    rejected_qty: int
    status: str


class PurchaseOrderResponse(BaseResponseSchema):
    id: uuid.UUID
    po_number: str
    supplier_party_id: uuid.UUID
    supplier_name: str
    warehouse_id: Optional[uuid.UUID] = None
    warehouse_name: Optional[str] = None
    status: str
    currency: str
    total_amount: Decimal
    expected_date: Optional[datetime] = None
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    items: List[POItemResponse] = []
    created_at: datetime
    updated_at: datetime


# ==================== GRN SCHEMAS ====================

class GRNItemCreate(BaseCreateSchema):
    sku: str = Field(..., min_length=1, max_length=100)
    expected_qty: int = 0
    received_qty: int = 0
    rejected_qty: int = 0
    rejection_reason: Optional[str] = None
    unit_cost: Decimal = Decimal("0")


class GRNCreate(BaseCreateSchema):
    purchase_order_id: uuid.UUID
    warehouse_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    items: List[GRNItemCreate]


class GRNUpdate(BaseCreateSchema):
    notes: Optional[str] = None
    inspected_by: Optional[str] = None
    items: Optional[List[GRNItemCreate]] = None


class InwardLocation(BaseCreateSchema):
    warehouse_id: uuid.UUID
    zone_id: uuid.UUID
    rack_id: uuid.UUID
    shelf_id: uuid.UUID


class InwardItem(BaseCreateSchema):
    sku: str
    accepted_qty: int


class GRNInwardRequest(BaseCreateSchema):
    location: InwardLocation
    items: Optional[List[InwardItem]] = None


class GRNItemResponse(BaseResponseSchema):
    id: uuid.UUID
    line_number: int
    sku: str
    product_name: str
    expected_qty: int
    received_qty: int
    rejected_qty: int
    accepted_qty: int
    not_received_qty: int
    rejection_reason: Optional[str] = None
    unit_cost: Decimal
    total_cost: Decimal


class GRNResponse(BaseResponseSchema):
    id: uuid.UUID
    grn_number: str
    purchase_order_id: uuid.UUID
    po_number: str
    warehouse_id: Optional[uuid.UUID] = None
    warehouse_name: Optional[str] = None
    status: str
    total_expected_qty: int
    total_received_qty: int
    total_not_received_qty: int
    total_received_value: Decimal
    notes: Optional[str] = None
    inspected_by: Optional[str] = None
    inwarded_at: Optional[datetime] = None
    inwarded_by: Optional[str] = None
    inward_location: Optional[dict] = None
    cancelled_at: Optional[datetime] = None
    items: List[GRNItemResponse] = []
    created_at: datetime
    updated_at: datetime


class InwardItemResult(BaseResponseSchema):
    sku: str
    product_name: str
    quantity_inwarded: int
    placement_id: uuid.UUID
    previous_physical_stock: int
    new_physical_stock: int


class GRNInwardResponse(BaseResponseSchema):
    grn_number: str
    location: str
    items: List[InwardItemResult]


class GRNCancelResponse(BaseResponseSchema):
    po_id: uuid.UUID
    new_po_status: str
