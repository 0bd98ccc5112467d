"""Pydantic schemas for products, stock movements and placements."""
from pydantic import Field, computed_field

from backoffice.schemas.base import BaseCreateSchema, BaseResponseSchema
from typing import Optional, List
from datetime import datetime
import uuid


class ProductCreate(BaseCreateSchema):
    sku: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=300)
    opening_stock: int = 0


class StockResponse(BaseResponseSchema):
    sku: str
    name: str
    opening_stock: int
    inward_addition: int
    deduction: int
    auto_addition: int
    auto_deduction: int
    blocked_stock: int
    physical_stock: int
    available_stock: int


class InwardRequest(BaseCreateSchema):
    sku: str
    qty: int
    warehouse_id: uuid.UUID
    zone_id: uuid.UUID
    rack_id: uuid.UUID
    shelf_id: uuid.UUID
    source_reference: Optional[str] = None


class InwardResponse(BaseResponseSchema):
    sku: str
    quantity: int
    placement_id: uuid.UUID
    previous_physical_stock: int
    new_physical_stock: int


class OutwardRequest(BaseCreateSchema):
    sku: str
    qty: int
    placement_id: uuid.UUID
    reason: Optional[str] = None
    automatic: bool = False
    source_reference: Optional[str] = None


class OutwardResponse(BaseResponseSchema):
    sku: str
    quantity: int
    placement_id: uuid.UUID
    previous_physical_stock: int
    new_physical_stock: int
    remaining_placement_quantity: int


class BlockRequest(BaseCreateSchema):
    sku: str
    qty: int
    reason: Optional[str] = None
    source_reference: Optional[str] = None


class LedgerChangeResponse(BaseResponseSchema):
    field: str
    old_value: int
    new_value: int
    previous_physical_stock: int
    new_physical_stock: int
    previous_available_stock: int
    new_available_stock: int


class InventoryLogResponse(BaseResponseSchema):
    id: uuid.UUID
    product_sku: str
    action: str
    changes: List[dict]
    adjustment_type: str
    adjustment_amount: int
    reason: Optional[str] = None
    source: str
    source_reference: Optional[str] = None
    grn_id: Optional[uuid.UUID] = None
    placement: Optional[dict] = None
    stock_snapshot: dict
    performed_by: Optional[str] = None
    created_at: datetime


class PlacementResponse(BaseResponseSchema):
    id: uuid.UUID
    product_id: uuid.UUID
    product_sku: str
    quantity: int
    warehouse_id: uuid.UUID
    warehouse_name: str
    zone_id: uuid.UUID
    zone_name: str
    rack_id: uuid.UUID
    rack_name: str
    shelf_id: uuid.UUID
    shelf_name: str
    create_upcs: bool
    last_movement_reason: Optional[str] = None
    last_movement_reference: Optional[str] = None
    updated_at: datetime

    @computed_field
    @property
    def location_path(self) -> str:
        return f"{self.zone_name} > {self.rack_name} > {self.shelf_name}"
