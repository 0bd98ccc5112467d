"""Pydantic schemas for the warehouse hierarchy."""
from pydantic import Field

from backoffice.schemas.base import BaseCreateSchema, BaseResponseSchema
from typing import Optional
from datetime import datetime
import uuid


# ==================== WAREHOUSE SCHEMAS ====================

class WarehouseCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    address: Optional[dict] = None
    storage_capacity: Optional[int] = Field(None, ge=0)
    operational_hours: Optional[dict] = None
    default_gst_state: Optional[str] = None


class WarehouseUpdate(BaseCreateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    address: Optional[dict] = None
    storage_capacity: Optional[int] = Field(None, ge=0)
    operational_hours: Optional[dict] = None
    default_gst_state: Optional[str] = None


class WarehouseResponse(BaseResponseSchema):
    id: uuid.UUID
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    address: Optional[dict] = None
    storage_capacity: Optional[int] = None
    operational_hours: Optional[dict] = None
    default_gst_state: Optional[str] = None
    stats: dict = {}
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


# ==================== ZONE SCHEMAS ====================

class ZoneCreate(BaseCreateSchema):
    warehouse_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None


class ZoneUpdate(BaseCreateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None


class ZoneMove(BaseCreateSchema):
    destination_warehouse_id: uuid.UUID


class ZoneResponse(BaseResponseSchema):
    id: uuid.UUID
    warehouse_id: uuid.UUID
    warehouse_name: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    stats: dict = {}
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


# ==================== RACK SCHEMAS ====================

class RackCreate(BaseCreateSchema):
    zone_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    position: Optional[int] = None


class RackUpdate(BaseCreateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None


class RackMove(BaseCreateSchema):
    destination_zone_id: uuid.UUID
    target_position: Optional[int] = None
    old_position: Optional[int] = None


class RackResponse(BaseResponseSchema):
    id: uuid.UUID
    warehouse_id: uuid.UUID
    warehouse_name: str
    zone_id: uuid.UUID
    zone_name: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    position: int
    stats: dict = {}
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


# ==================== SHELF SCHEMAS ====================

class ShelfCreate(BaseCreateSchema):
    rack_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    position: Optional[int] = None
    capacity: Optional[int] = Field(None, ge=0)
    coordinates: Optional[dict] = None


class ShelfUpdate(BaseCreateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    coordinates: Optional[dict] = None


class ShelfMove(BaseCreateSchema):
    destination_rack_id: uuid.UUID
    target_position: Optional[int] = None
    old_position: Optional[int] = None


class ShelfResponse(BaseResponseSchema):
    id: uuid.UUID
    warehouse_id: uuid.UUID
    warehouse_name: str
    zone_id: uuid.UUID
    zone_name: str
    rack_id: uuid.UUID
    rack_name: str
    name: str
    code: Optional[str] = None
    description: Optional[str] = None
    position: int
    capacity: Optional[int] = None
    coordinates: Optional[dict] = None
    stats: dict = {}
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


# ==================== ORDERING ====================

class RepositionRequest(BaseCreateSchema):
    new_position: int
    old_position: Optional[int] = None


class MoveResponse(BaseResponseSchema):
    id: uuid.UUID
    new_position: Optional[int] = None


# ==================== INSTANT WAREHOUSE ====================

class WarehouseGridCreate(BaseCreateSchema):
    """Counts are range-checked by the service so the limits stay configurable."""
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    address: Optional[dict] = None
    zones: int
    racks_per_zone: int
    shelves_per_rack: int


class WarehouseGridResponse(BaseResponseSchema):
    warehouse_id: uuid.UUID
    zones: int
    racks: int
    shelves: int
    total_entities: int
    batches_used: int
