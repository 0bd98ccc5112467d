"""Warehouse hierarchy models: Warehouse > Zone > Rack > Shelf.

Every node is soft-deleted and carries denormalized copies of its ancestors'
ids and names. Racks and shelves hold a 1-based ``position`` that is dense
among the non-deleted siblings of one parent.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base
from backoffice.db_types import JSONType, UUIDType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HierarchyNodeMixin:
    """Columns shared by every level of the warehouse hierarchy."""

    id: Mapped[uuid.UUID] = mapped_column(UUIDType, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Rollup counts, maintained outside this service
    stats: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    # Soft delete
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class Warehouse(HierarchyNodeMixin, Base):
    """Physical warehouse. Root of the storage hierarchy."""
    __tablename__ = "warehouses"

    address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    storage_capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    operational_hours: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    default_gst_state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<Warehouse(name='{self.name}')>"


class WarehouseZone(HierarchyNodeMixin, Base):
    """Zone within a warehouse. Zones are not ordered."""
    __tablename__ = "warehouse_zones"

    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("warehouses.id"), nullable=False, index=True
    )
    warehouse_name: Mapped[str] = mapped_column(String(200), nullable=False)

    def __repr__(self) -> str:
        return f"<WarehouseZone(code='{self.code}', warehouse='{self.warehouse_name}')>"


class WarehouseRack(HierarchyNodeMixin, Base):
    """Rack within a zone, ordered by ``position``."""
    __tablename__ = "warehouse_racks"

    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("warehouses.id"), nullable=False, index=True
    )
    warehouse_name: Mapped[str] = mapped_column(String(200), nullable=False)
    zone_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("warehouse_zones.id"), nullable=False, index=True
    )
    zone_name: Mapped[str] = mapped_column(String(200), nullable=False)

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<WarehouseRack(code='{self.code}', position={self.position})>"


class WarehouseShelf(HierarchyNodeMixin, Base):
    """Shelf within a rack, ordered by ``position``. Placements point at shelves."""
    __tablename__ = "warehouse_shelves"

    warehouse_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("warehouses.id"), nullable=False, index=True
    )
    warehouse_name: Mapped[str] = mapped_column(String(200), nullable=False)
    zone_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("warehouse_zones.id"), nullable=False, index=True
    )
    zone_name: Mapped[str] = mapped_column(String(200), nullable=False)
    rack_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType, ForeignKey("warehouse_racks.id"), nullable=False, index=True
    )
    rack_name: Mapped[str] = mapped_column(String(200), nullable=False)

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    coordinates: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<WarehouseShelf(code='{self.code}', position={self.position})>"
