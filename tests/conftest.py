"""Pytest configuration and fixtures."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

from typing import AsyncGenerator

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backoffice.core.security import create_access_token
from backoffice.database import Base, custom_json_dumps, get_db
from backoffice.main import app
# Import all models to ensure they're registered with Base.metadata
from backoffice.models import *  # noqa: F401,F403
from backoffice.models.party import PartyType
from backoffice.schemas.party import PartyCreate
from backoffice.schemas.purchase import POItemCreate, PurchaseOrderCreate, PurchaseOrderUpdate
from backoffice.schemas.warehouse import WarehouseGridCreate
from backoffice.services.party_service import PartyService
from backoffice.services.product_service import ProductService
from backoffice.services.purchase_order_service import PurchaseOrderService
from backoffice.services.warehouse_service import WarehouseService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite://"

BUSINESS_ID = "biz-test"
OTHER_BUSINESS_ID = "biz-other"
ACTOR_ID = "user-1"


@pytest.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        json_serializer=custom_json_dumps,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def business_id() -> str:
    return BUSINESS_ID


@pytest.fixture
def auth_headers() -> dict:
    """Bearer token granting the test business."""
    token = create_access_token(ACTOR_ID, businesses=[BUSINESS_ID])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create a test client with database override."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ==================== SEED HELPERS ====================

@pytest.fixture
async def grid(db_session):
    """A 2 zone x 2 rack x 3 shelf warehouse."""
    service = WarehouseService(db_session, BUSINESS_ID, ACTOR_ID)
    result = await service.create_warehouse_grid(WarehouseGridCreate(
        name="Main Warehouse", code="WH-MAIN", zones=2, racks_per_zone=2, shelves_per_rack=3,
    ))
    warehouse = await service.get_warehouse(result.warehouse_id)
    zones, _ = await service.get_zones(warehouse.id)
    racks, _ = await service.get_racks(zones[0].id)
    shelves, _ = await service.get_shelves(racks[0].id)
    return {
        "warehouse": warehouse,
        "zones": zones,
        "racks": racks,
        "shelves": shelves,
    }


@pytest.fixture
def shelf_location(grid):
    """Ids of the first shelf of the grid, in hierarchy order."""
    shelf = grid["shelves"][0]
    return {
        "warehouse_id": shelf.warehouse_id,
        "zone_id": shelf.zone_id,
        "rack_id": shelf.rack_id,
        "shelf_id": shelf.id,
    }


@pytest.fixture
async def products(db_session):
    service = ProductService(db_session, BUSINESS_ID)
    return {
        "WP-100": await service.create_product("WP-100", "Water Purifier 100", opening_stock=10),
        "FLT-01": await service.create_product("FLT-01", "Filter Cartridge", opening_stock=0),
    }


@pytest.fixture
async def supplier(db_session):
    return await PartyService(db_session, BUSINESS_ID, ACTOR_ID).create_party(PartyCreate(
        name="Aqua Components Pvt Ltd",
        type=PartyType.SUPPLIER,
        gstin="27AAPFU0939F1ZV",
        pan="AAPFU0939F",
    ))


@pytest.fixture
async def confirmed_po(db_session, supplier, products, grid):
    """PO for 10 x WP-100 and 20 x FLT-01, confirmed."""
    service = PurchaseOrderService(db_session, BUSINESS_ID, ACTOR_ID)
    po = await service.create_po(PurchaseOrderCreate(
        supplier_party_id=supplier.id,
        warehouse_id=grid["warehouse"].id,
        items=[
            POItemCreate(sku="WP-100", ordered_qty=10, unit_cost="1200.00"),
            POItemCreate(sku="FLT-01", ordered_qty=20, unit_cost="150.50"),
        ],
    ))
    return await service.update_po(po.id, PurchaseOrderUpdate(status="confirmed"))
