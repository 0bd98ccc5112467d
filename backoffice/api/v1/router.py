from fastapi import APIRouter

from backoffice.api.v1.endpoints import (
    inventory,
    parties,
    purchasing,
    warehouses,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# Every business resource is scoped by the tenant in the path
BUSINESS_PREFIX = "/businesses/{business_id}"

# ==================== Warehouse Hierarchy ====================
api_router.include_router(
    warehouses.router,
    prefix=BUSINESS_PREFIX,
    tags=["Warehouses"]
)

# ==================== Inventory & Placements ====================
api_router.include_router(
    inventory.router,
    prefix=BUSINESS_PREFIX,
    tags=["Inventory"]
)

# ==================== Parties ====================
api_router.include_router(
    parties.router,
    prefix=BUSINESS_PREFIX,
    tags=["Parties"]
)

# ==================== Purchase Orders & GRNs ====================
api_router.include_router(
    purchasing.router,
    prefix=BUSINESS_PREFIX,
    tags=["Purchase/Procurement"]
)
