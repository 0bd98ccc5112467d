from backoffice.models.product import Product
from backoffice.models.warehouse import Warehouse, WarehouseZone, WarehouseRack, WarehouseShelf
from backoffice.models.placement import Placement
from backoffice.models.party import Party, PartyType
from backoffice.models.purchase import (
    PurchaseOrder,
    PurchaseOrderItem,
    GoodsReceiptNote,
    GRNItem,
    POStatus,
    POItemStatus,
    GRNStatus,
)
from backoffice.models.inventory_log import InventoryLog
from backoffice.models.audit_log import AuditLog
from backoffice.models.document_sequence import DocumentSequence

__all__ = [
    "Product",
    "Warehouse",
    "WarehouseZone",
    "WarehouseRack",
    "WarehouseShelf",
    "Placement",
    "Party",
    "PartyType",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "GoodsReceiptNote",
    "GRNItem",
    "POStatus",
    "POItemStatus",
    "GRNStatus",
    "InventoryLog",
    "AuditLog",
    "DocumentSequence",
]
