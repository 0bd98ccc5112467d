# Services module
from backoffice.services.audit_service import AuditService
from backoffice.services.document_sequence_service import DocumentSequenceService
from backoffice.services.product_service import ProductService
from backoffice.services.placement_service import PlacementService
from backoffice.services.inventory_service import InventoryService
from backoffice.services.warehouse_service import WarehouseService
from backoffice.services.party_service import PartyService
from backoffice.services.purchase_order_service import PurchaseOrderService
from backoffice.services.grn_service import GRNService

__all__ = [
    "AuditService",
    "DocumentSequenceService",
    "ProductService",
    "PlacementService",
    "InventoryService",
    "WarehouseService",
    "PartyService",
    "PurchaseOrderService",
    "GRNService",
]
