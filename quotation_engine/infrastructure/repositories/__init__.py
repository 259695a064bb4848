from .base import BaseRepository, TenantScopeRequiredError
from .catalog_repository import CatalogRepository
from .order_repository import OrderRepository
from .price_repository import QuotationPriceRepository
from .quotation_repository import QuotationRepository
from .quotation_supplier_repository import QuotationSupplierRepository
from .status_event_repository import StatusEventRepository

__all__ = [
    "BaseRepository",
    "CatalogRepository",
    "OrderRepository",
    "QuotationPriceRepository",
    "QuotationRepository",
    "QuotationSupplierRepository",
    "StatusEventRepository",
    "TenantScopeRequiredError",
]
