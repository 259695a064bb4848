from quotation_engine.core.event_bus import (
    DomainEvent,
    EventBus,
    PurchaseOrderCreated,
    QuotationCreated,
    QuotationPricesSubmitted,
    QuotationResolved,
    QuotationSupplierContested,
    get_event_bus,
    reset_event_bus_for_tests,
)

__all__ = [
    "DomainEvent",
    "EventBus",
    "QuotationCreated",
    "QuotationPricesSubmitted",
    "QuotationSupplierContested",
    "QuotationResolved",
    "PurchaseOrderCreated",
    "get_event_bus",
    "reset_event_bus_for_tests",
]
