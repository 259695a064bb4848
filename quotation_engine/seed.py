from __future__ import annotations

import logging
from typing import Dict, List

from quotation_engine.infrastructure.repositories import CatalogRepository


DEMO_SUPPLIERS = [
    {"name": "Hortifruti Bom Preco", "phone": "5511990001111"},
    {"name": "Distribuidora Central", "phone": "5511990002222"},
    {"name": "Atacado Sao Jorge", "phone": "5511990003333"},
]

DEMO_ITEMS = [
    {"name": "Tomate italiano", "unit_type": "kg"},
    {"name": "Cebola roxa", "unit_type": "kg"},
    {"name": "Azeite extra virgem", "unit_type": "l"},
    {"name": "Farinha de trigo", "unit_type": "kg"},
    {"name": "Queijo mussarela", "unit_type": "kg"},
]


def seed_demo_catalog(db, *, tenant_id: str) -> Dict[str, List[int]]:
    """Creates the demo suppliers and items once per tenant."""
    catalog = CatalogRepository(tenant_id=tenant_id)
    with db.transaction():
        suppliers = catalog.list_suppliers(db)
        items = catalog.list_items(db)
        if not suppliers:
            for supplier in DEMO_SUPPLIERS:
                catalog.add_supplier(db, name=supplier["name"], phone=supplier["phone"])
            suppliers = catalog.list_suppliers(db)
        if not items:
            for item in DEMO_ITEMS:
                catalog.add_item(db, name=item["name"], unit_type=item["unit_type"])
            items = catalog.list_items(db)
    summary = {
        "supplier_ids": [int(row["id"]) for row in suppliers],
        "item_ids": [int(row["id"]) for row in items],
    }
    logging.getLogger("quotation_engine").info(
        "demo_catalog_seeded",
        extra={
            "tenant_id": tenant_id,
            "suppliers": len(summary["supplier_ids"]),
            "items": len(summary["item_ids"]),
        },
    )
    return summary
