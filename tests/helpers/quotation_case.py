from __future__ import annotations

import unittest
from decimal import Decimal
from typing import Dict, Iterable, Tuple

from quotation_engine import create_app
from quotation_engine.application.public_response_service import PublicResponseGateway
from quotation_engine.application.quotation_service import QuotationService
from quotation_engine.config import Config
from quotation_engine.core import EventBus
from quotation_engine.db import close_db, get_db
from quotation_engine.domain.contracts import (
    PriceLineInput,
    PriceSubmissionInput,
    QuotationCreateInput,
    QuotationItemInput,
)
from quotation_engine.infrastructure.repositories import CatalogRepository, QuotationRepository
from tests.helpers.temp_db import TempDbSandbox


class QuotationAppTestCase(unittest.TestCase):
    """Service-level case: real SQLite schema, services called inside an app context."""

    tenant_id = "tenant-quotation"
    sandbox_prefix = "quotation_case"

    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix=self.sandbox_prefix)
        self.app = create_app(self._temp_db.make_config(Config, TESTING=True, LOG_JSON=False))
        self._ctx = self.app.app_context()
        self._ctx.push()
        self.db = get_db()
        self.bus = EventBus()
        self.service = QuotationService(event_bus=self.bus)
        self.gateway = PublicResponseGateway(event_bus=self.bus)
        self.catalog = CatalogRepository(tenant_id=self.tenant_id)
        self.quotations = QuotationRepository(tenant_id=self.tenant_id)

    def tearDown(self) -> None:
        close_db()
        self._ctx.pop()
        self._temp_db.cleanup()

    def add_supplier(self, name: str) -> int:
        return self.catalog.add_supplier(self.db, name=name, phone=None)

    def add_item(self, name: str, unit_type: str = "un") -> int:
        return self.catalog.add_item(self.db, name=name, unit_type=unit_type)

    def create_quotation(
        self,
        *,
        supplier_ids: Iterable[int],
        items: Iterable[Tuple[int, object]],
        title: str = "Cotacao semanal",
        deadline=None,
    ) -> int:
        output = self.service.create_quotation(
            self.db,
            tenant_id=self.tenant_id,
            create_input=QuotationCreateInput(
                title=title,
                supplier_ids=list(supplier_ids),
                items=[QuotationItemInput(item_id=item_id, quantity=Decimal(str(qty))) for item_id, qty in items],
                deadline=deadline,
            ),
        )
        return int(output.payload["id"])

    def links(self, quotation_id: int) -> Dict[int, dict]:
        return {int(row["supplier_id"]): row for row in self.quotations.list_suppliers(self.db, quotation_id)}

    def quotation_items(self, quotation_id: int) -> Dict[int, dict]:
        return {int(row["item_id"]): row for row in self.quotations.list_items(self.db, quotation_id)}

    def submit(
        self,
        quotation_id: int,
        supplier_id: int,
        prices: Dict[int, object],
        *,
        general_notes: str | None = None,
        now=None,
    ):
        link = self.links(quotation_id)[supplier_id]
        items = self.quotation_items(quotation_id)
        lines = [
            PriceLineInput(
                quotation_item_id=int(items[item_id]["id"]),
                unit_price=None if price is None else Decimal(str(price)),
            )
            for item_id, price in prices.items()
        ]
        return self.gateway.submit_by_token(
            self.db,
            token=link["token"],
            submission=PriceSubmissionInput(
                quotation_supplier_id=int(link["id"]),
                prices=lines,
                general_notes=general_notes,
            ),
            now=now,
        )
