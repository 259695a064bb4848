import unittest
from decimal import Decimal

from quotation_engine.core import QuotationCreated
from quotation_engine.domain.contracts import QuotationCreateInput, QuotationItemInput
from quotation_engine.errors import ConflictError, NotFoundError
from quotation_engine.infrastructure.repositories import QuotationPriceRepository
from tests.helpers.quotation_case import QuotationAppTestCase


class QuotationServiceTest(QuotationAppTestCase):
    sandbox_prefix = "quotation_service"

    def setUp(self) -> None:
        super().setUp()
        self.s1 = self.add_supplier("Acougue Central")
        self.s2 = self.add_supplier("Laticinios Serra")
        self.item_a = self.add_item("Queijo", "kg")
        self.item_b = self.add_item("Leite", "l")

    def _create(self, supplier_ids, items):
        return self.service.create_quotation(
            self.db,
            tenant_id=self.tenant_id,
            create_input=QuotationCreateInput(
                title="Laticinios",
                supplier_ids=list(supplier_ids),
                items=[QuotationItemInput(item_id=item_id, quantity=Decimal(qty)) for item_id, qty in items],
            ),
        )

    def test_create_links_every_supplier_and_item(self) -> None:
        received = []
        self.bus.subscribe(QuotationCreated, received.append)

        output = self._create([self.s1, self.s2], [(self.item_a, "3"), (self.item_b, "12.5")])

        self.assertEqual(output.status_code, 201)
        self.assertEqual(output.payload["status"], "sent")
        quotation_id = output.payload["id"]
        links = self.links(quotation_id)
        self.assertEqual(sorted(links), [self.s1, self.s2])
        self.assertTrue(all(link["status"] == "pending" for link in links.values()))
        items = self.quotation_items(quotation_id)
        self.assertEqual(float(items[self.item_b]["quantity"]), 12.5)
        self.assertEqual(len(received), 1)
        self.assertEqual(received[0].supplier_count, 2)

    def test_empty_supplier_or_item_list_is_a_conflict(self) -> None:
        with self.assertRaises(ConflictError) as ctx:
            self._create([], [(self.item_a, "1")])
        self.assertEqual(ctx.exception.code, "suppliers_required")

        with self.assertRaises(ConflictError) as ctx:
            self._create([self.s1], [])
        self.assertEqual(ctx.exception.code, "items_required")

        self.assertEqual(self.quotations.list_summary(self.db), [])

    def test_unknown_supplier_or_item_creates_nothing(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self._create([self.s1, 999], [(self.item_a, "1")])
        self.assertEqual(ctx.exception.code, "supplier_not_found")
        self.assertEqual(ctx.exception.payload["supplier_ids"], [999])

        with self.assertRaises(NotFoundError) as ctx:
            self._create([self.s1], [(self.item_a, "1"), (888, "1")])
        self.assertEqual(ctx.exception.code, "item_not_found")

        self.assertEqual(self.quotations.list_summary(self.db), [])

    def test_detail_exposes_public_links_and_history(self) -> None:
        quotation_id = self._create([self.s1], [(self.item_a, "2")]).payload["id"]

        payload = self.service.get_quotation(
            self.db,
            tenant_id=self.tenant_id,
            quotation_id=quotation_id,
            public_base_url="https://compras.example.com/",
        ).payload

        supplier = payload["suppliers"][0]
        self.assertEqual(
            supplier["public_link"],
            f"https://compras.example.com/quotation-public?token={supplier['token']}",
        )
        self.assertEqual(payload["items"][0]["item"]["name"], "Queijo")
        self.assertEqual(payload["orders"], [])
        self.assertEqual([event["to_status"] for event in payload["events"]], ["sent"])
        self.assertIn("resolve_quotation", payload["flow"]["allowed_actions"])

    def test_list_counts_responses(self) -> None:
        quotation_id = self._create([self.s1, self.s2], [(self.item_a, "2")]).payload["id"]
        self.submit(quotation_id, self.s1, {self.item_a: "30.00"})

        rows = self.service.list_quotations(self.db, tenant_id=self.tenant_id).payload["items"]

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["supplier_count"], 2)
        self.assertEqual(rows[0]["responded_count"], 1)
        self.assertEqual(rows[0]["item_count"], 1)

    def test_fetch_prices_returns_the_full_history(self) -> None:
        quotation_id = self._create([self.s1], [(self.item_a, "2")]).payload["id"]
        self.submit(quotation_id, self.s1, {self.item_a: "30.00"})
        self.submit(quotation_id, self.s1, {self.item_a: "28.00"})

        payload = self.service.fetch_prices(self.db, tenant_id=self.tenant_id, quotation_id=quotation_id).payload

        self.assertEqual([(price["round"], price["unit_price"]) for price in payload["prices"]], [(2, 28.0), (1, 30.0)])

    def test_delete_removes_an_open_quotation(self) -> None:
        quotation_id = self._create([self.s1], [(self.item_a, "2")]).payload["id"]
        self.submit(quotation_id, self.s1, {self.item_a: "30.00"})

        output = self.service.delete_quotation(self.db, tenant_id=self.tenant_id, quotation_id=quotation_id)

        self.assertEqual(output.status_code, 200)
        self.assertIsNone(self.quotations.get_by_id(self.db, quotation_id))
        prices = QuotationPriceRepository(tenant_id=self.tenant_id).list_for_quotation(self.db, quotation_id)
        self.assertEqual(prices, [])

    def test_resolved_quotation_cannot_be_deleted(self) -> None:
        quotation_id = self._create([self.s1], [(self.item_a, "2")]).payload["id"]
        self.service.resolve_quotation(self.db, tenant_id=self.tenant_id, quotation_id=quotation_id)

        with self.assertRaises(ConflictError):
            self.service.delete_quotation(self.db, tenant_id=self.tenant_id, quotation_id=quotation_id)

        self.assertIsNotNone(self.quotations.get_by_id(self.db, quotation_id))

    def test_other_tenant_cannot_see_the_quotation(self) -> None:
        quotation_id = self._create([self.s1], [(self.item_a, "2")]).payload["id"]

        with self.assertRaises(NotFoundError):
            self.service.get_quotation(
                self.db,
                tenant_id="tenant-other",
                quotation_id=quotation_id,
                public_base_url="http://localhost",
            )


if __name__ == "__main__":
    unittest.main()
