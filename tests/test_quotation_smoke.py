import unittest
from urllib.parse import urlparse

from quotation_engine import create_app
from quotation_engine.config import Config
from quotation_engine.db import close_db, get_db
from quotation_engine.seed import seed_demo_catalog
from tests.helpers.temp_db import TempDbSandbox


class QuotationSmokeTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="smoke")
        self.app = create_app(self._temp_db.make_config(Config, TESTING=True, LOG_JSON=False))
        self.client = self.app.test_client()
        self.tenant_id = "tenant-1"
        self.headers = {"X-Tenant-Id": self.tenant_id}
        with self.app.app_context():
            self.catalog = seed_demo_catalog(get_db(), tenant_id=self.tenant_id)

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def _json(self, response):
        return response.get_json()

    def _public_path(self, supplier: dict) -> str:
        link = urlparse(supplier["public_link"])
        return f"{link.path}?{link.query}"

    def test_happy_path_flow(self) -> None:
        s1, s2 = self.catalog["supplier_ids"][:2]
        item_a, item_b = self.catalog["item_ids"][:2]

        create_res = self.client.post(
            "/api/quotations",
            headers=self.headers,
            json={
                "title": "Smoke",
                "supplier_ids": [s1, s2],
                "items": [{"item_id": item_a, "quantity": 10}, {"item_id": item_b, "quantity": "5"}],
            },
        )
        self.assertEqual(create_res.status_code, 201)
        quotation_id = self._json(create_res)["id"]

        detail = self._json(self.client.get(f"/api/quotations/{quotation_id}", headers=self.headers))
        suppliers = {row["supplier_id"]: row for row in detail["suppliers"]}
        items = {row["item_id"]: row["id"] for row in detail["items"]}
        self.assertEqual(detail["status"], "sent")

        public_res = self.client.get(self._public_path(suppliers[s1]))
        self.assertEqual(public_res.status_code, 200)
        self.assertEqual(public_res.headers.get("Access-Control-Allow-Origin"), "*")
        self.assertEqual(self._json(public_res)["quotation_title"], "Smoke")

        for supplier_id, prices in ((s1, ("2.00", "1.50")), (s2, ("1,80", "1.60"))):
            submit_res = self.client.post(
                self._public_path(suppliers[supplier_id]),
                json={
                    "quotation_supplier_id": suppliers[supplier_id]["id"],
                    "prices": [
                        {"quotation_item_id": items[item_a], "unit_price": prices[0]},
                        {"quotation_item_id": items[item_b], "unit_price": prices[1]},
                    ],
                },
            )
            self.assertEqual(submit_res.status_code, 200, submit_res.get_data(as_text=True))
        self.assertEqual(self._json(submit_res)["quotation_status"], "comparing")

        comparison = self._json(self.client.get(f"/api/quotations/{quotation_id}/comparison", headers=self.headers))
        self.assertEqual([row["winner_supplier_id"] for row in comparison["items"]], [s2, s1])

        resolve_res = self.client.post(f"/api/quotations/{quotation_id}/resolve", headers=self.headers)
        self.assertEqual(resolve_res.status_code, 201)
        orders = self._json(resolve_res)["orders"]
        self.assertEqual(sorted(order["supplier_id"] for order in orders), sorted([s1, s2]))

        again = self.client.post(f"/api/quotations/{quotation_id}/resolve", headers=self.headers)
        self.assertEqual(again.status_code, 409)
        self.assertEqual(self._json(again)["error"], "quotation_already_resolved")

        late = self.client.post(
            self._public_path(suppliers[s1]),
            json={
                "quotation_supplier_id": suppliers[s1]["id"],
                "prices": [{"quotation_item_id": items[item_a], "unit_price": "0.50"}],
            },
        )
        self.assertEqual(late.status_code, 409)
        self.assertEqual(self._json(late)["error"], "quotation_closed")

    def test_contest_endpoint_flags_supplier(self) -> None:
        s1 = self.catalog["supplier_ids"][0]
        item_a = self.catalog["item_ids"][0]
        quotation_id = self._json(
            self.client.post(
                "/api/quotations",
                headers=self.headers,
                json={"title": "Contest", "supplier_ids": [s1], "items": [{"item_id": item_a, "quantity": 1}]},
            )
        )["id"]

        res = self.client.post(f"/api/quotations/{quotation_id}/suppliers/{s1}/contest", headers=self.headers)

        self.assertEqual(res.status_code, 200)
        self.assertEqual(self._json(res)["status"], "contested")
        missing = self.client.post(f"/api/quotations/{quotation_id}/suppliers/99999/contest", headers=self.headers)
        self.assertEqual(missing.status_code, 404)

    def test_create_validation_errors(self) -> None:
        s1 = self.catalog["supplier_ids"][0]
        item_a = self.catalog["item_ids"][0]

        no_title = self.client.post("/api/quotations", headers=self.headers, json={"supplier_ids": [s1]})
        self.assertEqual(no_title.status_code, 400)
        self.assertEqual(self._json(no_title)["error"], "title_required")

        no_suppliers = self.client.post(
            "/api/quotations",
            headers=self.headers,
            json={"title": "Vazia", "supplier_ids": [], "items": [{"item_id": item_a, "quantity": 1}]},
        )
        self.assertEqual(no_suppliers.status_code, 409)
        self.assertEqual(self._json(no_suppliers)["error"], "suppliers_required")

        bad_quantity = self.client.post(
            "/api/quotations",
            headers=self.headers,
            json={"title": "Qtd", "supplier_ids": [s1], "items": [{"item_id": item_a, "quantity": 0}]},
        )
        self.assertEqual(bad_quantity.status_code, 400)

    def test_public_endpoints_hide_unknown_tokens(self) -> None:
        res = self.client.get("/quotation-public?token=desconhecido")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(self._json(res)["error"], "invalid_token")

        missing = self.client.get("/quotation-public")
        self.assertEqual(missing.status_code, 404)

        preflight = self.client.options("/quotation-public?token=qualquer")
        self.assertEqual(preflight.status_code, 204)
        self.assertIn("POST", preflight.headers.get("Access-Control-Allow-Methods", ""))

    def test_tenants_do_not_share_quotations(self) -> None:
        s1 = self.catalog["supplier_ids"][0]
        item_a = self.catalog["item_ids"][0]
        quotation_id = self._json(
            self.client.post(
                "/api/quotations",
                headers=self.headers,
                json={"title": "Privada", "supplier_ids": [s1], "items": [{"item_id": item_a, "quantity": 1}]},
            )
        )["id"]

        other = self.client.get(f"/api/quotations/{quotation_id}", headers={"X-Tenant-Id": "tenant-2"})
        self.assertEqual(other.status_code, 404)
        listing = self._json(self.client.get("/api/quotations", headers={"X-Tenant-Id": "tenant-2"}))
        self.assertEqual(listing["items"], [])

    def test_delete_endpoint(self) -> None:
        s1 = self.catalog["supplier_ids"][0]
        item_a = self.catalog["item_ids"][0]
        quotation_id = self._json(
            self.client.post(
                "/api/quotations",
                headers=self.headers,
                json={"title": "Apagar", "supplier_ids": [s1], "items": [{"item_id": item_a, "quantity": 1}]},
            )
        )["id"]

        res = self.client.delete(f"/api/quotations/{quotation_id}", headers=self.headers)
        self.assertEqual(res.status_code, 200)
        gone = self.client.get(f"/api/quotations/{quotation_id}", headers=self.headers)
        self.assertEqual(gone.status_code, 404)


if __name__ == "__main__":
    unittest.main()
