import unittest
from unittest.mock import patch

from quotation_engine import create_app
from quotation_engine.config import Config
from quotation_engine.db import close_db, get_db
from quotation_engine.messages import error_message
from quotation_engine.routes import quotation_routes
from quotation_engine.seed import seed_demo_catalog
from tests.helpers.temp_db import TempDbSandbox


class ErrorHandlingApiTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="error_api")
        self.app = create_app(self._temp_db.make_config(Config, TESTING=True, LOG_JSON=False))
        self.client = self.app.test_client()
        self.tenant_id = "tenant-error-api"
        self.headers = {"X-Tenant-Id": self.tenant_id}

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()

    def _create_resolved_quotation(self) -> int:
        with self.app.app_context():
            catalog = seed_demo_catalog(get_db(), tenant_id=self.tenant_id)
        create_res = self.client.post(
            "/api/quotations",
            headers=self.headers,
            json={
                "title": "Erro",
                "supplier_ids": catalog["supplier_ids"][:1],
                "items": [{"item_id": catalog["item_ids"][0], "quantity": 2}],
            },
        )
        self.assertEqual(create_res.status_code, 201)
        quotation_id = int(create_res.get_json()["id"])
        resolve_res = self.client.post(f"/api/quotations/{quotation_id}/resolve", headers=self.headers)
        self.assertEqual(resolve_res.status_code, 201)
        return quotation_id

    def test_conflict_error_for_action_outside_flow(self) -> None:
        quotation_id = self._create_resolved_quotation()

        delete_res = self.client.delete(f"/api/quotations/{quotation_id}", headers=self.headers)

        self.assertEqual(delete_res.status_code, 409)
        payload = delete_res.get_json()
        self.assertEqual(payload.get("error"), "quotation_already_resolved")
        self.assertEqual(payload.get("message"), error_message("quotation_already_resolved"))
        self.assertEqual(payload.get("status"), "resolved")
        self.assertTrue((payload.get("request_id") or "").strip())

    def test_not_found_error_payload(self) -> None:
        response = self.client.get("/api/quotations/9999", headers=self.headers)

        self.assertEqual(response.status_code, 404)
        payload = response.get_json()
        self.assertEqual(payload.get("error"), "quotation_not_found")
        self.assertEqual(payload.get("message"), error_message("quotation_not_found"))
        self.assertEqual(payload.get("request_id"), response.headers.get("X-Request-Id"))

    def test_validation_error_for_malformed_body(self) -> None:
        response = self.client.post("/api/quotations", headers=self.headers, json=["nao", "e", "objeto"])

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json().get("error"), "validation_error")

    def test_stack_trace_not_exposed_for_unhandled_error(self) -> None:
        with patch.object(
            quotation_routes._QUOTATION_SERVICE,
            "list_quotations",
            side_effect=RuntimeError("stack_secret_token"),
        ):
            response = self.client.get("/api/quotations", headers=self.headers)

        self.assertEqual(response.status_code, 500)
        payload = response.get_json()
        self.assertEqual(payload.get("error"), "unexpected_error")
        self.assertEqual(payload.get("message"), error_message("unexpected_error"))
        body = response.get_data(as_text=True)
        self.assertNotIn("Traceback", body)
        self.assertNotIn("stack_secret_token", body)


if __name__ == "__main__":
    unittest.main()
