import json
import logging
import unittest

from quotation_engine import create_app
from quotation_engine.config import Config
from quotation_engine.core import QuotationCreated, get_event_bus
from quotation_engine.db import close_db
from quotation_engine.observability import (
    JsonLogFormatter,
    metrics_snapshot,
    reset_metrics_for_tests,
    set_log_request_id,
)
from tests.helpers.quotation_case import QuotationAppTestCase
from tests.helpers.temp_db import TempDbSandbox


class ObservabilityPrometheusTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="observability_metrics")
        cfg = self._temp_db.make_config(Config, TESTING=True, LOG_JSON=False)
        self.app = create_app(cfg)
        self.client = self.app.test_client()
        reset_metrics_for_tests()

    def tearDown(self) -> None:
        with self.app.app_context():
            close_db()
        self._temp_db.cleanup()
        reset_metrics_for_tests()

    def test_metrics_endpoint_exposes_prometheus_metrics(self) -> None:
        self.client.get("/api/unknown")
        get_event_bus().publish(QuotationCreated(tenant_id="tenant-metrics", quotation_id=99, title="Metricas"))

        response = self.client.get("/metrics")
        self.assertEqual(response.status_code, 200)
        content_type = response.headers.get("Content-Type") or ""
        self.assertIn("text/plain", content_type)

        payload = response.get_data(as_text=True)
        self.assertIn("http_request_total", payload)
        self.assertIn("http_request_duration_ms_bucket", payload)
        self.assertIn("domain_event_emitted_total", payload)
        self.assertIn('event_type="QuotationCreated"', payload)

    def test_log_formatter_includes_request_id_outside_request_context(self) -> None:
        set_log_request_id("cli-req-123")
        formatter = JsonLogFormatter()
        record = logging.LogRecord(
            name="quotation_engine",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="quotation_resolved",
            args=(),
            exc_info=None,
        )
        record.quotation_id = 7
        parsed = json.loads(formatter.format(record))
        self.assertEqual(parsed.get("request_id"), "cli-req-123")
        self.assertEqual(parsed.get("quotation_id"), 7)
        self.assertEqual(parsed.get("message"), "quotation_resolved")


class QuotationMetricsTest(QuotationAppTestCase):
    sandbox_prefix = "quotation_metrics"

    def setUp(self) -> None:
        super().setUp()
        reset_metrics_for_tests()

    def tearDown(self) -> None:
        reset_metrics_for_tests()
        super().tearDown()

    def test_price_lines_and_resolution_are_measured(self) -> None:
        supplier_id = self.add_supplier("Hortifruti Bom Preco")
        item_a = self.add_item("Tomate", "kg")
        item_b = self.add_item("Cebola", "kg")
        quotation_id = self.create_quotation(supplier_ids=[supplier_id], items=[(item_a, 10), (item_b, 5)])

        self.submit(quotation_id, supplier_id, {item_a: "2.00", item_b: "0"})
        self.service.resolve_quotation(self.db, tenant_id=self.tenant_id, quotation_id=quotation_id)

        quotations = metrics_snapshot()["quotations"]
        self.assertEqual(quotations["price_lines"], {"dropped": 1, "saved": 1})
        self.assertEqual(quotations["resolutions_total"], 1)
        self.assertEqual(quotations["resolution_items"], {"awarded": 1, "without_offer": 1})

        payload = self.app.test_client().get("/metrics").get_data(as_text=True)
        self.assertIn('quotation_price_lines_total{outcome="dropped"} 1', payload)
        self.assertIn('quotation_resolution_items_total{outcome="without_offer"} 1', payload)
        self.assertIn("quotation_resolution_duration_ms_count 1", payload)


if __name__ == "__main__":
    unittest.main()
