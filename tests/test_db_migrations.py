import os
import sqlite3
import unittest

from quotation_engine import create_app
from quotation_engine.config import Config
from quotation_engine.db import close_db
from tests.helpers.temp_db import TempDbSandbox


def _table_exists(db_path: str, table_name: str) -> bool:
    conn = sqlite3.connect(db_path)
    try:
        row = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name = ?",
            (table_name,),
        ).fetchone()
        return row is not None
    finally:
        conn.close()


class DbMigrationsTest(unittest.TestCase):
    def setUp(self) -> None:
        self._temp_db = TempDbSandbox(prefix="qe_migrations_test")
        self.db_path = self._temp_db.db_path
        self._prev_env = os.environ.get("FLASK_ENV")
        os.environ["FLASK_ENV"] = "development"

    def tearDown(self) -> None:
        if self._prev_env is None:
            os.environ.pop("FLASK_ENV", None)
        else:
            os.environ["FLASK_ENV"] = self._prev_env
        self._temp_db.cleanup()

    def _build_app(self, *, testing: bool, db_auto_init: bool):
        temp_config = self._temp_db.make_config(
            Config,
            TESTING=testing,
            DB_AUTO_INIT=db_auto_init,
            LOG_JSON=False,
        )
        return create_app(temp_config)

    def test_schema_not_created_by_default(self) -> None:
        app = self._build_app(testing=False, db_auto_init=False)
        with app.app_context():
            close_db()

        self.assertFalse(_table_exists(self.db_path, "quotations"))

    def test_schema_created_with_explicit_dev_flag(self) -> None:
        app = self._build_app(testing=False, db_auto_init=True)
        with app.app_context():
            close_db()

        for table in ("quotations", "quotation_suppliers", "quotation_prices", "quotation_contested_items", "orders"):
            self.assertTrue(_table_exists(self.db_path, table), table)

    def test_flask_db_upgrade_and_downgrade(self) -> None:
        app = self._build_app(testing=False, db_auto_init=False)
        runner = app.test_cli_runner()

        upgrade_result = runner.invoke(args=["db", "upgrade"])
        self.assertEqual(upgrade_result.exit_code, 0, msg=upgrade_result.output)
        self.assertTrue(_table_exists(self.db_path, "quotations"))

        downgrade_result = runner.invoke(args=["db", "downgrade", "base"])
        self.assertEqual(downgrade_result.exit_code, 0, msg=downgrade_result.output)
        self.assertFalse(_table_exists(self.db_path, "quotations"))

        reupgrade_result = runner.invoke(args=["db", "upgrade"])
        self.assertEqual(reupgrade_result.exit_code, 0, msg=reupgrade_result.output)
        self.assertTrue(_table_exists(self.db_path, "quotations"))

    def test_seed_demo_is_idempotent(self) -> None:
        app = self._build_app(testing=True, db_auto_init=True)
        runner = app.test_cli_runner()

        first = runner.invoke(args=["seed-demo", "--tenant", "tenant-cli"])
        second = runner.invoke(args=["seed-demo", "--tenant", "tenant-cli"])
        with app.app_context():
            close_db()

        self.assertEqual(first.exit_code, 0, msg=first.output)
        self.assertIn("3 fornecedores, 5 itens", second.output)
        conn = sqlite3.connect(self.db_path)
        try:
            count = conn.execute("SELECT COUNT(*) FROM suppliers WHERE tenant_id = 'tenant-cli'").fetchone()[0]
        finally:
            conn.close()
        self.assertEqual(count, 3)


if __name__ == "__main__":
    unittest.main()
