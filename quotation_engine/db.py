import contextlib
import sqlite3
from typing import Iterable, List, Sequence, Tuple

try:
    import psycopg2
    import psycopg2.extras
except ImportError:  # pragma: no cover - optional dependency for postgres
    psycopg2 = None

from flask import current_app, g


LockKey = Tuple[int, int]


class Database:
    def __init__(self, backend: str, connection):
        self.backend = backend
        self._conn = connection
        self._in_transaction = False

    def execute(self, sql: str, params: Iterable | None = None):
        if self.backend == "postgres":
            cursor = self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            if params:
                sql = _convert_qmark_to_pg(sql)
                cursor.execute(sql, list(params))
            else:
                cursor.execute(sql)
            return cursor
        return self._conn.execute(sql, params or ())

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @contextlib.contextmanager
    def transaction(
        self,
        *,
        exclusive_keys: Sequence[LockKey] = (),
    ):
        """Run the block as one unit of work.

        SQLite takes the database write lock up front (BEGIN IMMEDIATE), which
        already serializes writers. PostgreSQL takes transaction-scoped advisory
        locks on each (namespace, id) key. A nested call joins the outer
        transaction and its keys must already be covered by it.
        """
        if self._in_transaction:
            yield self
            return

        self.execute("BEGIN IMMEDIATE" if self.backend == "sqlite" else "BEGIN")
        self._in_transaction = True
        try:
            if self.backend == "postgres":
                for namespace, key in exclusive_keys:
                    self.execute("SELECT pg_advisory_xact_lock(?, ?)", (int(namespace), int(key)))
            yield self
        except BaseException:
            self._rollback()
            raise
        else:
            self.execute("COMMIT")
        finally:
            self._in_transaction = False

    def _rollback(self) -> None:
        if self.backend == "sqlite" and not self._conn.in_transaction:
            return
        self.execute("ROLLBACK")

    def commit(self):
        if self._in_transaction:
            return
        self._conn.commit()

    def close(self):
        self._conn.close()


def _convert_qmark_to_pg(sql: str) -> str:
    return sql.replace("?", "%s")


def connect_database(db_path: str) -> Database:
    if db_path.lower().startswith("postgres"):
        if psycopg2 is None:
            raise RuntimeError("psycopg2 nao instalado.")
        conn = psycopg2.connect(db_path)
        conn.autocommit = True
        return Database("postgres", conn)

    # Autocommit mode; multi-statement work goes through Database.transaction().
    conn = sqlite3.connect(db_path, timeout=30.0, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return Database("sqlite", conn)


def get_db():
    if "db" not in g:
        db_path = current_app.config["DB_PATH"]
        g.db = connect_database(db_path)
    return g.db


def close_db(_error=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db():
    db = get_db()
    if db.backend == "postgres":
        _init_db_postgres(db)
        return

    _init_db_sqlite(db)


_SQLITE_TYPES = {
    "pk": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "ts": "TEXT",
    "now": "CURRENT_TIMESTAMP",
    "date": "TEXT",
    "money": "NUMERIC",
    "qty": "NUMERIC",
}

_POSTGRES_TYPES = {
    "pk": "SERIAL PRIMARY KEY",
    "ts": "TIMESTAMPTZ",
    "now": "CURRENT_TIMESTAMP",
    "date": "DATE",
    "money": "NUMERIC(14, 4)",
    "qty": "NUMERIC(14, 3)",
}


SCHEMA_TABLES: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS suppliers (
        id {pk},
        name TEXT NOT NULL,
        phone TEXT,
        tenant_id TEXT NOT NULL,
        created_at {ts} NOT NULL DEFAULT {now}
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS inventory_items (
        id {pk},
        name TEXT NOT NULL,
        unit_type TEXT NOT NULL DEFAULT 'un',
        tenant_id TEXT NOT NULL,
        created_at {ts} NOT NULL DEFAULT {now}
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quotations (
        id {pk},
        title TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'draft' CHECK (
            status IN ('draft','sent','comparing','contested','resolved')
        ),
        deadline {date},
        notes TEXT,
        tenant_id TEXT NOT NULL,
        created_at {ts} NOT NULL DEFAULT {now},
        updated_at {ts} NOT NULL DEFAULT {now},
        resolved_at {ts}
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quotation_suppliers (
        id {pk},
        quotation_id INTEGER NOT NULL REFERENCES quotations(id) ON DELETE CASCADE,
        supplier_id INTEGER NOT NULL REFERENCES suppliers(id),
        token TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL DEFAULT 'pending' CHECK (
            status IN ('pending','responded','contested')
        ),
        responded_at {ts},
        notes TEXT,
        tenant_id TEXT NOT NULL,
        created_at {ts} NOT NULL DEFAULT {now},
        UNIQUE (quotation_id, supplier_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quotation_items (
        id {pk},
        quotation_id INTEGER NOT NULL REFERENCES quotations(id) ON DELETE CASCADE,
        item_id INTEGER NOT NULL REFERENCES inventory_items(id),
        quantity {qty} NOT NULL CHECK (quantity > 0),
        winner_supplier_id INTEGER REFERENCES suppliers(id),
        tenant_id TEXT NOT NULL,
        created_at {ts} NOT NULL DEFAULT {now},
        UNIQUE (quotation_id, item_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quotation_prices (
        id {pk},
        quotation_item_id INTEGER NOT NULL REFERENCES quotation_items(id) ON DELETE CASCADE,
        quotation_supplier_id INTEGER NOT NULL REFERENCES quotation_suppliers(id) ON DELETE CASCADE,
        unit_price {money} NOT NULL CHECK (unit_price > 0),
        brand TEXT,
        notes TEXT,
        round INTEGER NOT NULL CHECK (round >= 1),
        tenant_id TEXT NOT NULL,
        created_at {ts} NOT NULL DEFAULT {now},
        UNIQUE (quotation_item_id, quotation_supplier_id, round)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quotation_contested_items (
        quotation_item_id INTEGER NOT NULL REFERENCES quotation_items(id) ON DELETE CASCADE,
        quotation_supplier_id INTEGER NOT NULL REFERENCES quotation_suppliers(id) ON DELETE CASCADE,
        tenant_id TEXT NOT NULL,
        contested_at {ts} NOT NULL DEFAULT {now},
        PRIMARY KEY (quotation_item_id, quotation_supplier_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS orders (
        id {pk},
        supplier_id INTEGER NOT NULL REFERENCES suppliers(id),
        quotation_id INTEGER,
        status TEXT NOT NULL DEFAULT 'draft',
        notes TEXT,
        tenant_id TEXT NOT NULL,
        created_at {ts} NOT NULL DEFAULT {now}
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS order_items (
        id {pk},
        order_id INTEGER NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
        item_id INTEGER NOT NULL REFERENCES inventory_items(id),
        quantity {qty} NOT NULL,
        tenant_id TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS status_events (
        id {pk},
        entity TEXT NOT NULL,
        entity_id INTEGER NOT NULL,
        from_status TEXT,
        to_status TEXT NOT NULL,
        reason TEXT,
        tenant_id TEXT NOT NULL,
        created_at {ts} NOT NULL DEFAULT {now}
    )
    """,
]


SCHEMA_INDEXES: List[str] = [
    "CREATE INDEX IF NOT EXISTS idx_quotations_tenant ON quotations (tenant_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_quotation_suppliers_quotation ON quotation_suppliers (quotation_id)",
    "CREATE INDEX IF NOT EXISTS idx_quotation_items_quotation ON quotation_items (quotation_id)",
    (
        "CREATE INDEX IF NOT EXISTS idx_quotation_prices_pair "
        "ON quotation_prices (quotation_item_id, quotation_supplier_id, round)"
    ),
    "CREATE INDEX IF NOT EXISTS idx_orders_quotation ON orders (quotation_id)",
    "CREATE INDEX IF NOT EXISTS idx_status_events_entity ON status_events (entity, entity_id)",
]


# Reverse dependency order, used by the migration downgrade.
SCHEMA_TABLE_NAMES: List[str] = [
    "status_events",
    "order_items",
    "orders",
    "quotation_contested_items",
    "quotation_prices",
    "quotation_items",
    "quotation_suppliers",
    "quotations",
    "inventory_items",
    "suppliers",
]


def _apply_schema(db: Database, types: dict) -> None:
    for statement in SCHEMA_TABLES:
        db.execute(statement.format(**types))
    for statement in SCHEMA_INDEXES:
        db.execute(statement)
    db.commit()


def _init_db_sqlite(db: Database) -> None:
    _apply_schema(db, _SQLITE_TYPES)


def _init_db_postgres(db: Database) -> None:
    _apply_schema(db, _POSTGRES_TYPES)
