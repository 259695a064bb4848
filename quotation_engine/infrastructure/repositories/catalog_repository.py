from __future__ import annotations

from typing import Dict, Iterable

from quotation_engine.infrastructure.repositories.base import BaseRepository


class CatalogRepository(BaseRepository):
    """Suppliers and inventory items a quotation can reference."""

    def add_supplier(self, db, *, name: str, phone: str | None = None) -> int:
        cursor = db.execute(
            """
            INSERT INTO suppliers (name, phone, tenant_id)
            VALUES (?, ?, ?)
            RETURNING id
            """,
            (name, phone, self.tenant_id),
        )
        return self.returning_id(cursor)

    def add_item(self, db, *, name: str, unit_type: str = "un") -> int:
        cursor = db.execute(
            """
            INSERT INTO inventory_items (name, unit_type, tenant_id)
            VALUES (?, ?, ?)
            RETURNING id
            """,
            (name, unit_type, self.tenant_id),
        )
        return self.returning_id(cursor)

    def get_supplier(self, db, supplier_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM suppliers
            WHERE id = ? AND tenant_id = ?
            LIMIT 1
            """,
            (supplier_id, self.tenant_id),
        ).fetchone()
        return dict(row) if row else None

    def find_suppliers(self, db, supplier_ids: Iterable[int]) -> Dict[int, dict]:
        ids = sorted({int(value) for value in supplier_ids})
        if not ids:
            return {}
        rows = db.execute(
            f"""
            SELECT id, name, phone
            FROM suppliers
            WHERE id IN ({self.placeholders(ids)}) AND tenant_id = ?
            """,
            self.scoped_params(ids),
        ).fetchall()
        return {int(row["id"]): dict(row) for row in rows}

    def find_items(self, db, item_ids: Iterable[int]) -> Dict[int, dict]:
        ids = sorted({int(value) for value in item_ids})
        if not ids:
            return {}
        rows = db.execute(
            f"""
            SELECT id, name, unit_type
            FROM inventory_items
            WHERE id IN ({self.placeholders(ids)}) AND tenant_id = ?
            """,
            self.scoped_params(ids),
        ).fetchall()
        return {int(row["id"]): dict(row) for row in rows}

    def list_suppliers(self, db) -> list[dict]:
        rows = db.execute(
            """
            SELECT id, name, phone
            FROM suppliers
            WHERE tenant_id = ?
            ORDER BY name ASC, id ASC
            """,
            (self.tenant_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def list_items(self, db) -> list[dict]:
        rows = db.execute(
            """
            SELECT id, name, unit_type
            FROM inventory_items
            WHERE tenant_id = ?
            ORDER BY name ASC, id ASC
            """,
            (self.tenant_id,),
        ).fetchall()
        return self.rows_to_dicts(rows)
