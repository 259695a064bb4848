from __future__ import annotations

from typing import Iterable

from quotation_engine.infrastructure.repositories.base import BaseRepository


class QuotationSupplierRepository(BaseRepository):
    """Supplier links of a quotation: token, response status and contest flags."""

    @staticmethod
    def find_by_token(db, token: str) -> dict | None:
        # The token is the only credential of the public flow, so this lookup
        # runs before any tenant is known.
        row = db.execute(
            """
            SELECT id, quotation_id, supplier_id, token, status, responded_at, notes, tenant_id
            FROM quotation_suppliers
            WHERE token = ?
            LIMIT 1
            """,
            (token,),
        ).fetchone()
        return dict(row) if row else None

    def get_by_id(self, db, quotation_supplier_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM quotation_suppliers
            WHERE id = ? AND tenant_id = ?
            LIMIT 1
            """,
            (quotation_supplier_id, self.tenant_id),
        ).fetchone()
        return dict(row) if row else None

    def get_for_quotation(self, db, *, quotation_id: int, supplier_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM quotation_suppliers
            WHERE quotation_id = ? AND supplier_id = ? AND tenant_id = ?
            LIMIT 1
            """,
            (quotation_id, supplier_id, self.tenant_id),
        ).fetchone()
        return dict(row) if row else None

    def update_status(self, db, quotation_supplier_id: int, status: str) -> None:
        db.execute(
            """
            UPDATE quotation_suppliers
            SET status = ?
            WHERE id = ? AND tenant_id = ?
            """,
            (status, quotation_supplier_id, self.tenant_id),
        )

    def mark_responded(
        self,
        db,
        quotation_supplier_id: int,
        *,
        responded_at: str,
        notes: str | None = None,
    ) -> None:
        db.execute(
            """
            UPDATE quotation_suppliers
            SET status = 'responded', responded_at = ?, notes = COALESCE(?, notes)
            WHERE id = ? AND tenant_id = ?
            """,
            (responded_at, notes, quotation_supplier_id, self.tenant_id),
        )

    def all_responded(self, db, quotation_id: int) -> bool:
        row = db.execute(
            """
            SELECT
                COUNT(*) AS total,
                SUM(CASE WHEN status = 'responded' THEN 1 ELSE 0 END) AS responded
            FROM quotation_suppliers
            WHERE quotation_id = ? AND tenant_id = ?
            """,
            (quotation_id, self.tenant_id),
        ).fetchone()
        total = int(row["total"] or 0)
        return total > 0 and int(row["responded"] or 0) == total

    def add_contested_items(self, db, quotation_supplier_id: int, quotation_item_ids: Iterable[int]) -> None:
        for quotation_item_id in sorted(set(quotation_item_ids)):
            db.execute(
                """
                INSERT INTO quotation_contested_items (quotation_item_id, quotation_supplier_id, tenant_id)
                VALUES (?, ?, ?)
                ON CONFLICT (quotation_item_id, quotation_supplier_id) DO NOTHING
                """,
                (quotation_item_id, quotation_supplier_id, self.tenant_id),
            )

    def clear_contested_items(self, db, quotation_supplier_id: int, quotation_item_ids: Iterable[int]) -> None:
        ids = sorted(set(quotation_item_ids))
        if not ids:
            return
        db.execute(
            f"""
            DELETE FROM quotation_contested_items
            WHERE quotation_supplier_id = ? AND quotation_item_id IN ({self.placeholders(ids)}) AND tenant_id = ?
            """,
            (quotation_supplier_id, *ids, self.tenant_id),
        )

    def list_contested_item_ids(self, db, quotation_supplier_id: int) -> list[int]:
        rows = db.execute(
            """
            SELECT quotation_item_id
            FROM quotation_contested_items
            WHERE quotation_supplier_id = ? AND tenant_id = ?
            ORDER BY quotation_item_id ASC
            """,
            (quotation_supplier_id, self.tenant_id),
        ).fetchall()
        return [int(row["quotation_item_id"]) for row in rows]
