from __future__ import annotations

from quotation_engine.domain.flow_policy import ensure_transition
from quotation_engine.errors import ConflictError
from quotation_engine.infrastructure.repositories.base import BaseRepository


class QuotationRepository(BaseRepository):
    def create(
        self,
        db,
        *,
        title: str,
        status: str = "sent",
        deadline: str | None = None,
        notes: str | None = None,
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO quotations (title, status, deadline, notes, tenant_id)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
            """,
            (title, status, deadline, notes, self.tenant_id),
        )
        return self.returning_id(cursor)

    def add_supplier(self, db, *, quotation_id: int, supplier_id: int, token: str) -> int:
        cursor = db.execute(
            """
            INSERT INTO quotation_suppliers (quotation_id, supplier_id, token, status, tenant_id)
            VALUES (?, ?, ?, 'pending', ?)
            RETURNING id
            """,
            (quotation_id, supplier_id, token, self.tenant_id),
        )
        return self.returning_id(cursor)

    def add_item(self, db, *, quotation_id: int, item_id: int, quantity: str) -> int:
        cursor = db.execute(
            """
            INSERT INTO quotation_items (quotation_id, item_id, quantity, tenant_id)
            VALUES (?, ?, ?, ?)
            RETURNING id
            """,
            (quotation_id, item_id, quantity, self.tenant_id),
        )
        return self.returning_id(cursor)

    def get_by_id(self, db, quotation_id: int) -> dict | None:
        row = db.execute(
            """
            SELECT *
            FROM quotations
            WHERE id = ? AND tenant_id = ?
            LIMIT 1
            """,
            (quotation_id, self.tenant_id),
        ).fetchone()
        return dict(row) if row else None

    def list_summary(self, db, *, limit: int = 120) -> list[dict]:
        rows = db.execute(
            """
            SELECT
                q.id,
                q.title,
                q.status,
                q.deadline,
                q.created_at,
                q.updated_at,
                q.resolved_at,
                (SELECT COUNT(*) FROM quotation_suppliers qs WHERE qs.quotation_id = q.id) AS supplier_count,
                (
                    SELECT COUNT(*)
                    FROM quotation_suppliers qs
                    WHERE qs.quotation_id = q.id AND qs.status = 'responded'
                ) AS responded_count,
                (SELECT COUNT(*) FROM quotation_items qi WHERE qi.quotation_id = q.id) AS item_count
            FROM quotations q
            WHERE q.tenant_id = ?
            ORDER BY q.created_at DESC, q.id DESC
            LIMIT ?
            """,
            (self.tenant_id, int(limit)),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def list_suppliers(self, db, quotation_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT
                qs.id,
                qs.quotation_id,
                qs.supplier_id,
                qs.token,
                qs.status,
                qs.responded_at,
                qs.notes,
                s.name AS supplier_name,
                s.phone AS supplier_phone
            FROM quotation_suppliers qs
            JOIN suppliers s ON s.id = qs.supplier_id
            WHERE qs.quotation_id = ? AND qs.tenant_id = ?
            ORDER BY qs.id ASC
            """,
            (quotation_id, self.tenant_id),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def list_items(self, db, quotation_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT
                qi.id,
                qi.quotation_id,
                qi.item_id,
                qi.quantity,
                qi.winner_supplier_id,
                i.name AS item_name,
                i.unit_type
            FROM quotation_items qi
            JOIN inventory_items i ON i.id = qi.item_id
            WHERE qi.quotation_id = ? AND qi.tenant_id = ?
            ORDER BY qi.id ASC
            """,
            (quotation_id, self.tenant_id),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def update_status(self, db, quotation_id: int, status: str, *, from_status: str) -> None:
        ensure_transition(from_status, status)
        cursor = db.execute(
            """
            UPDATE quotations
            SET status = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ? AND tenant_id = ? AND status = ?
            """,
            (status, quotation_id, self.tenant_id, from_status),
        )
        self._ensure_written(cursor, quotation_id, from_status)

    def mark_resolved(self, db, quotation_id: int, *, from_status: str, resolved_at: str) -> None:
        ensure_transition(from_status, "resolved")
        cursor = db.execute(
            """
            UPDATE quotations
            SET status = 'resolved', resolved_at = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ? AND tenant_id = ? AND status = ?
            """,
            (resolved_at, quotation_id, self.tenant_id, from_status),
        )
        self._ensure_written(cursor, quotation_id, from_status)

    @staticmethod
    def _ensure_written(cursor, quotation_id: int, from_status: str) -> None:
        # Zero rows means the stored status is no longer the one the caller read.
        if int(getattr(cursor, "rowcount", 0) or 0) == 0:
            raise ConflictError(
                code="quotation_status_changed",
                payload={"quotation_id": quotation_id, "expected_status": from_status},
            )

    def set_item_winner(self, db, quotation_item_id: int, supplier_id: int) -> None:
        db.execute(
            """
            UPDATE quotation_items
            SET winner_supplier_id = ?
            WHERE id = ? AND tenant_id = ?
            """,
            (supplier_id, quotation_item_id, self.tenant_id),
        )

    def delete(self, db, quotation_id: int) -> None:
        params = (quotation_id, self.tenant_id)
        db.execute(
            """
            DELETE FROM quotation_contested_items
            WHERE quotation_supplier_id IN (
                SELECT id FROM quotation_suppliers WHERE quotation_id = ? AND tenant_id = ?
            )
            """,
            params,
        )
        db.execute(
            """
            DELETE FROM quotation_prices
            WHERE quotation_supplier_id IN (
                SELECT id FROM quotation_suppliers WHERE quotation_id = ? AND tenant_id = ?
            )
            """,
            params,
        )
        db.execute("DELETE FROM quotation_items WHERE quotation_id = ? AND tenant_id = ?", params)
        db.execute("DELETE FROM quotation_suppliers WHERE quotation_id = ? AND tenant_id = ?", params)
        db.execute("DELETE FROM quotations WHERE id = ? AND tenant_id = ?", params)
