from __future__ import annotations

from quotation_engine.infrastructure.repositories.base import BaseRepository


_PRICE_COLUMNS = """
    qp.id,
    qp.quotation_item_id,
    qp.quotation_supplier_id,
    qp.unit_price,
    qp.brand,
    qp.notes,
    qp.round,
    qp.created_at
"""


class QuotationPriceRepository(BaseRepository):
    """Append-only price history; a new round never overwrites an old one."""

    def list_for_quotation(self, db, quotation_id: int) -> list[dict]:
        rows = db.execute(
            f"""
            SELECT {_PRICE_COLUMNS}
            FROM quotation_prices qp
            JOIN quotation_items qi ON qi.id = qp.quotation_item_id
            WHERE qi.quotation_id = ? AND qp.tenant_id = ?
            ORDER BY qp.round DESC, qp.id DESC
            """,
            (quotation_id, self.tenant_id),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def list_for_supplier(self, db, quotation_supplier_id: int) -> list[dict]:
        rows = db.execute(
            f"""
            SELECT {_PRICE_COLUMNS}
            FROM quotation_prices qp
            WHERE qp.quotation_supplier_id = ? AND qp.tenant_id = ?
            ORDER BY qp.round DESC, qp.id DESC
            """,
            (quotation_supplier_id, self.tenant_id),
        ).fetchall()
        return self.rows_to_dicts(rows)

    def next_round(self, db, *, quotation_item_id: int, quotation_supplier_id: int) -> int:
        row = db.execute(
            """
            SELECT COALESCE(MAX(round), 0) AS last_round
            FROM quotation_prices
            WHERE quotation_item_id = ? AND quotation_supplier_id = ? AND tenant_id = ?
            """,
            (quotation_item_id, quotation_supplier_id, self.tenant_id),
        ).fetchone()
        return int(row["last_round"] or 0) + 1

    def insert(
        self,
        db,
        *,
        quotation_item_id: int,
        quotation_supplier_id: int,
        unit_price: str,
        round_number: int,
        brand: str | None = None,
        notes: str | None = None,
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO quotation_prices (
                quotation_item_id, quotation_supplier_id, unit_price, brand, notes, round, tenant_id
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (quotation_item_id, quotation_supplier_id, unit_price, brand, notes, round_number, self.tenant_id),
        )
        return self.returning_id(cursor)
