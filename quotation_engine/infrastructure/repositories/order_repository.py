from __future__ import annotations

from typing import Dict, List

from quotation_engine.infrastructure.repositories.base import BaseRepository


class OrderRepository(BaseRepository):
    def create(
        self,
        db,
        *,
        supplier_id: int,
        quotation_id: int,
        notes: str | None = None,
        status: str = "draft",
    ) -> int:
        cursor = db.execute(
            """
            INSERT INTO orders (supplier_id, quotation_id, status, notes, tenant_id)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
            """,
            (supplier_id, quotation_id, status, notes, self.tenant_id),
        )
        return self.returning_id(cursor)

    def add_item(self, db, *, order_id: int, item_id: int, quantity: str) -> None:
        db.execute(
            """
            INSERT INTO order_items (order_id, item_id, quantity, tenant_id)
            VALUES (?, ?, ?, ?)
            """,
            (order_id, item_id, quantity, self.tenant_id),
        )

    def list_by_quotation(self, db, quotation_id: int) -> list[dict]:
        orders = self.rows_to_dicts(
            db.execute(
                """
                SELECT o.id, o.supplier_id, o.quotation_id, o.status, o.notes, o.created_at, s.name AS supplier_name
                FROM orders o
                JOIN suppliers s ON s.id = o.supplier_id
                WHERE o.quotation_id = ? AND o.tenant_id = ?
                ORDER BY o.supplier_id ASC, o.id ASC
                """,
                (quotation_id, self.tenant_id),
            ).fetchall()
        )
        if not orders:
            return []

        order_ids = [int(order["id"]) for order in orders]
        item_rows = db.execute(
            f"""
            SELECT oi.order_id, oi.item_id, oi.quantity, i.name AS item_name
            FROM order_items oi
            JOIN inventory_items i ON i.id = oi.item_id
            WHERE oi.order_id IN ({self.placeholders(order_ids)}) AND oi.tenant_id = ?
            ORDER BY oi.id ASC
            """,
            self.scoped_params(order_ids),
        ).fetchall()
        items_by_order: Dict[int, List[dict]] = {order_id: [] for order_id in order_ids}
        for row in item_rows:
            items_by_order[int(row["order_id"])].append(dict(row))
        for order in orders:
            order["items"] = items_by_order.get(int(order["id"]), [])
        return orders
