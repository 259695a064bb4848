from __future__ import annotations

from quotation_engine.infrastructure.repositories.base import BaseRepository


class StatusEventRepository(BaseRepository):
    def record(
        self,
        db,
        *,
        entity: str,
        entity_id: int,
        from_status: str | None,
        to_status: str,
        reason: str | None = None,
    ) -> None:
        db.execute(
            """
            INSERT INTO status_events (entity, entity_id, from_status, to_status, reason, tenant_id)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (entity, entity_id, from_status, to_status, reason, self.tenant_id),
        )

    def list_for_entity(self, db, *, entity: str, entity_id: int) -> list[dict]:
        rows = db.execute(
            """
            SELECT from_status, to_status, reason, created_at
            FROM status_events
            WHERE entity = ? AND entity_id = ? AND tenant_id = ?
            ORDER BY id ASC
            """,
            (entity, entity_id, self.tenant_id),
        ).fetchall()
        return self.rows_to_dicts(rows)
