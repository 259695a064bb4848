from __future__ import annotations

from typing import Any, Iterable, Sequence


class TenantScopeRequiredError(ValueError):
    """Raised when a repository is instantiated without tenant scope."""


class BaseRepository:
    def __init__(self, *, tenant_id: str | None = None) -> None:
        scope = str(tenant_id or "").strip()
        if not scope:
            raise TenantScopeRequiredError("tenant_id is required for repository access")
        self.tenant_id = scope

    def scoped_params(self, params: Iterable[Any] | None = None) -> tuple[Any, ...]:
        values = tuple(params or ())
        return (*values, self.tenant_id)

    @staticmethod
    def placeholders(values: Sequence[Any]) -> str:
        return ",".join("?" for _ in values)

    @staticmethod
    def returning_id(cursor) -> int:
        # fetchall drains the statement so SQLite can COMMIT right after.
        rows = cursor.fetchall()
        row = rows[0]
        return int(row["id"] if isinstance(row, dict) else row[0])

    @staticmethod
    def rows_to_dicts(rows: Iterable[Any]) -> list[dict]:
        return [dict(row) for row in rows]
