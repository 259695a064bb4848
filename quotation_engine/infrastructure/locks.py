from __future__ import annotations

from quotation_engine.db import LockKey


QUOTATION_LOCK_NAMESPACE = 4101


def quotation_lock(quotation_id: int) -> LockKey:
    return (QUOTATION_LOCK_NAMESPACE, int(quotation_id))
