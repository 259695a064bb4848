from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(value) -> str | None:
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    return parsed.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def parse_datetime(value) -> datetime | None:
    """Accepts datetimes, ISO strings and SQLite CURRENT_TIMESTAMP text (UTC)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        normalized = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def token_expires_at(
    quotation: dict,
    *,
    grace_days: int = 0,
    resolved_ttl_days: int = 7,
) -> datetime | None:
    """A supplier link dies at the end of the deadline day (plus grace) or some days after resolution."""
    candidates = []
    deadline = parse_date(quotation.get("deadline"))
    if deadline is not None:
        last_day = deadline + timedelta(days=max(0, int(grace_days)) + 1)
        candidates.append(datetime.combine(last_day, time.min, tzinfo=timezone.utc))
    resolved_at = parse_datetime(quotation.get("resolved_at"))
    if resolved_at is not None:
        candidates.append(resolved_at + timedelta(days=max(0, int(resolved_ttl_days))))
    return min(candidates) if candidates else None


def token_is_expired(
    quotation: dict,
    *,
    now: datetime | None = None,
    grace_days: int = 0,
    resolved_ttl_days: int = 7,
) -> bool:
    expires_at = token_expires_at(quotation, grace_days=grace_days, resolved_ttl_days=resolved_ttl_days)
    if expires_at is None:
        return False
    return (now or utc_now()) >= expires_at
