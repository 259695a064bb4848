from __future__ import annotations

import threading
import time
from typing import Dict, Tuple

from flask import current_app, request

from quotation_engine.errors import ValidationError


PUBLIC_PATH_PREFIX = "/quotation-public"


class SimpleRateLimiter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, int]] = {}

    def allow(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
        now = time.monotonic()
        with self._lock:
            start, count = self._entries.get(key, (now, 0))
            if now - start >= window_seconds:
                start = now
                count = 0
            count += 1
            self._entries[key] = (start, count)
            if len(self._entries) > 10_000:
                cutoff = now - (window_seconds * 2)
                self._entries = {
                    cached_key: value
                    for cached_key, value in self._entries.items()
                    if value[0] >= cutoff
                }
            retry_after = max(0, int(window_seconds - (now - start)))
            return count <= limit, retry_after

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()


_RATE_LIMITER = SimpleRateLimiter()


def _is_public_path() -> bool:
    return request.path.startswith(PUBLIC_PATH_PREFIX)


def _rate_limit_key() -> str:
    ip = str(request.remote_addr or "").strip() or "unknown"
    if _is_public_path():
        # Token guessing spreads over many tokens, so the bucket ignores the query string.
        return f"{ip}|public"
    route = request.url_rule.rule if request.url_rule else request.path
    return f"{ip}|{request.method}|{route}"


def enforce_rate_limit() -> None:
    if not bool(current_app.config.get("RATE_LIMIT_ENABLED", True)):
        return
    if request.method == "OPTIONS":
        return

    window_seconds = max(1, int(current_app.config.get("RATE_LIMIT_WINDOW_SECONDS", 60) or 60))
    if _is_public_path():
        max_requests = max(1, int(current_app.config.get("PUBLIC_RATE_LIMIT_MAX_REQUESTS", 60) or 60))
    else:
        max_requests = max(1, int(current_app.config.get("RATE_LIMIT_MAX_REQUESTS", 300) or 300))
    allowed, retry_after = _RATE_LIMITER.allow(
        _rate_limit_key(),
        limit=max_requests,
        window_seconds=window_seconds,
    )
    if allowed:
        return

    raise ValidationError(
        code="rate_limit_exceeded",
        message_key="rate_limit_exceeded",
        http_status=429,
        critical=False,
        payload={"retry_after": retry_after},
    )


def apply_cors_headers(response):
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "authorization, x-client-info, apikey, content-type"
    return response


def apply_security_headers(response):
    if not bool(current_app.config.get("SECURITY_HEADERS_ENABLED", True)):
        return response
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer" if _is_public_path() else "strict-origin-when-cross-origin")
    response.headers.setdefault("Cache-Control", "no-store")
    if request.is_secure:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


def reset_rate_limiter_for_tests() -> None:
    _RATE_LIMITER.reset()
