from __future__ import annotations

from typing import Any, Dict

from quotation_engine.messages import error_message


class AppError(Exception):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        self.code = (code or self.default_code).strip()
        self.message_key = (message_key or code or self.default_message_key).strip()
        self.http_status = int(http_status or self.default_http_status)
        self.critical = bool(self.default_critical if critical is None else critical)
        self.details = (details or "").strip() or None
        self.payload = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        fallback = error_message("unexpected_error", "Nao foi possivel concluir a operacao.")
        return error_message(self.message_key, fallback)

    def to_response_payload(self, request_id: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": self.code,
            "message": self.user_message(),
            "request_id": request_id,
        }
        if self.payload:
            payload.update(self.payload)
        return payload


class UserActionError(AppError):
    default_code = "action_invalid"
    default_message_key = "validation_error"
    default_http_status = 400
    default_critical = False


class ValidationError(UserActionError):
    """Non-positive price, malformed or missing required field."""

    default_code = "validation_error"
    default_message_key = "validation_error"
    default_http_status = 400


class NotFoundError(UserActionError):
    """Bad token, unknown quotation, supplier or item id."""

    default_code = "not_found"
    default_message_key = "quotation_not_found"
    default_http_status = 404


class ConflictError(UserActionError):
    """Empty supplier/item list at creation, operation not allowed for the current status."""

    default_code = "conflict"
    default_message_key = "action_not_allowed_for_status"
    default_http_status = 409


class SystemError(AppError):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True


def invalid_token_error() -> NotFoundError:
    # Same error for every failed lookup so the public link is not an oracle.
    return NotFoundError(code="invalid_token", message_key="invalid_token")
