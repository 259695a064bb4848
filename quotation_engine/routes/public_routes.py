from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from quotation_engine.application.public_response_service import PublicResponseGateway
from quotation_engine.db import get_db
from quotation_engine.domain.contracts import PriceSubmissionInput
from quotation_engine.errors import ValidationError
from quotation_engine.security import PUBLIC_PATH_PREFIX, apply_cors_headers


public_bp = Blueprint("quotation_public", __name__)

_PUBLIC_GATEWAY = PublicResponseGateway()


def _token_settings() -> dict:
    return {
        "grace_days": int(current_app.config.get("QUOTATION_TOKEN_GRACE_DAYS", 0) or 0),
        "resolved_ttl_days": int(current_app.config.get("QUOTATION_RESOLVED_TOKEN_TTL_DAYS", 7) or 0),
    }


@public_bp.after_request
def _public_cors(response):
    return apply_cors_headers(response)


@public_bp.route(PUBLIC_PATH_PREFIX, methods=["OPTIONS"])
def public_preflight():
    return "", 204


@public_bp.route(PUBLIC_PATH_PREFIX, methods=["GET"])
def public_fetch():
    output = _PUBLIC_GATEWAY.fetch_by_token(get_db(), token=request.args.get("token"), **_token_settings())
    return jsonify(output.payload), output.status_code


@public_bp.route(PUBLIC_PATH_PREFIX, methods=["POST"])
def public_submit():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError(payload={"field": "body"})
    submission = PriceSubmissionInput.from_payload(payload)
    output = _PUBLIC_GATEWAY.submit_by_token(
        get_db(),
        token=request.args.get("token"),
        submission=submission,
        **_token_settings(),
    )
    return jsonify(output.payload), output.status_code
