from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from quotation_engine.application.quotation_service import QuotationService
from quotation_engine.db import get_db
from quotation_engine.domain.clock import utc_now
from quotation_engine.domain.contracts import ContestInput, QuotationCreateInput, ServiceOutput
from quotation_engine.errors import ValidationError
from quotation_engine.tenant import scoped_tenant_id


quotation_bp = Blueprint("quotations", __name__, url_prefix="/api/quotations")

_QUOTATION_SERVICE = QuotationService()


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError(payload={"field": "body"})
    return payload


def _respond(output: ServiceOutput):
    return jsonify(output.payload), output.status_code


def _public_base_url() -> str:
    configured = str(current_app.config.get("QUOTATION_PUBLIC_BASE_URL") or "").strip()
    return configured or request.url_root


@quotation_bp.route("", methods=["POST"])
def create_quotation():
    create_input = QuotationCreateInput.from_payload(_json_body(), today=utc_now().date())
    output = _QUOTATION_SERVICE.create_quotation(
        get_db(),
        tenant_id=scoped_tenant_id(),
        create_input=create_input,
    )
    return _respond(output)


@quotation_bp.route("", methods=["GET"])
def list_quotations():
    limit = request.args.get("limit", type=int) or 120
    output = _QUOTATION_SERVICE.list_quotations(
        get_db(),
        tenant_id=scoped_tenant_id(),
        limit=max(1, min(limit, 500)),
    )
    return _respond(output)


@quotation_bp.route("/<int:quotation_id>", methods=["GET"])
def get_quotation(quotation_id: int):
    output = _QUOTATION_SERVICE.get_quotation(
        get_db(),
        tenant_id=scoped_tenant_id(),
        quotation_id=quotation_id,
        public_base_url=_public_base_url(),
    )
    return _respond(output)


@quotation_bp.route("/<int:quotation_id>/prices", methods=["GET"])
def quotation_prices(quotation_id: int):
    output = _QUOTATION_SERVICE.fetch_prices(get_db(), tenant_id=scoped_tenant_id(), quotation_id=quotation_id)
    return _respond(output)


@quotation_bp.route("/<int:quotation_id>/comparison", methods=["GET"])
def quotation_comparison(quotation_id: int):
    output = _QUOTATION_SERVICE.compare(get_db(), tenant_id=scoped_tenant_id(), quotation_id=quotation_id)
    return _respond(output)


@quotation_bp.route("/<int:quotation_id>/suppliers/<int:supplier_id>/contest", methods=["POST"])
def contest_supplier(quotation_id: int, supplier_id: int):
    contest_input = ContestInput.from_payload(quotation_id, supplier_id, _json_body())
    output = _QUOTATION_SERVICE.contest_supplier(
        get_db(),
        tenant_id=scoped_tenant_id(),
        contest_input=contest_input,
    )
    return _respond(output)


@quotation_bp.route("/<int:quotation_id>/resolution-preview", methods=["GET"])
def resolution_preview(quotation_id: int):
    output = _QUOTATION_SERVICE.preview_resolution(
        get_db(),
        tenant_id=scoped_tenant_id(),
        quotation_id=quotation_id,
    )
    return _respond(output)


@quotation_bp.route("/<int:quotation_id>/resolve", methods=["POST"])
def resolve_quotation(quotation_id: int):
    output = _QUOTATION_SERVICE.resolve_quotation(
        get_db(),
        tenant_id=scoped_tenant_id(),
        quotation_id=quotation_id,
    )
    return _respond(output)


@quotation_bp.route("/<int:quotation_id>", methods=["DELETE"])
def delete_quotation(quotation_id: int):
    output = _QUOTATION_SERVICE.delete_quotation(get_db(), tenant_id=scoped_tenant_id(), quotation_id=quotation_id)
    return _respond(output)
