from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from quotation_engine.domain.clock import iso_timestamp, parse_date
from quotation_engine.domain.flow_policy import flow_meta
from quotation_engine.domain.resolution import as_float, to_decimal
from quotation_engine.messages import status_label


def public_link(base_url: str, token: str) -> str:
    return f"{str(base_url or '').rstrip('/')}/quotation-public?token={token}"


def serialize_date(value) -> str | None:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def serialize_quotation(row: Mapping[str, Any]) -> Dict[str, Any]:
    status = row.get("status")
    payload = {
        "id": int(row["id"]),
        "title": row.get("title"),
        "status": status,
        "status_label": status_label("cotacao", status),
        "deadline": serialize_date(row.get("deadline")),
        "notes": row.get("notes"),
        "created_at": iso_timestamp(row.get("created_at")),
        "updated_at": iso_timestamp(row.get("updated_at")),
        "resolved_at": iso_timestamp(row.get("resolved_at")),
        "flow": flow_meta(status),
    }
    for counter in ("supplier_count", "responded_count", "item_count"):
        if counter in row:
            payload[counter] = int(row[counter] or 0)
    return payload


def serialize_supplier_link(row: Mapping[str, Any], *, base_url: str | None = None) -> Dict[str, Any]:
    status = row.get("status")
    payload = {
        "id": int(row["id"]),
        "supplier_id": int(row["supplier_id"]),
        "supplier": {
            "id": int(row["supplier_id"]),
            "name": row.get("supplier_name"),
            "phone": row.get("supplier_phone"),
        },
        "status": status,
        "status_label": status_label("fornecedor", status),
        "responded_at": iso_timestamp(row.get("responded_at")),
        "notes": row.get("notes"),
    }
    if base_url is not None:
        payload["token"] = row.get("token")
        payload["public_link"] = public_link(base_url, str(row.get("token") or ""))
    return payload


def serialize_item(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": int(row["id"]),
        "item_id": int(row["item_id"]),
        "quantity": as_float(to_decimal(row["quantity"])),
        "winner_supplier_id": int(row["winner_supplier_id"]) if row.get("winner_supplier_id") else None,
        "item": {
            "id": int(row["item_id"]),
            "name": row.get("item_name"),
            "unit_type": row.get("unit_type"),
        },
    }


def serialize_price(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": int(row["id"]),
        "quotation_item_id": int(row["quotation_item_id"]),
        "quotation_supplier_id": int(row["quotation_supplier_id"]),
        "unit_price": as_float(to_decimal(row["unit_price"])),
        "brand": row.get("brand"),
        "notes": row.get("notes"),
        "round": int(row["round"]),
        "created_at": iso_timestamp(row.get("created_at")),
    }


def serialize_prices(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize_price(row) for row in rows]


def serialize_order(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "id": int(row["id"]),
        "supplier_id": int(row["supplier_id"]),
        "supplier_name": row.get("supplier_name"),
        "quotation_id": int(row["quotation_id"]) if row.get("quotation_id") is not None else None,
        "status": row.get("status"),
        "notes": row.get("notes"),
        "created_at": iso_timestamp(row.get("created_at")),
        "items": [
            {
                "item_id": int(item["item_id"]),
                "item_name": item.get("item_name"),
                "quantity": as_float(to_decimal(item["quantity"])),
            }
            for item in row.get("items") or []
        ],
    }
