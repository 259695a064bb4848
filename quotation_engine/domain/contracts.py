from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Tuple

from quotation_engine.errors import ValidationError


@dataclass(frozen=True)
class ServiceOutput:
    payload: Dict[str, Any]
    status_code: int = 200


def parse_positive_int(value) -> int | None:
    if isinstance(value, bool) or value in (None, ""):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


# Mirrors the NUMERIC(14, 4) and NUMERIC(14, 3) columns.
PRICE_PLACES = 4
PRICE_LIMIT = Decimal("1e10")
QUANTITY_PLACES = 3
QUANTITY_LIMIT = Decimal("1e11")


def parse_decimal(
    value,
    *,
    code: str,
    places: int | None = None,
    limit: Decimal | None = None,
) -> Decimal | None:
    """Empty values are None; anything else must be a finite number.

    With ``places`` and ``limit`` the value must also fit the column it is
    stored in, so what is read back equals what was sent.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
        if not value:
            return None
    try:
        parsed = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(code=code, payload={"value": str(value)})
    if not parsed.is_finite():
        raise ValidationError(code=code, payload={"value": str(value)})
    if limit is not None and abs(parsed) >= limit:
        raise ValidationError(code=code, payload={"value": str(value), "limit": str(limit)})
    if places is not None and parsed.normalize().as_tuple().exponent < -places:
        raise ValidationError(code=code, payload={"value": str(value), "max_places": places})
    return parsed


def _parse_deadline(raw: str) -> date:
    """Accepts a calendar date or a full ISO timestamp, nothing in between."""
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError(code="deadline_invalid", payload={"deadline": raw})


def _optional_text(value) -> str | None:
    text = str(value or "").strip()
    return text or None


def _id_list(raw, *, field_name: str) -> List[int]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError(payload={"field": field_name})
    parsed: List[int] = []
    for value in raw:
        item_id = parse_positive_int(value)
        if item_id is None:
            raise ValidationError(payload={"field": field_name, "value": str(value)})
        parsed.append(item_id)
    return parsed


@dataclass(frozen=True)
class QuotationItemInput:
    item_id: int
    quantity: Decimal


@dataclass(frozen=True)
class QuotationCreateInput:
    title: str
    supplier_ids: List[int]
    items: List[QuotationItemInput]
    deadline: date | None = None
    notes: str | None = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], *, today: date) -> "QuotationCreateInput":
        title = str(payload.get("title") or "").strip()
        if not title:
            raise ValidationError(code="title_required")

        deadline = None
        raw_deadline = str(payload.get("deadline") or "").strip()
        if raw_deadline:
            deadline = _parse_deadline(raw_deadline)
            if deadline < today:
                raise ValidationError(code="deadline_in_past", payload={"deadline": raw_deadline})

        supplier_ids = list(dict.fromkeys(_id_list(payload.get("supplier_ids"), field_name="supplier_ids")))

        raw_items = payload.get("items")
        if raw_items is None:
            raw_items = []
        if not isinstance(raw_items, list):
            raise ValidationError(payload={"field": "items"})
        items: List[QuotationItemInput] = []
        seen: set[int] = set()
        for raw_item in raw_items:
            raw_item = raw_item if isinstance(raw_item, dict) else {}
            item_id = parse_positive_int(raw_item.get("item_id"))
            if item_id is None:
                raise ValidationError(payload={"field": "items.item_id", "value": str(raw_item.get("item_id"))})
            quantity = parse_decimal(
                raw_item.get("quantity"),
                code="quantity_invalid",
                places=QUANTITY_PLACES,
                limit=QUANTITY_LIMIT,
            )
            if quantity is None or quantity <= 0:
                raise ValidationError(code="quantity_invalid", payload={"item_id": item_id})
            if item_id in seen:
                raise ValidationError(code="item_duplicated", payload={"item_id": item_id})
            seen.add(item_id)
            items.append(QuotationItemInput(item_id=item_id, quantity=quantity))

        return cls(
            title=title,
            supplier_ids=supplier_ids,
            items=items,
            deadline=deadline,
            notes=_optional_text(payload.get("notes")),
        )


@dataclass(frozen=True)
class PriceLineInput:
    quotation_item_id: int
    unit_price: Decimal | None
    brand: str | None = None
    notes: str | None = None

    @property
    def accepted(self) -> bool:
        return self.unit_price is not None and self.unit_price > 0


@dataclass(frozen=True)
class PriceSubmissionInput:
    quotation_supplier_id: int
    prices: List[PriceLineInput]
    general_notes: str | None = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PriceSubmissionInput":
        quotation_supplier_id = parse_positive_int(payload.get("quotation_supplier_id"))
        if quotation_supplier_id is None:
            raise ValidationError(payload={"field": "quotation_supplier_id"})

        raw_prices = payload.get("prices")
        if not isinstance(raw_prices, list):
            raise ValidationError(code="prices_required")

        lines: List[PriceLineInput] = []
        for raw_line in raw_prices:
            raw_line = raw_line if isinstance(raw_line, dict) else {}
            quotation_item_id = parse_positive_int(raw_line.get("quotation_item_id", raw_line.get("item_id")))
            if quotation_item_id is None:
                raise ValidationError(code="quotation_item_id_required")
            lines.append(
                PriceLineInput(
                    quotation_item_id=quotation_item_id,
                    unit_price=parse_decimal(
                        raw_line.get("unit_price"),
                        code="unit_price_invalid",
                        places=PRICE_PLACES,
                        limit=PRICE_LIMIT,
                    ),
                    brand=_optional_text(raw_line.get("brand")),
                    notes=_optional_text(raw_line.get("notes")),
                )
            )
        return cls(
            quotation_supplier_id=quotation_supplier_id,
            prices=lines,
            general_notes=_optional_text(payload.get("general_notes")),
        )

    def accepted_lines(self) -> List[PriceLineInput]:
        return [line for line in self.prices if line.accepted]


@dataclass(frozen=True)
class ContestInput:
    quotation_id: int
    supplier_id: int
    item_ids: Tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, quotation_id: int, supplier_id: int, payload: Dict[str, Any]) -> "ContestInput":
        item_ids = _id_list(payload.get("item_ids"), field_name="item_ids")
        return cls(
            quotation_id=quotation_id,
            supplier_id=supplier_id,
            item_ids=tuple(dict.fromkeys(item_ids)),
        )
