"""Winner selection and price comparison over submitted quotation prices.

Everything here is pure: callers load rows, these functions decide. A price
row is only ever appended, so the offer that counts for an (item, supplier)
pair is the one with the highest round.
"""
from __future__ import annotations

from collections import OrderedDict, defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def as_float(value) -> float | None:
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class PriceOffer:
    id: int
    quotation_item_id: int
    quotation_supplier_id: int
    unit_price: Decimal
    round: int = 1
    brand: str | None = None
    notes: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PriceOffer":
        return cls(
            id=int(row["id"]),
            quotation_item_id=int(row["quotation_item_id"]),
            quotation_supplier_id=int(row["quotation_supplier_id"]),
            unit_price=to_decimal(row["unit_price"]),
            round=int(row.get("round") or 1),
            brand=row.get("brand"),
            notes=row.get("notes"),
        )


@dataclass(frozen=True)
class ItemAward:
    quotation_item_id: int
    item_id: int
    quantity: Decimal
    quotation_supplier_id: int
    supplier_id: int
    unit_price: Decimal
    price_id: int

    @property
    def total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class ResolutionPlan:
    awards: Tuple[ItemAward, ...]
    unawarded_item_ids: Tuple[int, ...]

    def winners_by_item(self) -> Dict[int, int]:
        return {award.quotation_item_id: award.supplier_id for award in self.awards}

    def orders_by_supplier(self) -> "OrderedDict[int, List[ItemAward]]":
        grouped: Dict[int, List[ItemAward]] = defaultdict(list)
        for award in self.awards:
            grouped[award.supplier_id].append(award)
        return OrderedDict((supplier_id, grouped[supplier_id]) for supplier_id in sorted(grouped))


def current_offers(prices: Iterable[PriceOffer]) -> Dict[Tuple[int, int], PriceOffer]:
    latest: Dict[Tuple[int, int], PriceOffer] = {}
    for offer in prices:
        key = (offer.quotation_item_id, offer.quotation_supplier_id)
        existing = latest.get(key)
        if existing is None or (offer.round, offer.id) > (existing.round, existing.id):
            latest[key] = offer
    return latest


def offer_rank(offer: PriceOffer) -> Tuple[Decimal, int, int]:
    # Ties on price go to the offer recorded first.
    return (offer.unit_price, offer.id, offer.quotation_supplier_id)


def pick_winner(offers: Iterable[PriceOffer]) -> PriceOffer | None:
    return min(offers, key=offer_rank, default=None)


def _offers_by_item(
    prices: Iterable[PriceOffer],
    quotation_supplier_ids: Iterable[int],
) -> Dict[int, List[PriceOffer]]:
    allowed = set(quotation_supplier_ids)
    grouped: Dict[int, List[PriceOffer]] = defaultdict(list)
    for offer in current_offers(prices).values():
        if offer.quotation_supplier_id in allowed:
            grouped[offer.quotation_item_id].append(offer)
    return grouped


def plan_resolution(
    items: Sequence[Mapping[str, Any]],
    suppliers: Sequence[Mapping[str, Any]],
    prices: Iterable[PriceOffer],
) -> ResolutionPlan:
    """Pick the cheapest current offer per quotation item.

    ``items`` rows carry id, item_id and quantity; ``suppliers`` rows carry
    the quotation_supplier id and the catalog supplier_id.
    """
    supplier_by_link = {int(row["id"]): int(row["supplier_id"]) for row in suppliers}
    offers = _offers_by_item(prices, supplier_by_link.keys())

    awards: List[ItemAward] = []
    unawarded: List[int] = []
    for item in sorted(items, key=lambda row: int(row["id"])):
        quotation_item_id = int(item["id"])
        winner = pick_winner(offers.get(quotation_item_id, ()))
        if winner is None:
            unawarded.append(quotation_item_id)
            continue
        awards.append(
            ItemAward(
                quotation_item_id=quotation_item_id,
                item_id=int(item["item_id"]),
                quantity=to_decimal(item["quantity"]),
                quotation_supplier_id=winner.quotation_supplier_id,
                supplier_id=supplier_by_link[winner.quotation_supplier_id],
                unit_price=winner.unit_price,
                price_id=winner.id,
            )
        )
    return ResolutionPlan(awards=tuple(awards), unawarded_item_ids=tuple(unawarded))


def build_comparison(
    items: Sequence[Mapping[str, Any]],
    suppliers: Sequence[Mapping[str, Any]],
    prices: Iterable[PriceOffer],
) -> Dict[str, Any]:
    """Item x supplier matrix of current offers.

    Savings add up, per item with at least two offers, the gap between the
    highest and the lowest unit price times the quantity.
    """
    ordered_suppliers = sorted(suppliers, key=lambda row: int(row["id"]))
    supplier_by_link = {int(row["id"]): row for row in ordered_suppliers}
    latest = {
        key: offer
        for key, offer in current_offers(prices).items()
        if offer.quotation_supplier_id in supplier_by_link
    }

    rows: List[Dict[str, Any]] = []
    savings = Decimal("0")
    for item in sorted(items, key=lambda row: int(row["id"])):
        quotation_item_id = int(item["id"])
        quantity = to_decimal(item["quantity"])
        cells = []
        item_offers: List[PriceOffer] = []
        for link in ordered_suppliers:
            offer = latest.get((quotation_item_id, int(link["id"])))
            if offer is not None:
                item_offers.append(offer)
            cells.append(
                {
                    "quotation_supplier_id": int(link["id"]),
                    "supplier_id": int(link["supplier_id"]),
                    "supplier_name": link.get("supplier_name"),
                    "unit_price": as_float(offer.unit_price) if offer else None,
                    "total": as_float(offer.unit_price * quantity) if offer else None,
                    "brand": offer.brand if offer else None,
                    "notes": offer.notes if offer else None,
                    "round": offer.round if offer else None,
                }
            )

        winner = pick_winner(item_offers)
        offered_prices = [offer.unit_price for offer in item_offers]
        if len(offered_prices) >= 2:
            savings += (max(offered_prices) - min(offered_prices)) * quantity
        rows.append(
            {
                "quotation_item_id": quotation_item_id,
                "item_id": int(item["item_id"]),
                "item_name": item.get("item_name"),
                "unit_type": item.get("unit_type"),
                "quantity": as_float(quantity),
                "min_price": as_float(min(offered_prices)) if offered_prices else None,
                "max_price": as_float(max(offered_prices)) if offered_prices else None,
                "winner_quotation_supplier_id": winner.quotation_supplier_id if winner else None,
                "winner_supplier_id": (
                    int(supplier_by_link[winner.quotation_supplier_id]["supplier_id"]) if winner else None
                ),
                "offers": cells,
            }
        )
    return {"items": rows, "savings": as_float(savings)}


def outbid_item_ids(
    quotation_supplier_id: int,
    prices: Iterable[PriceOffer],
) -> List[int]:
    """Quotation items where this supplier's current price loses to someone else's."""
    own: Dict[int, Decimal] = {}
    best_other: Dict[int, Decimal] = {}
    for offer in current_offers(prices).values():
        if offer.quotation_supplier_id == quotation_supplier_id:
            own[offer.quotation_item_id] = offer.unit_price
            continue
        current = best_other.get(offer.quotation_item_id)
        if current is None or offer.unit_price < current:
            best_other[offer.quotation_item_id] = offer.unit_price
    return sorted(
        item_id
        for item_id, price in own.items()
        if item_id in best_other and price > best_other[item_id]
    )
