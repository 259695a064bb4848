from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List

from quotation_engine.application.serializers import serialize_date, serialize_item, serialize_prices
from quotation_engine.core.event_bus import EventBus, QuotationPricesSubmitted, get_event_bus
from quotation_engine.domain.clock import iso_timestamp, token_is_expired, utc_now
from quotation_engine.domain.contracts import PriceSubmissionInput, ServiceOutput
from quotation_engine.domain.flow_policy import action_allowed
from quotation_engine.domain.resolution import PriceOffer, current_offers, outbid_item_ids
from quotation_engine.errors import ConflictError, ValidationError, invalid_token_error
from quotation_engine.infrastructure.locks import quotation_lock
from quotation_engine.infrastructure.repositories import (
    CatalogRepository,
    QuotationPriceRepository,
    QuotationRepository,
    QuotationSupplierRepository,
    StatusEventRepository,
)
from quotation_engine.messages import success_message
from quotation_engine.observability import observe_price_submission


class PublicResponseGateway:
    """Token-authenticated entry point for suppliers answering a quotation."""

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._event_bus = event_bus
        self._logger = logging.getLogger("quotation_engine")

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus or get_event_bus()

    def _load_link(
        self,
        db,
        token: str | None,
        *,
        now: datetime,
        grace_days: int,
        resolved_ttl_days: int,
    ) -> tuple[dict, dict]:
        normalized = str(token or "").strip()
        if not normalized:
            raise invalid_token_error()
        link = QuotationSupplierRepository.find_by_token(db, normalized)
        if not link:
            raise invalid_token_error()
        quotation = QuotationRepository(tenant_id=str(link["tenant_id"])).get_by_id(db, int(link["quotation_id"]))
        if not quotation:
            raise invalid_token_error()
        if token_is_expired(quotation, now=now, grace_days=grace_days, resolved_ttl_days=resolved_ttl_days):
            raise invalid_token_error()
        return link, quotation

    def fetch_by_token(
        self,
        db,
        *,
        token: str | None,
        now: datetime | None = None,
        grace_days: int = 0,
        resolved_ttl_days: int = 7,
    ) -> ServiceOutput:
        link, quotation = self._load_link(
            db,
            token,
            now=now or utc_now(),
            grace_days=grace_days,
            resolved_ttl_days=resolved_ttl_days,
        )
        tenant_id = str(link["tenant_id"])
        quotation_id = int(quotation["id"])
        quotation_supplier_id = int(link["id"])
        supplier_repo = QuotationSupplierRepository(tenant_id=tenant_id)
        price_repo = QuotationPriceRepository(tenant_id=tenant_id)

        supplier = CatalogRepository(tenant_id=tenant_id).get_supplier(db, int(link["supplier_id"])) or {}
        items = QuotationRepository(tenant_id=tenant_id).list_items(db, quotation_id)
        own_rows = price_repo.list_for_supplier(db, quotation_supplier_id)
        own_offers = [PriceOffer.from_row(row) for row in own_rows]
        current_ids = {offer.id for offer in current_offers(own_offers).values()}

        contested_item_ids = supplier_repo.list_contested_item_ids(db, quotation_supplier_id)
        if not contested_item_ids and link["status"] == "contested":
            all_offers = [PriceOffer.from_row(row) for row in price_repo.list_for_quotation(db, quotation_id)]
            contested_item_ids = outbid_item_ids(quotation_supplier_id, all_offers)

        existing_prices = serialize_prices(own_rows)
        return ServiceOutput(
            payload={
                "quotation_supplier_id": quotation_supplier_id,
                "supplier_name": supplier.get("name"),
                "quotation_title": quotation["title"],
                "quotation_status": quotation["status"],
                "deadline": serialize_date(quotation.get("deadline")),
                "supplier_status": link["status"],
                "items": [serialize_item(item) for item in items],
                "existing_prices": existing_prices,
                "current_prices": [price for price in existing_prices if price["id"] in current_ids],
                "contested_item_ids": contested_item_ids,
            },
            status_code=200,
        )

    def submit_by_token(
        self,
        db,
        *,
        token: str | None,
        submission: PriceSubmissionInput,
        now: datetime | None = None,
        grace_days: int = 0,
        resolved_ttl_days: int = 7,
    ) -> ServiceOutput:
        now = now or utc_now()
        link, quotation = self._load_link(
            db,
            token,
            now=now,
            grace_days=grace_days,
            resolved_ttl_days=resolved_ttl_days,
        )
        if int(link["id"]) != int(submission.quotation_supplier_id):
            raise invalid_token_error()

        tenant_id = str(link["tenant_id"])
        quotation_id = int(quotation["id"])
        quotation_supplier_id = int(link["id"])
        quotation_repo = QuotationRepository(tenant_id=tenant_id)
        supplier_repo = QuotationSupplierRepository(tenant_id=tenant_id)
        price_repo = QuotationPriceRepository(tenant_id=tenant_id)
        status_events = StatusEventRepository(tenant_id=tenant_id)

        saved: List[Dict[str, object]] = []
        # Exclusive per quotation: the all-responded check must see every other
        # supplier's committed response, and a resolution may have won the race.
        with db.transaction(exclusive_keys=[quotation_lock(quotation_id)]):
            quotation = quotation_repo.get_by_id(db, quotation_id)
            if not quotation:
                raise invalid_token_error()
            if not action_allowed(quotation["status"], "submit_prices"):
                raise ConflictError(code="quotation_closed", payload={"status": quotation["status"]})

            item_ids = {int(item["id"]) for item in quotation_repo.list_items(db, quotation_id)}
            unknown = sorted({line.quotation_item_id for line in submission.prices} - item_ids)
            if unknown:
                raise ValidationError(code="quotation_item_not_found", payload={"quotation_item_ids": unknown})

            for line in submission.accepted_lines():
                round_number = price_repo.next_round(
                    db,
                    quotation_item_id=line.quotation_item_id,
                    quotation_supplier_id=quotation_supplier_id,
                )
                price_id = price_repo.insert(
                    db,
                    quotation_item_id=line.quotation_item_id,
                    quotation_supplier_id=quotation_supplier_id,
                    unit_price=str(line.unit_price),
                    round_number=round_number,
                    brand=line.brand,
                    notes=line.notes,
                )
                saved.append(
                    {
                        "id": price_id,
                        "quotation_item_id": line.quotation_item_id,
                        "unit_price": float(line.unit_price),
                        "round": round_number,
                    }
                )

            current_link = supplier_repo.get_by_id(db, quotation_supplier_id) or link
            supplier_repo.mark_responded(
                db,
                quotation_supplier_id,
                responded_at=iso_timestamp(now),
                notes=submission.general_notes,
            )
            if current_link["status"] != "responded":
                status_events.record(
                    db,
                    entity="quotation_supplier",
                    entity_id=quotation_supplier_id,
                    from_status=current_link["status"],
                    to_status="responded",
                    reason="prices_submitted",
                )
            supplier_repo.clear_contested_items(
                db,
                quotation_supplier_id,
                [int(price["quotation_item_id"]) for price in saved],
            )

            quotation_status = quotation["status"]
            if quotation_status in {"sent", "contested"} and supplier_repo.all_responded(db, quotation_id):
                quotation_repo.update_status(db, quotation_id, "comparing", from_status=quotation_status)
                status_events.record(
                    db,
                    entity="quotation",
                    entity_id=quotation_id,
                    from_status=quotation_status,
                    to_status="comparing",
                    reason="all_suppliers_responded",
                )
                quotation_status = "comparing"

        observe_price_submission(len(saved), len(submission.prices) - len(saved))
        self._logger.info(
            "quotation_prices_submitted",
            extra={
                "tenant_id": tenant_id,
                "quotation_id": quotation_id,
                "quotation_supplier_id": quotation_supplier_id,
                "prices_saved": len(saved),
                "prices_dropped": len(submission.prices) - len(saved),
                "quotation_status": quotation_status,
            },
        )
        self.event_bus.publish(
            QuotationPricesSubmitted(
                tenant_id=tenant_id,
                quotation_id=quotation_id,
                quotation_supplier_id=quotation_supplier_id,
                supplier_id=int(link["supplier_id"]),
                prices_saved=len(saved),
                quotation_status=quotation_status,
            )
        )
        return ServiceOutput(
            payload={
                "success": True,
                "message": success_message("prices_submitted"),
                "status": "responded",
                "quotation_supplier_id": quotation_supplier_id,
                "quotation_status": quotation_status,
                "prices_saved": len(saved),
                "prices_dropped": len(submission.prices) - len(saved),
                "prices": saved,
            },
            status_code=200,
        )
