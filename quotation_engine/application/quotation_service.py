from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Callable

from quotation_engine.application.contestation_service import ContestationController
from quotation_engine.application.resolution_service import ResolutionEngine
from quotation_engine.application.serializers import (
    serialize_item,
    serialize_order,
    serialize_prices,
    serialize_quotation,
    serialize_supplier_link,
)
from quotation_engine.core.event_bus import EventBus, QuotationCreated, get_event_bus
from quotation_engine.domain.clock import iso_timestamp
from quotation_engine.domain.contracts import ContestInput, QuotationCreateInput, ServiceOutput
from quotation_engine.domain.flow_policy import ensure_action_allowed
from quotation_engine.domain.resolution import PriceOffer, build_comparison
from quotation_engine.errors import ConflictError, NotFoundError
from quotation_engine.infrastructure.locks import quotation_lock
from quotation_engine.infrastructure.repositories import (
    CatalogRepository,
    OrderRepository,
    QuotationPriceRepository,
    QuotationRepository,
    StatusEventRepository,
)
from quotation_engine.messages import success_message


def generate_token() -> str:
    return secrets.token_urlsafe(24)


class QuotationService:
    def __init__(
        self,
        contestation: ContestationController | None = None,
        resolution: ResolutionEngine | None = None,
        event_bus: EventBus | None = None,
        token_factory: Callable[[], str] = generate_token,
    ) -> None:
        self.contestation = contestation or ContestationController(event_bus=event_bus)
        self.resolution = resolution or ResolutionEngine(event_bus=event_bus)
        self._event_bus = event_bus
        self._token_factory = token_factory
        self._logger = logging.getLogger("quotation_engine")

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus or get_event_bus()

    @staticmethod
    def _load_quotation(db, repo: QuotationRepository, quotation_id: int) -> dict:
        quotation = repo.get_by_id(db, quotation_id)
        if not quotation:
            raise NotFoundError(code="quotation_not_found", payload={"quotation_id": quotation_id})
        return quotation

    def create_quotation(self, db, *, tenant_id: str, create_input: QuotationCreateInput) -> ServiceOutput:
        if not create_input.supplier_ids:
            raise ConflictError(code="suppliers_required")
        if not create_input.items:
            raise ConflictError(code="items_required")

        catalog = CatalogRepository(tenant_id=tenant_id)
        quotation_repo = QuotationRepository(tenant_id=tenant_id)
        status_events = StatusEventRepository(tenant_id=tenant_id)

        with db.transaction():
            suppliers = catalog.find_suppliers(db, create_input.supplier_ids)
            missing_suppliers = [value for value in create_input.supplier_ids if value not in suppliers]
            if missing_suppliers:
                raise NotFoundError(code="supplier_not_found", payload={"supplier_ids": missing_suppliers})
            catalog_items = catalog.find_items(db, [item.item_id for item in create_input.items])
            missing_items = [item.item_id for item in create_input.items if item.item_id not in catalog_items]
            if missing_items:
                raise NotFoundError(code="item_not_found", payload={"item_ids": missing_items})

            quotation_id = quotation_repo.create(
                db,
                title=create_input.title,
                status="sent",
                deadline=create_input.deadline.isoformat() if create_input.deadline else None,
                notes=create_input.notes,
            )
            status_events.record(
                db,
                entity="quotation",
                entity_id=quotation_id,
                from_status="draft",
                to_status="sent",
                reason="quotation_created",
            )
            for supplier_id in create_input.supplier_ids:
                quotation_repo.add_supplier(
                    db,
                    quotation_id=quotation_id,
                    supplier_id=supplier_id,
                    token=self._token_factory(),
                )
            for item in create_input.items:
                quotation_repo.add_item(
                    db,
                    quotation_id=quotation_id,
                    item_id=item.item_id,
                    quantity=str(item.quantity),
                )

        self._logger.info(
            "quotation_created",
            extra={
                "tenant_id": tenant_id,
                "quotation_id": quotation_id,
                "supplier_count": len(create_input.supplier_ids),
                "item_count": len(create_input.items),
            },
        )
        self.event_bus.publish(
            QuotationCreated(
                tenant_id=tenant_id,
                quotation_id=quotation_id,
                title=create_input.title,
                supplier_count=len(create_input.supplier_ids),
                item_count=len(create_input.items),
            )
        )
        return ServiceOutput(
            payload={"message": success_message("quotation_created"), "id": quotation_id, "status": "sent"},
            status_code=201,
        )

    def list_quotations(self, db, *, tenant_id: str, limit: int = 120) -> ServiceOutput:
        rows = QuotationRepository(tenant_id=tenant_id).list_summary(db, limit=limit)
        return ServiceOutput(payload={"items": [serialize_quotation(row) for row in rows]}, status_code=200)

    def get_quotation(self, db, *, tenant_id: str, quotation_id: int, public_base_url: str) -> ServiceOutput:
        repo = QuotationRepository(tenant_id=tenant_id)
        quotation = self._load_quotation(db, repo, quotation_id)
        suppliers = repo.list_suppliers(db, quotation_id)
        items = repo.list_items(db, quotation_id)
        payload = serialize_quotation(quotation)
        payload["suppliers"] = [serialize_supplier_link(row, base_url=public_base_url) for row in suppliers]
        payload["items"] = [serialize_item(row) for row in items]
        payload["orders"] = [
            serialize_order(row)
            for row in OrderRepository(tenant_id=tenant_id).list_by_quotation(db, quotation_id)
        ]
        events = StatusEventRepository(tenant_id=tenant_id).list_for_entity(db, entity="quotation", entity_id=quotation_id)
        payload["events"] = [dict(event, created_at=iso_timestamp(event.get("created_at"))) for event in events]
        return ServiceOutput(payload=payload, status_code=200)

    def fetch_prices(self, db, *, tenant_id: str, quotation_id: int) -> ServiceOutput:
        self._load_quotation(db, QuotationRepository(tenant_id=tenant_id), quotation_id)
        rows = QuotationPriceRepository(tenant_id=tenant_id).list_for_quotation(db, quotation_id)
        return ServiceOutput(
            payload={"quotation_id": quotation_id, "prices": serialize_prices(rows)},
            status_code=200,
        )

    def compare(self, db, *, tenant_id: str, quotation_id: int) -> ServiceOutput:
        repo = QuotationRepository(tenant_id=tenant_id)
        quotation = self._load_quotation(db, repo, quotation_id)
        offers = [
            PriceOffer.from_row(row)
            for row in QuotationPriceRepository(tenant_id=tenant_id).list_for_quotation(db, quotation_id)
        ]
        comparison = build_comparison(repo.list_items(db, quotation_id), repo.list_suppliers(db, quotation_id), offers)
        comparison["quotation"] = serialize_quotation(quotation)
        return ServiceOutput(payload=comparison, status_code=200)

    def contest_supplier(self, db, *, tenant_id: str, contest_input: ContestInput) -> ServiceOutput:
        return self.contestation.contest(db, tenant_id=tenant_id, contest_input=contest_input)

    def preview_resolution(self, db, *, tenant_id: str, quotation_id: int) -> ServiceOutput:
        return self.resolution.preview(db, tenant_id=tenant_id, quotation_id=quotation_id)

    def resolve_quotation(
        self,
        db,
        *,
        tenant_id: str,
        quotation_id: int,
        now: datetime | None = None,
    ) -> ServiceOutput:
        return self.resolution.resolve(db, tenant_id=tenant_id, quotation_id=quotation_id, now=now)

    def delete_quotation(self, db, *, tenant_id: str, quotation_id: int) -> ServiceOutput:
        repo = QuotationRepository(tenant_id=tenant_id)
        with db.transaction(exclusive_keys=[quotation_lock(quotation_id)]):
            quotation = self._load_quotation(db, repo, quotation_id)
            ensure_action_allowed(quotation["status"], "delete_quotation")
            repo.delete(db, quotation_id)

        self._logger.info(
            "quotation_deleted",
            extra={"tenant_id": tenant_id, "quotation_id": quotation_id, "status": quotation["status"]},
        )
        return ServiceOutput(
            payload={"message": success_message("quotation_deleted"), "id": quotation_id},
            status_code=200,
        )
