from __future__ import annotations

import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Type

from quotation_engine.application.serializers import serialize_quotation
from quotation_engine.core.event_bus import EventBus, PurchaseOrderCreated, QuotationResolved, get_event_bus
from quotation_engine.domain.clock import iso_timestamp, utc_now
from quotation_engine.domain.contracts import ServiceOutput
from quotation_engine.domain.flow_policy import ensure_action_allowed
from quotation_engine.domain.resolution import PriceOffer, ResolutionPlan, as_float, plan_resolution
from quotation_engine.errors import ConflictError, NotFoundError
from quotation_engine.infrastructure.locks import quotation_lock
from quotation_engine.infrastructure.repositories import (
    OrderRepository,
    QuotationPriceRepository,
    QuotationRepository,
    StatusEventRepository,
)
from quotation_engine.messages import success_message
from quotation_engine.observability import observe_resolution


ORDER_NOTES_TEMPLATE = "Gerado pela cotacao {title}"


def _winners_payload(plan: ResolutionPlan) -> List[Dict[str, Any]]:
    return [
        {
            "quotation_item_id": award.quotation_item_id,
            "item_id": award.item_id,
            "quantity": as_float(award.quantity),
            "quotation_supplier_id": award.quotation_supplier_id,
            "supplier_id": award.supplier_id,
            "unit_price": as_float(award.unit_price),
            "total": as_float(award.total),
            "price_id": award.price_id,
        }
        for award in plan.awards
    ]


def _orders_preview(plan: ResolutionPlan) -> List[Dict[str, Any]]:
    return [
        {
            "supplier_id": supplier_id,
            "items": [
                {"item_id": award.item_id, "quantity": as_float(award.quantity)}
                for award in awards
            ],
            "total": as_float(sum((award.total for award in awards), Decimal("0"))),
        }
        for supplier_id, awards in plan.orders_by_supplier().items()
    ]


class ResolutionEngine:
    """Turns the current offers of a quotation into winners and draft orders."""

    def __init__(
        self,
        event_bus: EventBus | None = None,
        order_repository_cls: Type[OrderRepository] = OrderRepository,
    ) -> None:
        self._event_bus = event_bus
        self._order_repository_cls = order_repository_cls
        self._logger = logging.getLogger("quotation_engine")

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus or get_event_bus()

    @staticmethod
    def _plan(db, quotation_repo: QuotationRepository, price_repo: QuotationPriceRepository, quotation_id: int):
        items = quotation_repo.list_items(db, quotation_id)
        suppliers = quotation_repo.list_suppliers(db, quotation_id)
        offers = [PriceOffer.from_row(row) for row in price_repo.list_for_quotation(db, quotation_id)]
        return plan_resolution(items, suppliers, offers)

    def preview(self, db, *, tenant_id: str, quotation_id: int) -> ServiceOutput:
        quotation_repo = QuotationRepository(tenant_id=tenant_id)
        quotation = quotation_repo.get_by_id(db, quotation_id)
        if not quotation:
            raise NotFoundError(code="quotation_not_found")
        plan = self._plan(db, quotation_repo, QuotationPriceRepository(tenant_id=tenant_id), quotation_id)
        return ServiceOutput(
            payload={
                "quotation": serialize_quotation(quotation),
                "winners": _winners_payload(plan),
                "items_without_offer": list(plan.unawarded_item_ids),
                "orders": _orders_preview(plan),
            },
            status_code=200,
        )

    def resolve(
        self,
        db,
        *,
        tenant_id: str,
        quotation_id: int,
        now: datetime | None = None,
    ) -> ServiceOutput:
        quotation_repo = QuotationRepository(tenant_id=tenant_id)
        price_repo = QuotationPriceRepository(tenant_id=tenant_id)
        order_repo = self._order_repository_cls(tenant_id=tenant_id)
        status_events = StatusEventRepository(tenant_id=tenant_id)
        resolved_at = iso_timestamp(now or utc_now())

        started = time.perf_counter()
        orders: List[Dict[str, Any]] = []
        with db.transaction(exclusive_keys=[quotation_lock(quotation_id)]):
            quotation = quotation_repo.get_by_id(db, quotation_id)
            if not quotation:
                raise NotFoundError(code="quotation_not_found")
            if quotation["status"] == "resolved":
                raise ConflictError(code="quotation_already_resolved")
            ensure_action_allowed(quotation["status"], "resolve_quotation")

            plan = self._plan(db, quotation_repo, price_repo, quotation_id)
            for award in plan.awards:
                quotation_repo.set_item_winner(db, award.quotation_item_id, award.supplier_id)

            notes = ORDER_NOTES_TEMPLATE.format(title=quotation["title"])
            for supplier_id, awards in plan.orders_by_supplier().items():
                order_id = order_repo.create(db, supplier_id=supplier_id, quotation_id=quotation_id, notes=notes)
                for award in awards:
                    order_repo.add_item(db, order_id=order_id, item_id=award.item_id, quantity=str(award.quantity))
                orders.append(
                    {
                        "id": order_id,
                        "supplier_id": supplier_id,
                        "status": "draft",
                        "notes": notes,
                        "items": [
                            {"item_id": award.item_id, "quantity": as_float(award.quantity)}
                            for award in awards
                        ],
                    }
                )

            quotation_repo.mark_resolved(db, quotation_id, from_status=quotation["status"], resolved_at=resolved_at)
            status_events.record(
                db,
                entity="quotation",
                entity_id=quotation_id,
                from_status=quotation["status"],
                to_status="resolved",
                reason="quotation_resolved",
            )

        observe_resolution(
            (time.perf_counter() - started) * 1000.0,
            items_awarded=len(plan.awards),
            items_without_offer=len(plan.unawarded_item_ids),
        )
        self._logger.info(
            "quotation_resolved",
            extra={
                "tenant_id": tenant_id,
                "quotation_id": quotation_id,
                "order_ids": [order["id"] for order in orders],
                "items_awarded": len(plan.awards),
                "items_without_offer": len(plan.unawarded_item_ids),
            },
        )
        for order in orders:
            self.event_bus.publish(
                PurchaseOrderCreated(
                    tenant_id=tenant_id,
                    order_id=int(order["id"]),
                    supplier_id=int(order["supplier_id"]),
                    quotation_id=quotation_id,
                    items=len(order["items"]),
                )
            )
        self.event_bus.publish(
            QuotationResolved(
                tenant_id=tenant_id,
                quotation_id=quotation_id,
                order_ids=tuple(int(order["id"]) for order in orders),
                items_without_offer=len(plan.unawarded_item_ids),
            )
        )
        return ServiceOutput(
            payload={
                "message": success_message("quotation_resolved"),
                "quotation_id": quotation_id,
                "status": "resolved",
                "resolved_at": resolved_at,
                "winners": _winners_payload(plan),
                "items_without_offer": list(plan.unawarded_item_ids),
                "orders": orders,
            },
            status_code=201,
        )
