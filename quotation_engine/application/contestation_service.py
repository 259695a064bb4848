from __future__ import annotations

import logging

from quotation_engine.core.event_bus import EventBus, QuotationSupplierContested, get_event_bus
from quotation_engine.domain.contracts import ContestInput, ServiceOutput
from quotation_engine.domain.flow_policy import ensure_action_allowed
from quotation_engine.errors import NotFoundError, ValidationError
from quotation_engine.infrastructure.locks import quotation_lock
from quotation_engine.infrastructure.repositories import (
    QuotationRepository,
    QuotationSupplierRepository,
    StatusEventRepository,
)
from quotation_engine.messages import success_message


class ContestationController:
    """Asks one supplier to revise its offer, optionally naming the lines."""

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._event_bus = event_bus
        self._logger = logging.getLogger("quotation_engine")

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus or get_event_bus()

    def contest(self, db, *, tenant_id: str, contest_input: ContestInput) -> ServiceOutput:
        quotation_repo = QuotationRepository(tenant_id=tenant_id)
        supplier_repo = QuotationSupplierRepository(tenant_id=tenant_id)
        status_events = StatusEventRepository(tenant_id=tenant_id)
        quotation_id = contest_input.quotation_id

        with db.transaction(exclusive_keys=[quotation_lock(quotation_id)]):
            quotation = quotation_repo.get_by_id(db, quotation_id)
            if not quotation:
                raise NotFoundError(code="quotation_not_found")
            ensure_action_allowed(quotation["status"], "contest_supplier")

            link = supplier_repo.get_for_quotation(
                db,
                quotation_id=quotation_id,
                supplier_id=contest_input.supplier_id,
            )
            if not link:
                raise NotFoundError(code="supplier_not_invited", payload={"supplier_id": contest_input.supplier_id})
            quotation_supplier_id = int(link["id"])

            if contest_input.item_ids:
                item_ids = {int(item["id"]) for item in quotation_repo.list_items(db, quotation_id)}
                unknown = sorted(set(contest_input.item_ids) - item_ids)
                if unknown:
                    raise ValidationError(code="quotation_item_not_found", payload={"quotation_item_ids": unknown})
                supplier_repo.add_contested_items(db, quotation_supplier_id, contest_input.item_ids)

            if link["status"] != "contested":
                supplier_repo.update_status(db, quotation_supplier_id, "contested")
                status_events.record(
                    db,
                    entity="quotation_supplier",
                    entity_id=quotation_supplier_id,
                    from_status=link["status"],
                    to_status="contested",
                    reason="supplier_contested",
                )
            if quotation["status"] != "contested":
                quotation_repo.update_status(db, quotation_id, "contested", from_status=quotation["status"])
                status_events.record(
                    db,
                    entity="quotation",
                    entity_id=quotation_id,
                    from_status=quotation["status"],
                    to_status="contested",
                    reason="supplier_contested",
                )
            contested_item_ids = supplier_repo.list_contested_item_ids(db, quotation_supplier_id)

        self._logger.info(
            "quotation_supplier_contested",
            extra={
                "tenant_id": tenant_id,
                "quotation_id": quotation_id,
                "quotation_supplier_id": quotation_supplier_id,
                "contested_item_ids": contested_item_ids,
            },
        )
        self.event_bus.publish(
            QuotationSupplierContested(
                tenant_id=tenant_id,
                quotation_id=quotation_id,
                quotation_supplier_id=quotation_supplier_id,
                supplier_id=contest_input.supplier_id,
                contested_item_ids=tuple(contested_item_ids),
            )
        )
        return ServiceOutput(
            payload={
                "message": success_message("supplier_contested"),
                "quotation_id": quotation_id,
                "supplier_id": contest_input.supplier_id,
                "quotation_supplier_id": quotation_supplier_id,
                "status": "contested",
                "quotation_status": "contested",
                "contested_item_ids": contested_item_ids,
            },
            status_code=200,
        )
