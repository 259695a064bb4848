from __future__ import annotations

from typing import Dict, List, Set

from quotation_engine.errors import ConflictError


ACTION_LABELS: Dict[str, str] = {
    "submit_prices": "Enviar precos",
    "contest_supplier": "Contestar fornecedor",
    "preview_resolution": "Simular vencedores",
    "resolve_quotation": "Finalizar e gerar pedidos",
    "delete_quotation": "Excluir cotacao",
    "view_prices": "Comparar precos",
    "view_orders": "Ver pedidos",
}


_OPEN_ACTIONS = [
    "submit_prices",
    "contest_supplier",
    "preview_resolution",
    "resolve_quotation",
    "delete_quotation",
    "view_prices",
]


QUOTATION_FLOW: Dict[str, Dict[str, object]] = {
    "draft": {
        "allowed_actions": ["delete_quotation", "view_prices"],
        "primary_action": "delete_quotation",
    },
    "sent": {
        "allowed_actions": list(_OPEN_ACTIONS),
        "primary_action": "view_prices",
    },
    "comparing": {
        "allowed_actions": list(_OPEN_ACTIONS),
        "primary_action": "resolve_quotation",
    },
    "contested": {
        "allowed_actions": list(_OPEN_ACTIONS),
        "primary_action": "view_prices",
    },
    "resolved": {
        "allowed_actions": ["view_prices", "view_orders"],
        "primary_action": "view_orders",
    },
}


# contested <-> comparing is the only backward edge; resolved is terminal.
QUOTATION_TRANSITIONS: Dict[str, Set[str]] = {
    "draft": {"sent"},
    "sent": {"comparing", "contested", "resolved"},
    "comparing": {"contested", "resolved"},
    "contested": {"comparing", "resolved"},
    "resolved": set(),
}


def _fallback_policy() -> Dict[str, object]:
    return {"allowed_actions": [], "primary_action": None}


def status_policy(status: str | None) -> Dict[str, object]:
    if not status:
        return _fallback_policy()
    return QUOTATION_FLOW.get(str(status), _fallback_policy())


def allowed_actions(status: str | None) -> List[str]:
    actions = status_policy(status).get("allowed_actions") or []
    if not isinstance(actions, list):
        return []
    return [str(action) for action in actions]


def primary_action(status: str | None) -> str | None:
    action = status_policy(status).get("primary_action")
    if not action:
        return None
    return str(action)


def action_allowed(status: str | None, action: str) -> bool:
    if not action:
        return False
    return action in set(allowed_actions(status))


def action_label(action: str, fallback: str | None = None) -> str:
    label = ACTION_LABELS.get(action)
    if label:
        return label
    if fallback is not None:
        return fallback
    return action


def flow_meta(status: str | None) -> Dict[str, object]:
    primary = primary_action(status)
    return {
        "status": status,
        "allowed_actions": allowed_actions(status),
        "primary_action": primary,
        "primary_action_label": action_label(primary) if primary else None,
    }


def can_transition(from_status: str | None, to_status: str) -> bool:
    return to_status in QUOTATION_TRANSITIONS.get(str(from_status or ""), set())


def ensure_transition(from_status: str | None, to_status: str) -> None:
    if can_transition(from_status, to_status):
        return
    raise ConflictError(
        code="invalid_status_transition",
        payload={
            "status": from_status,
            "target_status": to_status,
            "allowed_targets": sorted(QUOTATION_TRANSITIONS.get(str(from_status or ""), set())),
        },
    )


def ensure_action_allowed(status: str | None, action: str, *, code: str | None = None) -> None:
    if action_allowed(status, action):
        return
    if status == "resolved":
        code = code or "quotation_already_resolved"
    raise ConflictError(
        code=code or "action_not_allowed_for_status",
        payload={
            "status": status,
            "action": action,
            "allowed_actions": allowed_actions(status),
            "primary_action": primary_action(status),
        },
    )
