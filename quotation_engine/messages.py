from __future__ import annotations

from typing import Dict, List


STATUS_GROUPS: Dict[str, List[Dict[str, str]]] = {
    "cotacao": [
        {
            "key": "draft",
            "label": "Rascunho",
            "description": "Cotacao em preparacao, ainda nao enviada aos fornecedores.",
        },
        {
            "key": "sent",
            "label": "Enviada",
            "description": "Fornecedores convidados, aguardando precos.",
        },
        {
            "key": "comparing",
            "label": "Comparando",
            "description": "Todos os fornecedores responderam; precos prontos para comparacao.",
        },
        {
            "key": "contested",
            "label": "Contestada",
            "description": "Ao menos um fornecedor foi convidado a revisar sua oferta.",
        },
        {
            "key": "resolved",
            "label": "Finalizada",
            "description": "Vencedores definidos e pedidos gerados.",
        },
    ],
    "fornecedor": [
        {
            "key": "pending",
            "label": "Aguardando",
            "description": "Fornecedor ainda nao enviou precos.",
        },
        {
            "key": "responded",
            "label": "Respondeu",
            "description": "Fornecedor enviou precos.",
        },
        {
            "key": "contested",
            "label": "Contestado",
            "description": "Fornecedor convidado a revisar precos acima da melhor oferta.",
        },
    ],
}


MESSAGES: Dict[str, Dict[str, str]] = {
    "success": {
        "quotation_created": "Cotacao criada!",
        "quotation_deleted": "Cotacao excluida.",
        "prices_submitted": "Precos enviados com sucesso. Obrigado!",
        "supplier_contested": "Contestacao enviada!",
        "quotation_resolved": "Pedidos gerados com sucesso!",
    },
    "error": {
        "action_not_allowed_for_status": "Esta acao nao e permitida para o status atual.",
        "deadline_in_past": "O prazo da cotacao ja passou.",
        "deadline_invalid": "Prazo invalido. Use o formato AAAA-MM-DD.",
        "invalid_status_transition": "Mudanca de status nao permitida para esta cotacao.",
        "invalid_token": "Link de cotacao invalido.",
        "item_duplicated": "Item repetido na cotacao.",
        "item_not_found": "Item de estoque nao encontrado.",
        "items_required": "Selecione ao menos um item para cotar.",
        "prices_required": "Informe a lista de precos.",
        "quantity_invalid": "Quantidade invalida. Use ate 3 casas decimais.",
        "quotation_already_resolved": "Cotacao ja finalizada.",
        "quotation_closed": "Cotacao encerrada para novos precos.",
        "quotation_item_id_required": "Informe o item cotado.",
        "quotation_item_not_found": "Item nao pertence a esta cotacao.",
        "quotation_not_found": "Cotacao nao encontrada.",
        "quotation_status_changed": "A cotacao mudou de status. Atualize e tente novamente.",
        "rate_limit_exceeded": "Muitas requisicoes. Tente novamente em instantes.",
        "supplier_not_found": "Fornecedor nao encontrado.",
        "supplier_not_invited": "Fornecedor nao participa desta cotacao.",
        "suppliers_required": "Selecione ao menos um fornecedor.",
        "title_required": "Informe o titulo da cotacao.",
        "unexpected_error": "Nao foi possivel concluir a operacao. Tente novamente em instantes.",
        "unit_price_invalid": "Preco unitario invalido. Use ate 4 casas decimais.",
        "validation_error": "Dados invalidos.",
    },
}


def status_keys_for_group(group: str) -> List[str]:
    return [item["key"] for item in STATUS_GROUPS.get(group, [])]


def build_status_labels(group: str) -> Dict[str, str]:
    return {item["key"]: item["label"] for item in STATUS_GROUPS.get(group, [])}


QUOTATION_STATUS_LABELS = build_status_labels("cotacao")
SUPPLIER_STATUS_LABELS = build_status_labels("fornecedor")


def status_label(group: str, status: str | None) -> str:
    labels = QUOTATION_STATUS_LABELS if group == "cotacao" else SUPPLIER_STATUS_LABELS
    return labels.get(str(status or ""), str(status or ""))


def get_message(category: str, key: str, default: str | None = None) -> str:
    message = MESSAGES.get(category, {}).get(key)
    if message:
        return message
    if default is not None:
        return default
    return key


def error_message(key: str, default: str | None = None) -> str:
    return get_message("error", key, default)


def success_message(key: str, default: str | None = None) -> str:
    return get_message("success", key, default)
