from flask import current_app, g, has_app_context


DEFAULT_TENANT_ID = "tenant-demo"


def normalize_tenant_id(value: str | None) -> str | None:
    tenant_id = str(value or "").strip()
    return tenant_id or None


def default_tenant_id() -> str:
    if has_app_context():
        return normalize_tenant_id(current_app.config.get("DEFAULT_TENANT_ID")) or DEFAULT_TENANT_ID
    return DEFAULT_TENANT_ID


def current_tenant_id() -> str | None:
    return normalize_tenant_id(getattr(g, "tenant_id", None))


def scoped_tenant_id(value: str | None = None) -> str:
    return normalize_tenant_id(value) or current_tenant_id() or default_tenant_id()
