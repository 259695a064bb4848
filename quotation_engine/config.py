import os


def _bool_env(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Config:
    BASE_DIR = os.path.dirname(os.path.dirname(__file__))
    DATABASE_URL = os.environ.get("DATABASE_URL")
    DATABASE_DIR = None if DATABASE_URL else os.path.join(BASE_DIR, "database")
    DB_PATH = DATABASE_URL or os.path.join(DATABASE_DIR, "quotation_engine.db")
    DB_AUTO_INIT = _bool_env("DB_AUTO_INIT", True)

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-quotation-engine")
    DEFAULT_TENANT_ID = os.environ.get("DEFAULT_TENANT_ID", "tenant-demo")

    LOG_JSON = _bool_env("LOG_JSON", True)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    QUOTATION_PUBLIC_BASE_URL = os.environ.get("QUOTATION_PUBLIC_BASE_URL")
    QUOTATION_TOKEN_GRACE_DAYS = _int_env("QUOTATION_TOKEN_GRACE_DAYS", 0)
    QUOTATION_RESOLVED_TOKEN_TTL_DAYS = _int_env("QUOTATION_RESOLVED_TOKEN_TTL_DAYS", 7)

    RATE_LIMIT_ENABLED = _bool_env("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_WINDOW_SECONDS = _int_env("RATE_LIMIT_WINDOW_SECONDS", 60)
    RATE_LIMIT_MAX_REQUESTS = _int_env("RATE_LIMIT_MAX_REQUESTS", 300)
    PUBLIC_RATE_LIMIT_MAX_REQUESTS = _int_env("PUBLIC_RATE_LIMIT_MAX_REQUESTS", 60)
    SECURITY_HEADERS_ENABLED = _bool_env("SECURITY_HEADERS_ENABLED", True)

    def __init__(self):
        env = os.environ.get("FLASK_ENV", "development").lower()
        if env == "production" and not self.DATABASE_URL:
            raise RuntimeError("DATABASE_URL nao definida para ambiente de producao.")
        if env == "production" and self.SECRET_KEY == "dev-secret-quotation-engine":
            raise RuntimeError("SECRET_KEY insegura para producao.")
