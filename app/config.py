import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5432/talent_scope"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    # Tenant schemas are named "<prefix><tenant code>"
    tenant_schema_prefix: str = os.getenv("TENANT_SCHEMA_PREFIX", "tenant_")

    # Effective-config cache
    redis_url: str | None = os.getenv("REDIS_URL") or None
    config_cache_prefix: str = os.getenv("CONFIG_CACHE_PREFIX", "config")
    config_cache_ttl_seconds: int = int(os.getenv("CONFIG_CACHE_TTL_SECONDS", "300"))

    # Celery
    celery_broker_url: str = os.getenv("CELERY_BROKER_URL", "memory://")
    celery_result_backend: str | None = os.getenv("CELERY_RESULT_BACKEND") or None
    celery_task_always_eager: bool = _env_flag("CELERY_TASK_ALWAYS_EAGER")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")

    app_title: str = os.getenv("APP_TITLE", "Talent Scope Config API")


settings = Settings()
