import re

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings

# Placeholder schema declared by every tenant-owned table. Sessions bound
# through tenant_session() translate it to the tenant's real schema.
TENANT_SCHEMA = "tenant"

_SCHEMA_NAME_RE = re.compile(r"^[a-z][a-z0-9_]{0,62}$")


class Base(DeclarativeBase):
    pass


def get_engine():
    if settings.database_url.startswith("sqlite"):
        return create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
    )


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def is_valid_schema_name(schema_name: str) -> bool:
    return bool(schema_name) and bool(_SCHEMA_NAME_RE.match(schema_name)) and (
        schema_name.startswith(settings.tenant_schema_prefix)
    )


def tenant_bind(schema_name: str | None, bind=None):
    """Return ``bind`` (default: the app engine) with the tenant placeholder
    schema translated to ``schema_name``.

    ``schema_name`` is only ever used as an identifier through
    ``schema_translate_map``; it never reaches SQL text. ``None`` maps the
    placeholder to the default schema, which is what SQLite test databases use.
    """
    if schema_name is not None and not is_valid_schema_name(schema_name):
        raise ValueError(f"Invalid tenant schema name: {schema_name!r}")
    return (bind or engine).execution_options(
        schema_translate_map={TENANT_SCHEMA: schema_name}
    )


def tenant_session(schema_name: str) -> Session:
    session = SessionLocal(bind=tenant_bind(schema_name))
    session.info["tenant_schema"] = schema_name
    return session
