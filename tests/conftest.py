import os
import uuid

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["LOG_FORMAT"] = "plain"
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import app.models  # noqa: E402,F401
from app.db import Base, tenant_bind  # noqa: E402
from app.models.hierarchy import OwnerType  # noqa: E402
from app.models.tenant import Tenant  # noqa: E402
from app.schemas.config import (  # noqa: E402
    BlocklistPatternCreate,
    CustomerStatusCreate,
)
from app.schemas.hierarchy import SubsidiaryCreate, TalentCreate  # noqa: E402
from app.services.config_entity import ConfigEntities  # noqa: E402
from app.services.subsidiary import Subsidiaries  # noqa: E402
from app.services.talent import Talents  # noqa: E402

TEST_TENANT_SCHEMA = "tenant_acme"


@pytest.fixture()
def engine():
    raw_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # Tenant tables collapse into the default schema on SQLite.
    bind = tenant_bind(None, raw_engine)
    Base.metadata.create_all(bind=bind)
    yield bind
    raw_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    session.info["tenant_schema"] = TEST_TENANT_SCHEMA
    yield session
    session.rollback()
    session.close()


@pytest.fixture()
def tenant(db_session):
    tenant = Tenant(code="acme", name="Acme Talent", schema_name=TEST_TENANT_SCHEMA)
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture()
def actor_id():
    return uuid.uuid4()


@pytest.fixture()
def auth_headers(tenant, actor_id):
    return {"X-Tenant-Code": tenant.code, "X-Actor-Id": str(actor_id)}


@pytest.fixture()
def client(session_factory, tenant):
    from app.api import deps
    from app.main import app

    def _get_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _get_tenant_db(tenant: Tenant = Depends(deps.get_tenant)):
        db = session_factory()
        db.info["tenant_schema"] = tenant.schema_name
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_tenant_db] = _get_tenant_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_subsidiary(db_session, actor_id):
    def _make(code, parent=None, **fields):
        payload = SubsidiaryCreate(
            code=code,
            name_en=fields.pop("name_en", f"Subsidiary {code}"),
            parent_id=parent.id if parent else None,
            **fields,
        )
        return Subsidiaries.create(db_session, payload, actor_id)

    return _make


@pytest.fixture()
def make_talent(db_session, actor_id):
    def _make(code, subsidiary=None, **fields):
        payload = TalentCreate(
            code=code,
            name_en=fields.pop("name_en", f"Talent {code}"),
            display_name=fields.pop("display_name", code.title()),
            subsidiary_id=subsidiary.id if subsidiary else None,
            profile_store_id=fields.pop("profile_store_id", uuid.uuid4()),
            **fields,
        )
        return Talents.create(db_session, payload, actor_id)

    return _make


def _owner_fields(owner):
    if owner is None:
        return {"owner_type": OwnerType.tenant, "owner_id": None}
    if owner.__class__.__name__ == "Subsidiary":
        return {"owner_type": OwnerType.subsidiary, "owner_id": owner.id}
    return {"owner_type": OwnerType.talent, "owner_id": owner.id}


@pytest.fixture()
def make_status(db_session, actor_id):
    """Create a customer status owned by ``owner`` (tenant when omitted)."""

    def _make(code, owner=None, **fields):
        payload = CustomerStatusCreate(
            code=code,
            name_en=fields.pop("name_en", f"Status {code}"),
            **_owner_fields(owner),
            **fields,
        )
        return ConfigEntities.create(db_session, "customer-status", payload, actor_id)

    return _make


@pytest.fixture()
def make_pattern(db_session, actor_id):
    def _make(pattern, owner=None, **fields):
        payload = BlocklistPatternCreate(
            pattern=pattern,
            pattern_type=fields.pop("pattern_type", "keyword"),
            name_en=fields.pop("name_en", f"Block {pattern}"),
            **_owner_fields(owner),
            **fields,
        )
        return ConfigEntities.create(
            db_session, "external-blocklist-pattern", payload, actor_id
        )

    return _make
