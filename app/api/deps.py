import uuid
from collections.abc import Generator

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.db import SessionLocal, tenant_session
from app.errors import UnauthorizedError, ValidationFailedError
from app.models.tenant import Tenant
from app.services import tenant as tenant_service


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_tenant(
    x_tenant_code: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Tenant:
    if not x_tenant_code:
        raise ValidationFailedError(
            "X-Tenant-Code header is required", code="TENANT_REQUIRED"
        )
    return tenant_service.tenants.get_by_code(db, x_tenant_code)


def get_tenant_db(
    tenant: Tenant = Depends(get_tenant),
) -> Generator[Session, None, None]:
    db = tenant_session(tenant.schema_name)
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def require_actor(x_actor_id: str | None = Header(default=None)) -> uuid.UUID:
    if not x_actor_id:
        raise UnauthorizedError("X-Actor-Id header is required")
    try:
        return uuid.UUID(x_actor_id)
    except ValueError as exc:
        raise UnauthorizedError("X-Actor-Id must be a UUID") from exc
