import logging

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.schema import CreateSchema

from app.config import settings
from app.db import TENANT_SCHEMA, Base, engine, is_valid_schema_name, tenant_bind
from app.errors import NotFoundError, ValidationFailedError
from app.models.tenant import Tenant
from app.schemas.tenant import TenantCreate
from app.services.common import apply_ordering, apply_pagination, coerce_uuid
from app.services.event import EventType, publish_event
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)


def tenant_tables():
    return [table for table in Base.metadata.sorted_tables if table.schema == TENANT_SCHEMA]


def provision_tenant_schema(schema_name: str, bind=None) -> None:
    """Create the tenant schema and every tenant-scoped table inside it."""
    bind = bind or engine
    with bind.begin() as conn:
        conn.execute(CreateSchema(schema_name, if_not_exists=True))
    Base.metadata.create_all(bind=tenant_bind(schema_name, bind), tables=tenant_tables())
    logger.info("Provisioned tenant schema %s", schema_name)


class Tenants(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: TenantCreate) -> Tenant:
        schema_name = f"{settings.tenant_schema_prefix}{payload.code}"
        if not is_valid_schema_name(schema_name):
            raise ValidationFailedError(f"Invalid tenant code: {payload.code}")
        existing = db.scalars(
            select(Tenant.id).where(
                (Tenant.code == payload.code) | (Tenant.schema_name == schema_name)
            )
        ).first()
        if existing is not None:
            raise ValidationFailedError(
                "Tenant code already exists", code="CODE_ALREADY_EXISTS"
            )

        tenant = Tenant(**payload.model_dump(), schema_name=schema_name)
        db.add(tenant)
        db.flush()
        provision_tenant_schema(schema_name)
        db.refresh(tenant)
        publish_event(EventType.tenant_created, "tenant", tenant.id, db=db)
        logger.info("Created tenant %s (%s)", tenant.code, tenant.id)
        return tenant

    @staticmethod
    def get(db: Session, tenant_id) -> Tenant:
        tenant = db.get(Tenant, coerce_uuid(tenant_id))
        if not tenant:
            raise NotFoundError("Tenant not found")
        return tenant

    @staticmethod
    def get_by_code(db: Session, code: str) -> Tenant:
        tenant = db.scalars(
            select(Tenant).where(Tenant.code == code, Tenant.is_active.is_(True))
        ).first()
        if not tenant:
            raise NotFoundError("Tenant not found")
        return tenant

    @staticmethod
    def list(
        db: Session,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Tenant]:
        stmt = select(Tenant)
        if is_active is not None:
            stmt = stmt.where(Tenant.is_active == is_active)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {"code": Tenant.code, "name": Tenant.name, "created_at": Tenant.created_at},
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()


tenants = Tenants()
