import logging
from datetime import datetime, timezone

from sqlalchemy import String, func, literal, or_, select, update
from sqlalchemy.orm import Session

from app.errors import (
    DomainRuleError,
    NotFoundError,
    ValidationFailedError,
    VersionConflictError,
)
from app.models.change_log import ChangeAction
from app.models.hierarchy import MAX_DEPTH, Subsidiary, Talent
from app.schemas.hierarchy import (
    SubsidiaryCreate,
    SubsidiaryDeactivate,
    SubsidiaryMove,
    SubsidiaryUpdate,
    VersionPayload,
)
from app.services.change_log import ChangeLogs, snapshot
from app.services.common import (
    apply_ordering,
    apply_pagination,
    coerce_uuid,
    search_pattern,
)
from app.services.event import EventType, publish_event
from app.services.response import ListResponseMixin

logger = logging.getLogger(__name__)

_AUDITED_FIELDS = (
    "parent_id",
    "path",
    "depth",
    "name_en",
    "name_zh",
    "name_ja",
    "description_en",
    "description_zh",
    "description_ja",
    "sort_order",
    "is_active",
)


def rewrite_path(column, old_prefix: str, new_prefix: str):
    """SQL expression swapping ``old_prefix`` for ``new_prefix`` on ``column``."""
    return literal(new_prefix, String).concat(
        func.substr(column, len(old_prefix) + 1)
    )


def _check_version(subsidiary: Subsidiary, version: int) -> None:
    if subsidiary.version != version:
        raise VersionConflictError()


def _publish(
    event_type: EventType, db: Session, subsidiary_id, actor_id, payload=None
):
    publish_event(
        event_type,
        "subsidiary",
        subsidiary_id,
        actor_id=actor_id,
        tenant_schema=db.info.get("tenant_schema"),
        db=db,
        payload=payload,
    )


class Subsidiaries(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: SubsidiaryCreate, actor_id=None) -> Subsidiary:
        taken_by_talent = db.scalars(
            select(Talent.id).where(Talent.code == payload.code)
        )
        if Subsidiaries.find_by_code(db, payload.code) or taken_by_talent.first():
            raise ValidationFailedError("Code already exists", code="CODE_ALREADY_EXISTS")

        if payload.parent_id:
            parent = db.get(Subsidiary, coerce_uuid(payload.parent_id))
            if not parent:
                raise NotFoundError("Parent subsidiary not found")
            path = f"{parent.path}{payload.code}/"
            depth = parent.depth + 1
            if depth > MAX_DEPTH:
                raise ValidationFailedError(
                    f"Maximum nesting depth of {MAX_DEPTH} exceeded",
                    code="MAX_DEPTH_EXCEEDED",
                )
        else:
            path = f"/{payload.code}/"
            depth = 1

        actor_id = coerce_uuid(actor_id)
        subsidiary = Subsidiary(
            **payload.model_dump(),
            path=path,
            depth=depth,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(subsidiary)
        db.flush()
        db.refresh(subsidiary)

        ChangeLogs.record(
            db,
            ChangeAction.create,
            "subsidiary",
            subsidiary.id,
            subsidiary.code,
            actor_id,
            new=snapshot(subsidiary, _AUDITED_FIELDS),
        )
        _publish(EventType.subsidiary_created, db, subsidiary.id, actor_id)
        logger.info("Created subsidiary %s at %s", subsidiary.id, subsidiary.path)
        return subsidiary

    @staticmethod
    def get(db: Session, subsidiary_id) -> Subsidiary:
        subsidiary = db.get(Subsidiary, coerce_uuid(subsidiary_id))
        if not subsidiary:
            raise NotFoundError("Subsidiary not found")
        return subsidiary

    @staticmethod
    def find_by_code(db: Session, code: str) -> Subsidiary | None:
        return db.scalars(select(Subsidiary).where(Subsidiary.code == code)).first()

    @staticmethod
    def get_by_code(db: Session, code: str) -> Subsidiary:
        subsidiary = Subsidiaries.find_by_code(db, code)
        if not subsidiary:
            raise NotFoundError("Subsidiary not found")
        return subsidiary

    @staticmethod
    def list(
        db: Session,
        parent_id: str | None,
        root_only: bool,
        search: str | None,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Subsidiary]:
        stmt = select(Subsidiary)
        if root_only:
            stmt = stmt.where(Subsidiary.parent_id.is_(None))
        elif parent_id is not None:
            stmt = stmt.where(Subsidiary.parent_id == coerce_uuid(parent_id))
        if search:
            pattern = search_pattern(search)
            stmt = stmt.where(
                or_(
                    Subsidiary.code.ilike(pattern, escape="\\"),
                    Subsidiary.name_en.ilike(pattern, escape="\\"),
                    Subsidiary.name_zh.ilike(pattern, escape="\\"),
                )
            )
        if is_active is not None:
            stmt = stmt.where(Subsidiary.is_active == is_active)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "sort_order": Subsidiary.sort_order,
                "code": Subsidiary.code,
                "name": Subsidiary.name_en,
                "path": Subsidiary.path,
                "created_at": Subsidiary.created_at,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update(
        db: Session, subsidiary_id, payload: SubsidiaryUpdate, actor_id=None
    ) -> Subsidiary:
        subsidiary = Subsidiaries.get(db, subsidiary_id)
        data = payload.model_dump(exclude_unset=True)
        _check_version(subsidiary, data.pop("version"))

        before = snapshot(subsidiary, _AUDITED_FIELDS)
        for key, value in data.items():
            if value is None and key in ("name_en", "sort_order"):
                continue
            setattr(subsidiary, key, value)
        subsidiary.version += 1
        subsidiary.updated_by = coerce_uuid(actor_id)
        db.flush()
        db.refresh(subsidiary)

        ChangeLogs.record(
            db,
            ChangeAction.update,
            "subsidiary",
            subsidiary.id,
            subsidiary.code,
            actor_id,
            old=before,
            new=snapshot(subsidiary, _AUDITED_FIELDS),
        )
        _publish(EventType.subsidiary_updated, db, subsidiary.id, actor_id)
        logger.info("Updated subsidiary %s", subsidiary.id)
        return subsidiary

    @staticmethod
    def move(
        db: Session, subsidiary_id, payload: SubsidiaryMove, actor_id=None
    ) -> dict:
        """Re-parent a subsidiary, rewriting paths of its whole subtree.

        Every statement runs in the caller's transaction; the API dependency
        commits once, so a failure leaves no partially rewritten subtree.
        """
        subsidiary = Subsidiaries.get(db, subsidiary_id)
        _check_version(subsidiary, payload.version)
        actor_id = coerce_uuid(actor_id)

        new_parent_id = coerce_uuid(payload.new_parent_id)
        if new_parent_id is not None:
            new_parent = db.get(Subsidiary, new_parent_id)
            if not new_parent:
                raise NotFoundError("New parent subsidiary not found")
            if new_parent.path.startswith(subsidiary.path):
                raise DomainRuleError(
                    "Cannot move a subsidiary to its own descendant",
                    code="CIRCULAR_REFERENCE",
                )
            new_path = f"{new_parent.path}{subsidiary.code}/"
            new_depth = new_parent.depth + 1
        else:
            new_path = f"/{subsidiary.code}/"
            new_depth = 1

        old_path = subsidiary.path
        depth_delta = new_depth - subsidiary.depth
        in_subtree = Subsidiary.path.startswith(old_path, autoescape=True)
        max_depth = db.scalar(select(func.max(Subsidiary.depth)).where(in_subtree))
        if (max_depth or subsidiary.depth) + depth_delta > MAX_DEPTH:
            raise ValidationFailedError(
                f"Moving would exceed maximum nesting depth of {MAX_DEPTH}",
                code="MAX_DEPTH_EXCEEDED",
            )

        before = snapshot(subsidiary, _AUDITED_FIELDS)
        now = datetime.now(timezone.utc)
        db.flush()
        claimed = db.execute(
            update(Subsidiary)
            .where(
                Subsidiary.id == subsidiary.id,
                Subsidiary.version == payload.version,
            )
            .values(
                parent_id=new_parent_id,
                version=Subsidiary.version + 1,
                updated_by=actor_id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount == 0:
            raise VersionConflictError()

        # Talents first: the subtree ids are selected by the old paths.
        db.execute(
            update(Talent)
            .where(Talent.subsidiary_id.in_(select(Subsidiary.id).where(in_subtree)))
            .values(
                path=rewrite_path(Talent.path, old_path, new_path),
                updated_by=actor_id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        moved = db.execute(
            update(Subsidiary)
            .where(in_subtree)
            .values(
                path=rewrite_path(Subsidiary.path, old_path, new_path),
                depth=Subsidiary.depth + depth_delta,
                updated_by=actor_id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        db.expire_all()

        subsidiary = Subsidiaries.get(db, subsidiary.id)
        ChangeLogs.record(
            db,
            ChangeAction.move,
            "subsidiary",
            subsidiary.id,
            subsidiary.code,
            actor_id,
            old=before,
            new=snapshot(subsidiary, _AUDITED_FIELDS),
        )
        _publish(
            EventType.subsidiary_moved,
            db,
            subsidiary.id,
            actor_id,
            {"old_path": old_path, "new_path": new_path},
        )
        logger.info(
            "Moved subsidiary %s from %s to %s", subsidiary.id, old_path, new_path
        )
        return {"subsidiary": subsidiary, "affected_children": moved.rowcount - 1}

    @staticmethod
    def deactivate(
        db: Session, subsidiary_id, payload: SubsidiaryDeactivate, actor_id=None
    ) -> dict:
        subsidiary = Subsidiaries.get(db, subsidiary_id)
        _check_version(subsidiary, payload.version)
        actor_id = coerce_uuid(actor_id)
        now = datetime.now(timezone.utc)

        affected_subsidiaries = 1
        affected_talents = 0
        if payload.cascade:
            in_subtree = Subsidiary.path.startswith(subsidiary.path, autoescape=True)
            subtree_ids = select(Subsidiary.id).where(in_subtree)
            talents = db.execute(
                update(Talent)
                .where(Talent.subsidiary_id.in_(subtree_ids))
                .values(is_active=False, updated_by=actor_id, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            descendants = db.execute(
                update(Subsidiary)
                .where(in_subtree, Subsidiary.id != subsidiary.id)
                .values(is_active=False, updated_by=actor_id, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            affected_subsidiaries += descendants.rowcount
            affected_talents = talents.rowcount

        subsidiary.is_active = False
        subsidiary.version += 1
        subsidiary.updated_by = actor_id
        db.flush()
        db.expire_all()

        ChangeLogs.record(
            db,
            ChangeAction.deactivate,
            "subsidiary",
            subsidiary.id,
            subsidiary.code,
            actor_id,
            old={"is_active": True},
            new={"is_active": False, "cascade": payload.cascade},
        )
        _publish(
            EventType.subsidiary_deactivated,
            db,
            subsidiary.id,
            actor_id,
            {"cascade": payload.cascade},
        )
        logger.info(
            "Deactivated subsidiary %s (%d subsidiaries, %d talents)",
            subsidiary.id,
            affected_subsidiaries,
            affected_talents,
        )
        return {"subsidiaries": affected_subsidiaries, "talents": affected_talents}

    @staticmethod
    def reactivate(
        db: Session, subsidiary_id, payload: VersionPayload, actor_id=None
    ) -> Subsidiary:
        subsidiary = Subsidiaries.get(db, subsidiary_id)
        _check_version(subsidiary, payload.version)
        subsidiary.is_active = True
        subsidiary.version += 1
        subsidiary.updated_by = coerce_uuid(actor_id)
        db.flush()
        db.refresh(subsidiary)

        ChangeLogs.record(
            db,
            ChangeAction.reactivate,
            "subsidiary",
            subsidiary.id,
            subsidiary.code,
            actor_id,
            old={"is_active": False},
            new={"is_active": True},
        )
        _publish(EventType.subsidiary_reactivated, db, subsidiary.id, actor_id)
        logger.info("Reactivated subsidiary %s", subsidiary.id)
        return subsidiary

    @staticmethod
    def children_count(db: Session, subsidiary_id) -> int:
        return db.scalar(
            select(func.count())
            .select_from(Subsidiary)
            .where(Subsidiary.parent_id == coerce_uuid(subsidiary_id))
        ) or 0

    @staticmethod
    def talent_count(db: Session, subsidiary_id) -> int:
        return db.scalar(
            select(func.count())
            .select_from(Talent)
            .where(Talent.subsidiary_id == coerce_uuid(subsidiary_id))
        ) or 0


subsidiaries = Subsidiaries()
