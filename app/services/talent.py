import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationFailedError, VersionConflictError
from app.models.change_log import ChangeAction
from app.models.hierarchy import Subsidiary, Talent
from app.schemas.hierarchy import TalentCreate, TalentMove, TalentUpdate, VersionPayload
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
    "subsidiary_id",
    "path",
    "name_en",
    "name_zh",
    "name_ja",
    "display_name",
    "avatar_url",
    "homepage_path",
    "timezone",
    "settings",
    "is_active",
)
_REQUIRED_FIELDS = {"name_en", "display_name", "timezone"}


def _talent_path(db: Session, subsidiary_id, code: str) -> str:
    if subsidiary_id is None:
        return f"/{code}/"
    subsidiary = db.get(Subsidiary, coerce_uuid(subsidiary_id))
    if not subsidiary:
        raise NotFoundError("Subsidiary not found")
    return f"{subsidiary.path}{code}/"


def _check_version(talent: Talent, version: int) -> None:
    if talent.version != version:
        raise VersionConflictError()


def _ensure_homepage_path_free(db: Session, homepage_path: str, talent_id=None):
    stmt = select(Talent.id).where(Talent.homepage_path == homepage_path)
    if talent_id is not None:
        stmt = stmt.where(Talent.id != talent_id)
    if db.scalars(stmt).first() is not None:
        raise ValidationFailedError(
            "Homepage path is already in use", code="HOMEPAGE_PATH_TAKEN"
        )


def _publish(event_type: EventType, db: Session, talent: Talent, actor_id) -> None:
    publish_event(
        event_type,
        "talent",
        talent.id,
        actor_id=actor_id,
        tenant_schema=db.info.get("tenant_schema"),
        db=db,
        payload={"path": talent.path},
    )


class Talents(ListResponseMixin):
    @staticmethod
    def create(db: Session, payload: TalentCreate, actor_id=None) -> Talent:
        taken = db.scalars(
            select(Talent.id)
            .where(Talent.code == payload.code)
            .union_all(select(Subsidiary.id).where(Subsidiary.code == payload.code))
        )
        if taken.first() is not None:
            raise ValidationFailedError("Code already exists", code="CODE_ALREADY_EXISTS")
        if payload.homepage_path:
            _ensure_homepage_path_free(db, payload.homepage_path)

        path = _talent_path(db, payload.subsidiary_id, payload.code)
        actor_id = coerce_uuid(actor_id)
        talent = Talent(
            **payload.model_dump(),
            path=path,
            created_by=actor_id,
            updated_by=actor_id,
        )
        db.add(talent)
        db.flush()
        db.refresh(talent)

        ChangeLogs.record(
            db,
            ChangeAction.create,
            "talent",
            talent.id,
            talent.code,
            actor_id,
            new=snapshot(talent, _AUDITED_FIELDS),
        )
        _publish(EventType.talent_created, db, talent, actor_id)
        logger.info("Created talent %s at %s", talent.id, talent.path)
        return talent

    @staticmethod
    def get(db: Session, talent_id) -> Talent:
        talent = db.get(Talent, coerce_uuid(talent_id))
        if not talent:
            raise NotFoundError("Talent not found")
        return talent

    @staticmethod
    def list(
        db: Session,
        subsidiary_id: str | None,
        search: str | None,
        is_active: bool | None,
        order_by: str,
        order_dir: str,
        limit: int,
        offset: int,
    ) -> list[Talent]:
        stmt = select(Talent)
        if subsidiary_id is not None:
            stmt = stmt.where(Talent.subsidiary_id == coerce_uuid(subsidiary_id))
        if search:
            pattern = search_pattern(search)
            stmt = stmt.where(
                or_(
                    Talent.code.ilike(pattern, escape="\\"),
                    Talent.name_en.ilike(pattern, escape="\\"),
                    Talent.display_name.ilike(pattern, escape="\\"),
                )
            )
        if is_active is not None:
            stmt = stmt.where(Talent.is_active == is_active)
        stmt = apply_ordering(
            stmt,
            order_by,
            order_dir,
            {
                "code": Talent.code,
                "name": Talent.name_en,
                "display_name": Talent.display_name,
                "created_at": Talent.created_at,
            },
        )
        return db.scalars(apply_pagination(stmt, limit, offset)).all()

    @staticmethod
    def update(db: Session, talent_id, payload: TalentUpdate, actor_id=None) -> Talent:
        talent = Talents.get(db, talent_id)
        data = payload.model_dump(exclude_unset=True)
        _check_version(talent, data.pop("version"))

        new_homepage_path = data.get("homepage_path")
        if new_homepage_path and new_homepage_path != talent.homepage_path:
            _ensure_homepage_path_free(db, new_homepage_path, talent.id)

        before = snapshot(talent, _AUDITED_FIELDS)
        for key, value in data.items():
            if value is None and key in _REQUIRED_FIELDS:
                continue
            setattr(talent, key, value)
        talent.version += 1
        talent.updated_by = coerce_uuid(actor_id)
        db.flush()
        db.refresh(talent)

        ChangeLogs.record(
            db,
            ChangeAction.update,
            "talent",
            talent.id,
            talent.code,
            actor_id,
            old=before,
            new=snapshot(talent, _AUDITED_FIELDS),
        )
        _publish(EventType.talent_updated, db, talent, actor_id)
        logger.info("Updated talent %s", talent.id)
        return talent

    @staticmethod
    def move(db: Session, talent_id, payload: TalentMove, actor_id=None) -> Talent:
        talent = Talents.get(db, talent_id)
        _check_version(talent, payload.version)

        before = snapshot(talent, _AUDITED_FIELDS)
        talent.path = _talent_path(db, payload.new_subsidiary_id, talent.code)
        talent.subsidiary_id = coerce_uuid(payload.new_subsidiary_id)
        talent.version += 1
        talent.updated_by = coerce_uuid(actor_id)
        db.flush()
        db.refresh(talent)

        ChangeLogs.record(
            db,
            ChangeAction.move,
            "talent",
            talent.id,
            talent.code,
            actor_id,
            old=before,
            new=snapshot(talent, _AUDITED_FIELDS),
        )
        _publish(EventType.talent_moved, db, talent, actor_id)
        logger.info("Moved talent %s to %s", talent.id, talent.path)
        return talent

    @staticmethod
    def deactivate(
        db: Session, talent_id, payload: VersionPayload, actor_id=None
    ) -> Talent:
        return Talents._set_active(db, talent_id, payload, False, actor_id)

    @staticmethod
    def reactivate(
        db: Session, talent_id, payload: VersionPayload, actor_id=None
    ) -> Talent:
        return Talents._set_active(db, talent_id, payload, True, actor_id)

    @staticmethod
    def _set_active(
        db: Session, talent_id, payload: VersionPayload, is_active: bool, actor_id
    ) -> Talent:
        talent = Talents.get(db, talent_id)
        _check_version(talent, payload.version)
        talent.is_active = is_active
        talent.version += 1
        talent.updated_by = coerce_uuid(actor_id)
        db.flush()
        db.refresh(talent)

        ChangeLogs.record(
            db,
            ChangeAction.reactivate if is_active else ChangeAction.deactivate,
            "talent",
            talent.id,
            talent.code,
            actor_id,
            old={"is_active": not is_active},
            new={"is_active": is_active},
        )
        _publish(
            EventType.talent_reactivated if is_active else EventType.talent_deactivated,
            db,
            talent,
            actor_id,
        )
        logger.info("Set talent %s is_active=%s", talent.id, is_active)
        return talent


talents = Talents()
