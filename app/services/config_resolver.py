import logging
from dataclasses import dataclass

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from app.errors import ValidationFailedError
from app.models.hierarchy import OwnerType
from app.services.common import coerce_uuid, count_rows, search_pattern
from app.services.config_cache import ConfigCache
from app.services.config_override import ConfigOverrides
from app.services.config_registry import ConfigEntitySpec, get_spec
from app.services.scope_chain import ScopeChains, ScopeLink, scope_link

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
LANGUAGES = ("en", "zh", "ja")


@dataclass
class ResolveOptions:
    include_inherited: bool = True
    include_disabled: bool = False
    include_inactive: bool = False
    category: str | None = None
    search: str | None = None
    parent_id: str | None = None
    language: str = "en"
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


def _owner_clause(model, link: ScopeLink):
    if link.type == OwnerType.tenant:
        return model.owner_type == OwnerType.tenant
    return and_(model.owner_type == link.type, model.owner_id == link.id)


def _disabled_clause(model, disabled_query):
    # Overrides never hide force-use rows.
    return and_(model.id.in_(disabled_query), model.is_force_use.is_(False))


def _localized(row, field: str, language: str):
    value = getattr(row, f"{field}_{language}", None)
    return value or getattr(row, f"{field}_en")


class ConfigResolver:
    @staticmethod
    def _visible_query(
        db: Session,
        spec: ConfigEntitySpec,
        viewing: ScopeLink,
        options: ResolveOptions,
    ):
        model = spec.model
        chain = ScopeChains.build(db, viewing.type, viewing.id)

        # The viewing scope always sees its own rows; ancestors only share
        # rows flagged for inheritance.
        visibility = [_owner_clause(model, viewing)]
        if options.include_inherited:
            visibility.extend(
                and_(_owner_clause(model, link), model.inherit.is_(True))
                for link in chain
                if link != viewing
            )
        stmt = select(model).where(or_(*visibility))

        if not options.include_inactive:
            stmt = stmt.where(model.is_active.is_(True))
        if options.category and spec.category_field:
            stmt = stmt.where(getattr(model, spec.category_field) == options.category)
        if options.parent_id and spec.parent_field:
            stmt = stmt.where(
                getattr(model, spec.parent_field) == coerce_uuid(options.parent_id)
            )
        if options.search:
            pattern = search_pattern(options.search)
            stmt = stmt.where(
                or_(
                    *(
                        getattr(model, field).ilike(pattern, escape="\\")
                        for field in spec.search_fields
                    )
                )
            )
        return stmt

    @staticmethod
    def _ordered(spec: ConfigEntitySpec, stmt):
        model = spec.model
        order = [model.sort_order.asc()]
        rank = spec.rank_expression()
        if rank is not None:
            order.append(rank.desc())
        order.append(model.created_at.desc())
        return stmt.order_by(*order)

    @staticmethod
    def _serialize(
        spec: ConfigEntitySpec,
        row,
        viewing: ScopeLink,
        disabled_ids: set,
        language: str,
    ) -> dict:
        item = spec.read_schema.model_validate(row).model_dump()
        is_inherited = scope_link(row.owner_type, row.owner_id) != viewing
        item["name"] = _localized(row, "name", language)
        item["description"] = _localized(row, "description", language)
        item["is_inherited"] = is_inherited
        item["is_disabled_here"] = row.id in disabled_ids and not row.is_force_use
        item["can_disable"] = is_inherited and not row.is_force_use
        return item

    @staticmethod
    def resolve(
        db: Session,
        entity_type: str,
        scope_type: OwnerType,
        scope_id=None,
        options: ResolveOptions | None = None,
    ) -> dict:
        """Page of entities visible from a scope, with per-scope flags.

        ``total_matched`` counts every row passing the visibility and filter
        predicates; ``total_visible`` leaves out rows disabled at this scope.
        ``total`` mirrors whichever of the two the page was drawn from.
        """
        options = options or ResolveOptions()
        if options.page < 1:
            raise ValidationFailedError("page must be >= 1")
        if not 1 <= options.page_size <= MAX_PAGE_SIZE:
            raise ValidationFailedError(
                f"page_size must be between 1 and {MAX_PAGE_SIZE}"
            )
        if options.language not in LANGUAGES:
            raise ValidationFailedError(f"Unsupported language: {options.language}")

        ScopeChains.require_scope_id(scope_type, scope_id)
        spec = get_spec(entity_type)
        model = spec.model
        viewing = scope_link(scope_type, scope_id)
        stmt = ConfigResolver._visible_query(db, spec, viewing, options)

        disabled_query = ConfigOverrides.disabled_ids_query(
            entity_type, viewing.type, viewing.id
        )
        total_matched = count_rows(db, stmt)
        disabled = _disabled_clause(model, disabled_query)
        total_visible = total_matched - count_rows(db, stmt.where(disabled))
        if not options.include_disabled:
            stmt = stmt.where(~disabled)

        offset = (options.page - 1) * options.page_size
        rows = db.scalars(
            ConfigResolver._ordered(spec, stmt).limit(options.page_size).offset(offset)
        ).all()
        disabled_ids = ConfigOverrides.get_disabled_ids(
            db, entity_type, viewing.type, viewing.id
        )
        items = [
            ConfigResolver._serialize(spec, row, viewing, disabled_ids, options.language)
            for row in rows
        ]
        return {
            "items": items,
            "total": total_matched if options.include_disabled else total_visible,
            "total_matched": total_matched,
            "total_visible": total_visible,
            "page": options.page,
            "page_size": options.page_size,
        }

    @staticmethod
    def effective_rows(
        db: Session, entity_type: str, scope_type: OwnerType, scope_id=None
    ):
        """Active, enabled rows a scope inherits or owns, in resolve order."""
        spec = get_spec(entity_type)
        viewing = scope_link(scope_type, scope_id)
        disabled_query = ConfigOverrides.disabled_ids_query(
            entity_type, viewing.type, viewing.id
        )
        stmt = ConfigResolver._visible_query(db, spec, viewing, ResolveOptions())
        stmt = stmt.where(~_disabled_clause(spec.model, disabled_query))
        return db.scalars(ConfigResolver._ordered(spec, stmt)).all()

    @staticmethod
    def effective_for_talent(
        db: Session, entity_type: str, talent_id, language: str = "en"
    ) -> list[dict]:
        """Every active, enabled entity a talent inherits, served from cache
        when possible."""
        spec = get_spec(entity_type)
        talent = ScopeChains.ensure_scope_exists(db, OwnerType.talent, talent_id)
        tenant_schema = db.info.get("tenant_schema")
        # Cached lists are keyed per talent only, so only the default
        # language goes through the cache.
        use_cache = bool(tenant_schema) and language == "en"
        if use_cache:
            cached = ConfigCache.get(tenant_schema, entity_type, talent.id)
            if cached is not None:
                return cached

        viewing = ScopeLink(OwnerType.talent, talent.id)
        rows = ConfigResolver.effective_rows(db, entity_type, viewing.type, viewing.id)
        items = [
            spec.read_schema.model_validate(row).model_dump(mode="json")
            | {
                "name": _localized(row, "name", language),
                "is_inherited": scope_link(row.owner_type, row.owner_id) != viewing,
            }
            for row in rows
        ]
        if use_cache:
            ConfigCache.set(tenant_schema, entity_type, talent.id, items)
        return items


config_resolver = ConfigResolver()
