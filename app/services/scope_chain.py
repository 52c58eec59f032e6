import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationFailedError
from app.models.hierarchy import OwnerType, Subsidiary, Talent
from app.services.common import coerce_uuid


@dataclass(frozen=True)
class ScopeLink:
    type: OwnerType
    id: uuid.UUID | None = None


TENANT_LINK = ScopeLink(OwnerType.tenant, None)


def ancestor_paths(path: str) -> list[str]:
    """Strict prefixes of a materialized path, shortest first.

    ``"/A/B/C/"`` yields ``["/A/", "/A/B/"]``.
    """
    segments = [segment for segment in path.split("/") if segment]
    return [
        "/" + "/".join(segments[:size]) + "/" for size in range(1, len(segments))
    ]


def scope_link(scope_type: OwnerType, scope_id) -> ScopeLink:
    if scope_type == OwnerType.tenant:
        return TENANT_LINK
    return ScopeLink(scope_type, coerce_uuid(scope_id))


class ScopeChains:
    @staticmethod
    def build(db: Session, scope_type: OwnerType, scope_id=None) -> list[ScopeLink]:
        """Ordered ancestry of a scope, tenant first and the scope itself last.

        Unknown subsidiaries or talents yield just the tenant link.
        """
        if scope_type == OwnerType.tenant:
            return [TENANT_LINK]
        scope_id = coerce_uuid(scope_id)
        if scope_id is None:
            return [TENANT_LINK]

        if scope_type == OwnerType.subsidiary:
            node = db.get(Subsidiary, scope_id)
        else:
            node = db.get(Talent, scope_id)
        if node is None:
            return [TENANT_LINK]

        chain = [TENANT_LINK]
        prefixes = ancestor_paths(node.path)
        if prefixes:
            ancestors = db.scalars(
                select(Subsidiary)
                .where(Subsidiary.path.in_(prefixes))
                .order_by(Subsidiary.depth)
            ).all()
            chain.extend(
                ScopeLink(OwnerType.subsidiary, ancestor.id) for ancestor in ancestors
            )
        chain.append(ScopeLink(scope_type, node.id))
        return chain

    @staticmethod
    def require_scope_id(scope_type: OwnerType, scope_id) -> None:
        if scope_type != OwnerType.tenant and scope_id is None:
            raise ValidationFailedError(
                f"{scope_type.value} scope requires a scope id", code="INVALID_SCOPE"
            )

    @staticmethod
    def ensure_scope_exists(db: Session, scope_type: OwnerType, scope_id=None):
        """Validate a scope reference and return the subsidiary or talent row.

        Tenant scope returns ``None``.
        """
        if scope_type == OwnerType.tenant:
            if scope_id is not None:
                raise ValidationFailedError(
                    "Tenant scope does not take a scope id", code="INVALID_SCOPE"
                )
            return None
        ScopeChains.require_scope_id(scope_type, scope_id)
        model = Subsidiary if scope_type == OwnerType.subsidiary else Talent
        node = db.get(model, coerce_uuid(scope_id))
        if node is None:
            raise NotFoundError(f"{scope_type.value.capitalize()} not found")
        return node


scope_chains = ScopeChains()
