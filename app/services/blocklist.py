import logging
import re

from sqlalchemy.orm import Session

from app.models.config import BlocklistAction, PatternType
from app.models.hierarchy import OwnerType
from app.services.config_resolver import ConfigResolver
from app.services.scope_chain import ScopeChains

logger = logging.getLogger(__name__)

BLOCKLIST_ENTITY_TYPE = "external-blocklist-pattern"
FALLBACK_REPLACEMENT = "***"

# A domain only counts when it ends at a path, query, fragment, whitespace or
# the end of the text.
_DOMAIN_TEMPLATE = r"https?://(?:[a-z0-9-]+\.)*{domain}(?=[/?#\s]|$)"


def pattern_regex(pattern: str, pattern_type: PatternType) -> re.Pattern | None:
    """Compile a blocklist entry; ``None`` when a stored regex no longer compiles."""
    if pattern_type == PatternType.domain:
        source = _DOMAIN_TEMPLATE.format(domain=re.escape(pattern))
    elif pattern_type == PatternType.url_regex:
        source = pattern
    else:
        source = re.escape(pattern)
    try:
        return re.compile(source, re.IGNORECASE)
    except re.error as e:
        logger.warning("Skipping invalid blocklist pattern %r: %s", pattern, e)
        return None


class Blocklists:
    @staticmethod
    def effective_entries(db: Session, scope_type: OwnerType, scope_id=None) -> list:
        ScopeChains.require_scope_id(scope_type, scope_id)
        return ConfigResolver.effective_rows(
            db, BLOCKLIST_ENTITY_TYPE, scope_type, scope_id
        )

    @staticmethod
    def test_text(
        db: Session, text: str, scope_type: OwnerType, scope_id=None
    ) -> dict:
        """Match ``text`` against every entry in effect at a scope.

        Any matching reject entry blocks the text, in which case
        ``filtered_text`` is the original. Otherwise replace entries
        substitute their replacement for each match.
        """
        matches = []
        filtered_text = text
        is_blocked = False
        for entry in Blocklists.effective_entries(db, scope_type, scope_id):
            regex = pattern_regex(entry.pattern, entry.pattern_type)
            if regex is None:
                continue
            hits = [hit for hit in regex.finditer(text) if hit.end() > hit.start()]
            if not hits:
                continue
            matches.extend(
                {
                    "entry_id": entry.id,
                    "pattern": entry.pattern,
                    "pattern_type": entry.pattern_type,
                    "matched_text": hit.group(0),
                    "start": hit.start(),
                    "end": hit.end(),
                    "severity": entry.severity,
                    "action": entry.action,
                    "owner_type": entry.owner_type,
                }
                for hit in hits
            )
            if entry.action == BlocklistAction.reject:
                is_blocked = True
            elif entry.action == BlocklistAction.replace:
                replacement = entry.replacement or FALLBACK_REPLACEMENT
                filtered_text = regex.sub(lambda _: replacement, filtered_text)

        logger.debug(
            "Blocklist test at %s/%s: %d matches, blocked=%s",
            scope_type.value,
            scope_id,
            len(matches),
            is_blocked,
        )
        return {
            "original_text": text,
            "is_blocked": is_blocked,
            "matches": matches,
            "filtered_text": text if is_blocked else filtered_text,
        }


blocklists = Blocklists()
