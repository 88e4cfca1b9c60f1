"""Exclude-keyword prefilter. Free, local, runs before any paid stage."""

import logging

from ..models.items import RawItem


logger = logging.getLogger(__name__)


def matches_exclude(item: RawItem, exclude_terms: list[str]) -> bool:
    """True if title+body contains any exclude term (case-insensitive substring)."""
    text = item.text.lower()
    return any(term and term.lower() in text for term in exclude_terms)


def apply_exclude_filter(items: list[RawItem], exclude_terms: list[str]) -> list[RawItem]:
    """
    Drop items matching an exclude term. Idempotent: running it again on
    its own output with the same terms removes nothing.
    """
    terms = [t.strip().lower() for t in exclude_terms if t and t.strip()]
    if not terms:
        return list(items)

    kept = [item for item in items if not matches_exclude(item, terms)]
    removed = len(items) - len(kept)
    if removed:
        logger.info(f"Exclude prefilter: removed {removed} of {len(items)} items")
    return kept
