"""Free local gates: content quality and first-person pre-ranking."""

import re
from dataclasses import dataclass, field
import logging

from ..models.items import RawItem


logger = logging.getLogger(__name__)

REMOVED_MARKERS = {"[removed]", "[deleted]", "[removed by reddit]"}
MIN_RECOVERABLE_TITLE = 30
TITLE_ONLY_WEIGHT = 0.7
MAX_NON_ASCII_RATIO = 0.3

SPAM_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in [
        r"\b(?:promo|discount|coupon|referral)\s+code\b",
        r"\buse\s+my\s+(?:link|code)\b",
        r"\bdm\s+me\s+for\b",
        r"\bclick\s+(?:here|the\s+link)\b",
        r"\b(?:buy|order)\s+now\b",
        r"\bcheck\s+out\s+my\s+(?:channel|course|store|newsletter)\b",
        r"\b(?:onlyfans|crypto\s+giveaway|airdrop)\b",
    ]
]

LINK = re.compile(r"https?://", re.IGNORECASE)
MAX_LINKS = 3

FIRST_PERSON = re.compile(r"\b(?:i|i'm|i've|i'd|me|my|mine|we|we're|our|us)\b", re.IGNORECASE)


@dataclass
class QualityOutcome:
    """Items that passed the quality gate and why others didn't."""

    kept: list[RawItem] = field(default_factory=list)
    title_only: set[str] = field(default_factory=set)
    rejected: dict[str, int] = field(default_factory=dict)


def non_ascii_ratio(text: str) -> float:
    letters = [c for c in text if c.isalpha()]
    if not letters:
        return 0.0
    return sum(1 for c in letters if ord(c) > 127) / len(letters)


class QualityGate:
    """
    Rejects items that are too short, removed, non-English or spam.
    Posts with a removed body but a substantive title survive title-only.
    """

    def __init__(self, min_post_length: int = 50, min_comment_length: int = 30):
        self.min_post_length = min_post_length
        self.min_comment_length = min_comment_length

    def check(self, item: RawItem) -> tuple[bool, str]:
        """Return (passed, reason). Reason is "title_only" for recovered posts."""
        body = (item.body or "").strip()
        title = (item.title or "").strip()

        if body.lower() in REMOVED_MARKERS:
            if not item.is_comment and not item.is_review and len(title) >= MIN_RECOVERABLE_TITLE:
                return True, "title_only"
            return False, "removed"

        text = item.text
        minimum = self.min_post_length
        if item.is_comment or item.is_review:
            minimum = self.min_comment_length
        if len(text.strip()) < minimum:
            return False, "too_short"

        if non_ascii_ratio(text) > MAX_NON_ASCII_RATIO:
            return False, "non_english"

        for pattern in SPAM_PATTERNS:
            if pattern.search(text):
                return False, "spam"
        if len(LINK.findall(text)) >= MAX_LINKS:
            return False, "spam"

        return True, "ok"

    def apply(self, items: list[RawItem]) -> QualityOutcome:
        outcome = QualityOutcome()
        for item in items:
            passed, reason = self.check(item)
            if passed:
                outcome.kept.append(item)
                if reason == "title_only":
                    outcome.title_only.add(item.id)
            else:
                outcome.rejected[reason] = outcome.rejected.get(reason, 0) + 1

        logger.info(
            f"Quality gate: {len(outcome.kept)}/{len(items)} passed "
            f"(rejected: {outcome.rejected or 'none'})"
        )
        return outcome


def prerank_score(item: RawItem) -> float:
    """
    Cheap relevance proxy: first-person voice, questions and engagement.
    """
    text = item.text
    first_person = min(len(FIRST_PERSON.findall(text)), 10)
    questions = min(text.count("?"), 3)
    rating_bonus = 0.0
    if item.rating is not None:
        rating_bonus = max(0, 4 - item.rating)
    return first_person * 0.5 + questions * 0.5 + item.engagement_score + rating_bonus


def prerank(items: list[RawItem], top_n: int) -> list[RawItem]:
    """Keep the top-N items by the local heuristic score, stable on ties."""
    if len(items) <= top_n:
        return list(items)
    ranked = sorted(enumerate(items), key=lambda pair: (-prerank_score(pair[1]), pair[0]))
    kept = [item for _, item in ranked[:top_n]]
    logger.info(f"Pre-rank: kept top {len(kept)} of {len(items)}")
    return kept
