"""
Pain signal analysis.

Derives intensity, a 0-10 pain score, solution seeking and willingness to
pay from filtered items using weighted keyword tiers.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import logging

from . import lexicon
from ..filtering.quality import TITLE_ONLY_WEIGHT
from ..models.items import RawItem
from ..models.signals import PainSignal, PainSummary, TieredItem


logger = logging.getLogger(__name__)

MAX_SCORE = 10.0
EXCERPT_CHARS = 500

# Star rating -> minimum pain score for low-rated reviews
RATING_FLOORS = {1: 6.0, 2: 5.0, 3: 4.0}


def match_keyword(lower_text: str, keyword: str) -> bool:
    """Phrases match as substrings, single words on word boundaries."""
    if " " in keyword:
        return keyword in lower_text
    return re.search(rf"\b{re.escape(keyword)}\b", lower_text) is not None


def engagement_multiplier(votes: int) -> float:
    """Log-scaled, capped at 1.2x."""
    if votes <= 1:
        return 1.0
    return min(1.2, 1 + math.log10(votes) * 0.05)


def recency_multiplier(created_at: Optional[datetime], now: Optional[datetime] = None) -> float:
    if created_at is None:
        return 1.0
    now = now or datetime.now(created_at.tzinfo)
    age_days = (now - created_at).total_seconds() / 86400
    if age_days <= 30:
        return 1.5
    if age_days <= 90:
        return 1.25
    if age_days <= 180:
        return 1.0
    if age_days <= 365:
        return 0.75
    return 0.5


def intensity_for(score: float) -> str:
    if score >= 7:
        return "high"
    if score >= 4:
        return "medium"
    return "low"


@dataclass
class ScoreBreakdown:
    """Keyword matches and the final score for one text."""

    score: float = 0.0
    matched: list[str] = field(default_factory=list)
    high: int = 0
    medium: int = 0
    low: int = 0
    solution_seeking: int = 0
    wtp: int = 0
    wtp_confidence: str = "none"
    negative_context: bool = False
    wtp_excluded: bool = False


def score_text(
    text: str,
    votes: int = 0,
    created_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> ScoreBreakdown:
    """
    Weighted keyword score on a 0-10 scale.
    High x3, medium x2, low x1, solution seeking x2, willingness to pay x4.
    """
    lower = text.lower()
    result = ScoreBreakdown()
    result.negative_context = any(p.search(lower) for p in lexicon.NEGATIVE_CONTEXT_PATTERNS)
    result.wtp_excluded = any(p.search(lower) for p in lexicon.WTP_EXCLUSION_PATTERNS)

    def count(keywords: list[str]) -> int:
        hits = [k for k in keywords if match_keyword(lower, k)]
        result.matched.extend(hits)
        return len(hits)

    result.high = count(lexicon.HIGH_INTENSITY_KEYWORDS)
    result.medium = count(lexicon.MEDIUM_INTENSITY_KEYWORDS)
    result.low = count(lexicon.LOW_INTENSITY_KEYWORDS)
    result.solution_seeking = count(lexicon.SOLUTION_SEEKING_KEYWORDS)

    if not result.wtp_excluded:
        strong = count(lexicon.WTP_STRONG)
        medium = count(lexicon.WTP_MEDIUM)
        low = count(lexicon.WTP_LOW)
        result.wtp = strong + medium + low
        if strong:
            result.wtp_confidence = "high"
        elif medium:
            result.wtp_confidence = "medium"
        elif low:
            result.wtp_confidence = "low"

    raw = (
        result.high * 3
        + result.medium * 2
        + result.low
        + result.solution_seeking * 2
        + result.wtp * 4
    )
    score = min(MAX_SCORE, raw * engagement_multiplier(votes) * recency_multiplier(created_at, now))

    no_pain = result.high == 0 and result.medium == 0
    low_only = no_pain and result.low > 0
    if low_only:
        score = min(4.0, score)
    if no_pain and result.solution_seeking > 0:
        score = min(5.0, score)

    if result.wtp_confidence == "high":
        score = min(MAX_SCORE, score + 1)
    if result.high > 0 and result.solution_seeking > 0:
        score = min(MAX_SCORE, score + 0.5)

    if result.negative_context:
        score *= 0.6
    if low_only:
        score -= 1.0

    result.score = round(min(MAX_SCORE, max(0.0, score)), 1)
    # Keep order, drop duplicates
    result.matched = list(dict.fromkeys(result.matched))
    return result


class PainSignalAnalyzer:
    """
    Turns CORE/STRONG tiered items into pain signals.
    RELATED and ADJACENT items are kept for evidence but not scored here.
    """

    def __init__(self, now: Optional[datetime] = None):
        self.now = now

    def analyze_item(self, tiered: TieredItem) -> PainSignal:
        item: RawItem = tiered.item
        text = (item.title or "") if tiered.title_only else item.text
        votes = 0 if item.is_review else item.score
        breakdown = score_text(text, votes=votes, created_at=item.created_at, now=self.now)

        score = breakdown.score
        if tiered.title_only:
            score *= TITLE_ONLY_WEIGHT
        if item.is_review and item.rating in RATING_FLOORS:
            score = max(score, RATING_FLOORS[item.rating])
        score = round(min(MAX_SCORE, max(0.0, score)), 1)

        return PainSignal(
            item_id=item.id,
            text=text[:EXCERPT_CHARS],
            source=item.source,
            source_kind=item.source_kind,
            tier=tiered.tier,
            intensity=intensity_for(score),
            score=score,
            base_score=score,
            solution_seeking=breakdown.solution_seeking > 0,
            willingness_to_pay=breakdown.wtp > 0,
            wtp_confidence=breakdown.wtp_confidence,
            matched_keywords=breakdown.matched,
            rating=item.rating,
            engagement=item.score,
            created_at=item.created_at,
            title_only=tiered.title_only,
        )

    def analyze(self, items: list[TieredItem]) -> list[PainSignal]:
        """
        Score every analysis-eligible item. Items with no pain markers at all
        (score 0) are dropped; highest score first.
        """
        eligible = [t for t in items if t.tier.feeds_analysis]
        signals = [self.analyze_item(t) for t in eligible]
        signals = [s for s in signals if s.score > 0]
        signals.sort(key=lambda s: s.score, reverse=True)
        logger.info(f"Pain analysis: {len(signals)} signals from {len(eligible)} eligible items")
        return signals


def summarize(signals: list[PainSignal], top_keywords: int = 10) -> PainSummary:
    """Aggregate counts, average score and the most common pain keywords."""
    if not signals:
        return PainSummary()

    keywords = Counter(k for s in signals for k in s.matched_keywords)
    return PainSummary(
        total_signals=len(signals),
        high_intensity=sum(1 for s in signals if s.intensity == "high"),
        medium_intensity=sum(1 for s in signals if s.intensity == "medium"),
        low_intensity=sum(1 for s in signals if s.intensity == "low"),
        solution_seeking=sum(1 for s in signals if s.solution_seeking),
        willingness_to_pay=sum(1 for s in signals if s.willingness_to_pay),
        average_score=round(sum(s.score for s in signals) / len(signals), 2),
        top_keywords=[k for k, _ in keywords.most_common(top_keywords)],
    )
