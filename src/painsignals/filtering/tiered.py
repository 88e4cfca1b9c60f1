"""Tiered filter: embedding similarity only, no classification calls."""

from typing import Optional
import logging

from .base import FilterStrategy
from .tiering import TierThresholds, assign_tier, clamp_score, count_tiers
from ..clustering.embedder import SemanticEmbedder
from ..llm.usage import UsageTracker
from ..models.items import RawItem, SourceKind, StructuredHypothesis
from ..models.signals import FilterResult, SignalTier, StageCount, TieredItem


logger = logging.getLogger(__name__)

# How much a source kind's signal can be trusted
SOURCE_RELIABILITY = {
    SourceKind.APP_REVIEW: 1.0,
    SourceKind.COMMUNITY_POST: 0.9,
    SourceKind.COMMUNITY_COMMENT: 0.7,
}


class TieredFilter(FilterStrategy):
    """
    Buckets every item into a tier by embedding similarity to the hypothesis.
    Cheapest strategy: zero paid calls. NOISE items are dropped from the
    output but still counted.
    """

    name = "tiered"

    def __init__(
        self,
        embedder: Optional[SemanticEmbedder] = None,
        thresholds: Optional[TierThresholds] = None,
    ):
        self.embedder = embedder or SemanticEmbedder()
        self.thresholds = thresholds or TierThresholds()

    async def filter(
        self,
        items: list[RawItem],
        hypothesis: str,
        tracker: UsageTracker,
        structured: Optional[StructuredHypothesis] = None,
    ) -> FilterResult:
        to_score = list(items)
        if not to_score:
            return FilterResult(tier_counts=count_tiers([]))

        logger.info(f"[Tiered] Scoring {len(to_score)} items against hypothesis")
        scores = await self.embedder.score_items(hypothesis, to_score)

        scored: list[TieredItem] = []
        decisions = []
        for item, raw_score in zip(to_score, scores):
            score = clamp_score(raw_score)
            tier = assign_tier(score, self.thresholds)
            scored.append(
                TieredItem(
                    item=item,
                    relevance_score=score,
                    tier=tier,
                    source_reliability=SOURCE_RELIABILITY.get(item.source_kind, 0.5),
                )
            )
            decisions.append(self.decision(item, "embedding_tier", tier.value, tier=tier, score=score))

        kept = [t for t in scored if t.tier != SignalTier.NOISE]
        # Highest relevance first
        kept.sort(key=lambda t: t.relevance_score, reverse=True)
        counts = count_tiers(scored)

        logger.info(
            f"[Tiered] core={counts['core']} strong={counts['strong']} "
            f"related={counts['related']} adjacent={counts['adjacent']} noise={counts['noise']}"
        )

        return FilterResult(
            items=kept,
            decisions=decisions,
            stages=[StageCount(stage="embedding_tier", before=len(items), after=len(kept))],
            input_count=len(items),
            tier_counts=counts,
        )
