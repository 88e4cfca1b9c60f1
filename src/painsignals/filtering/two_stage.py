"""Two-stage filter: loose embedding candidates, then strict YES/NO verification."""

from typing import Optional
import logging

from .base import BATCH_FAILED, FilterStrategy, classify_in_batches, format_batch
from .tiering import clamp_score, count_tiers
from ..clustering.embedder import SemanticEmbedder
from ..llm.client import ClassificationClient
from ..llm.usage import UsageTracker
from ..models.items import RawItem, StructuredHypothesis
from ..models.signals import FilterResult, SignalTier, StageCount, TieredItem


logger = logging.getLogger(__name__)


class TwoStageFilter(FilterStrategy):
    """
    Stage 1: embedding similarity above a loose threshold selects candidates.
    Stage 2: candidates are ranked and capped to bound verification cost.
    Stage 3: strict YES/NO verification. Only verified items become CORE.
    """

    name = "two_stage"

    VERIFY_PROMPT = """Hypothesis: "{hypothesis}"

For each numbered post below, decide whether it is SPECIFICALLY about the
problem described in the hypothesis.

- Y = the author is experiencing this exact problem
- N = off-topic, tangentially related, or about a different problem

Be strict. A neighbouring problem is not the same problem.

Posts:
{posts}

Respond with exactly {count} letters (Y or N), one per post, in order, with no other text.
Example for 3 posts: YNY"""

    def __init__(
        self,
        client: ClassificationClient,
        embedder: Optional[SemanticEmbedder] = None,
        embedding_threshold: float = 0.28,
        verification_cap: int = 50,
        batch_size: int = 10,
    ):
        self.client = client
        self.embedder = embedder or SemanticEmbedder()
        self.embedding_threshold = embedding_threshold
        self.verification_cap = verification_cap
        self.batch_size = batch_size

    async def filter(
        self,
        items: list[RawItem],
        hypothesis: str,
        tracker: UsageTracker,
        structured: Optional[StructuredHypothesis] = None,
    ) -> FilterResult:
        if not items:
            return FilterResult(tier_counts=count_tiers([]))

        # Stage 1: embedding candidates
        scores = [clamp_score(s) for s in await self.embedder.score_items(hypothesis, items)]
        candidates = [
            (item, score)
            for item, score in zip(items, scores)
            if score >= self.embedding_threshold
        ]
        logger.info(
            f"[Two-stage] Stage 1: {len(candidates)}/{len(items)} above {self.embedding_threshold}"
        )

        # Stage 2: rank and cap
        candidates.sort(key=lambda pair: pair[1], reverse=True)
        capped = candidates[:self.verification_cap]
        if len(candidates) > len(capped):
            logger.info(f"[Two-stage] Stage 2: capped {len(candidates)} candidates to {len(capped)}")

        # Stage 3: verification
        score_by_id = {item.id: score for item, score in capped}
        pairs = await classify_in_batches(
            self.client,
            tracker,
            stage="verification",
            items=[item for item, _ in capped],
            batch_size=self.batch_size,
            build_prompt=lambda batch: self.VERIFY_PROMPT.format(
                hypothesis=hypothesis,
                posts=format_batch(batch, max_chars=500),
                count=len(batch),
            ),
        )

        verified: list[TieredItem] = []
        decisions = []
        for item, label in pairs:
            score = score_by_id[item.id]
            if label is None:
                verified.append(self.core(item, score))
                decisions.append(
                    self.decision(item, "verification", "Y", tier=SignalTier.CORE, score=score, reason=BATCH_FAILED)
                )
            elif label == "Y":
                verified.append(self.core(item, score))
                decisions.append(self.decision(item, "verification", "Y", tier=SignalTier.CORE, score=score))
            else:
                decisions.append(self.decision(item, "verification", "N", tier=SignalTier.NOISE, score=score))

        logger.info(f"[Two-stage] Stage 3: {len(verified)}/{len(capped)} verified")

        noise_count = len(items) - len(verified)
        tier_counts = count_tiers(verified)
        tier_counts[SignalTier.NOISE.value] = noise_count

        return FilterResult(
            items=verified,
            decisions=decisions,
            stages=[
                StageCount(stage="embedding", before=len(items), after=len(candidates)),
                StageCount(stage="cap", before=len(candidates), after=len(capped)),
                StageCount(stage="verification", before=len(capped), after=len(verified)),
            ],
            input_count=len(items),
            tier_counts=tier_counts,
        )
