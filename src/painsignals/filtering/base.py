"""Base class for relevance filter strategies."""

from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

from ..llm.client import ClassificationClient, chunk, run_batches
from ..llm.parsing import parse_letter_decisions
from ..llm.usage import UsageTracker
from ..models.items import RawItem, StructuredHypothesis
from ..models.signals import FilterResult, RelevanceDecision, SignalTier, TieredItem


logger = logging.getLogger(__name__)


class FilterStrategy(ABC):
    """
    Abstract base class for relevance filter strategies.
    A pipeline is built with exactly one strategy for posts and reviews.
    """

    name: str = "base"

    @abstractmethod
    async def filter(
        self,
        items: list[RawItem],
        hypothesis: str,
        tracker: UsageTracker,
        structured: Optional[StructuredHypothesis] = None,
    ) -> FilterResult:
        """
        Score and tier items against the hypothesis.

        Args:
            items: Items that already passed the exclude prefilter
            hypothesis: Natural-language hypothesis
            tracker: Per-request usage tracker for any paid calls
            structured: Optional structured hypothesis fields

        Returns:
            FilterResult with tiered items, decisions and stage counts
        """
        pass

    @staticmethod
    def decision(
        item: RawItem,
        stage: str,
        decision: str,
        tier: Optional[SignalTier] = None,
        score: Optional[float] = None,
        reason: str = "",
    ) -> RelevanceDecision:
        return RelevanceDecision(
            item_id=item.id,
            stage=stage,
            decision=decision,
            tier=tier,
            score=score,
            reason=reason,
            source_kind=item.source_kind,
            excerpt=item.text[:200],
        )

    @staticmethod
    def core(item: RawItem, score: float = 1.0, reliability: float = 1.0, title_only: bool = False) -> TieredItem:
        """Verified or passed items count as CORE outside the tiered strategy."""
        return TieredItem(
            item=item,
            relevance_score=score,
            tier=SignalTier.CORE,
            source_reliability=reliability,
            title_only=title_only,
        )


def format_batch(items: list[RawItem], max_chars: int = 400) -> str:
    """Number items 1..N for a batch prompt."""
    lines = []
    for number, item in enumerate(items, start=1):
        title = f"Title: {item.title}\n" if item.title else ""
        body = item.body[:max_chars].replace("\n", " ")
        lines.append(f"[{number}] {title}{body}")
    return "\n\n".join(lines)


BATCH_FAILED = "batch_failed"


async def classify_in_batches(
    client: ClassificationClient,
    tracker: UsageTracker,
    stage: str,
    items: list[RawItem],
    batch_size: int,
    build_prompt: Callable[[list[RawItem]], str],
    allowed: str = "YN",
    max_output_tokens: int = 200,
) -> list[tuple[RawItem, Optional[str]]]:
    """
    Classify items in fixed-size batches, concurrently.

    Returns (item, label) pairs in input order. The label is None when the
    batch failed or the model gave no usable answer for that position;
    callers keep those items.
    """
    batches = chunk(items, batch_size)

    async def worker(index: int, batch: list[RawItem]) -> list[Optional[str]]:
        text = await client.complete(
            build_prompt(batch),
            tracker=tracker,
            stage=stage,
            max_output_tokens=max_output_tokens,
        )
        labels = parse_letter_decisions(text, len(batch), allowed)
        if labels is None:
            logger.warning(f"[{stage}] Batch {index + 1}/{len(batches)} unparseable, keeping all {len(batch)} items")
            return [None] * len(batch)
        return labels

    results = await run_batches(batches, worker)

    pairs: list[tuple[RawItem, Optional[str]]] = []
    for index, (batch, result) in enumerate(zip(batches, results)):
        if isinstance(result, BaseException):
            logger.error(
                f"[{stage}] Batch {index + 1}/{len(batches)} failed, keeping all {len(batch)} items: {result}"
            )
            result = [None] * len(batch)
        pairs.extend(zip(batch, result))
    return pairs
