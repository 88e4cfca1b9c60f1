"""Relevance filter strategies, tiering and gates."""

from typing import Optional

from .base import FilterStrategy, classify_in_batches
from .tiering import TierThresholds, assign_tier, count_tiers
from .quality import QualityGate, prerank
from .tiered import TieredFilter
from .two_stage import TwoStageFilter
from .legacy import LegacyCascadeFilter, CommentFilter, ProblemMatchGate
from .prefilter import apply_exclude_filter
from .app_name_gate import AppNameGate, extract_core_app_name
from ..clustering.embedder import SemanticEmbedder
from ..llm.client import ClassificationClient


STRATEGY_TYPES = {
    "tiered": TieredFilter,
    "two_stage": TwoStageFilter,
    "legacy": LegacyCascadeFilter,
}


def create_filter_strategy(
    name: str,
    settings,
    client: ClassificationClient,
    embedder: Optional[SemanticEmbedder] = None,
) -> FilterStrategy:
    """
    Build the one strategy a deployment uses for posts and reviews.
    """
    if name not in STRATEGY_TYPES:
        raise ValueError(f"Unknown filter strategy: {name} (choose from {', '.join(STRATEGY_TYPES)})")

    thresholds = TierThresholds.from_settings(settings)

    if name == "tiered":
        return TieredFilter(embedder=embedder, thresholds=thresholds)
    if name == "two_stage":
        return TwoStageFilter(
            client,
            embedder=embedder,
            embedding_threshold=settings.embedding_threshold,
            verification_cap=settings.verification_cap,
            batch_size=settings.verification_batch_size,
        )
    return LegacyCascadeFilter(
        client,
        quality_gate=QualityGate(settings.min_post_length, settings.min_comment_length),
        thresholds=thresholds,
        batch_size=settings.post_batch_size,
        prerank_top_n=settings.prerank_top_n,
    )


__all__ = [
    "FilterStrategy",
    "classify_in_batches",
    "TierThresholds",
    "assign_tier",
    "count_tiers",
    "QualityGate",
    "prerank",
    "TieredFilter",
    "TwoStageFilter",
    "LegacyCascadeFilter",
    "CommentFilter",
    "ProblemMatchGate",
    "apply_exclude_filter",
    "AppNameGate",
    "extract_core_app_name",
    "STRATEGY_TYPES",
    "create_filter_strategy",
]
