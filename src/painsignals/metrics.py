"""Filtering metrics and the overall quality level of a run."""

from typing import Optional
import logging

from .models.signals import (
    ExpansionAttempt,
    FilteringMetrics,
    FilterResult,
    QualityLevel,
    SignalTier,
)


logger = logging.getLogger(__name__)


def calculate_quality_level(post_filter_rate: float, comment_filter_rate: Optional[float] = None) -> QualityLevel:
    """
    Average filter rate across posts and comments (percent).
    < 30 high, < 60 medium, otherwise low.
    """
    rates = [post_filter_rate]
    if comment_filter_rate is not None:
        rates.append(comment_filter_rate)
    average = sum(rates) / len(rates)

    if average < 30:
        return "high"
    if average < 60:
        return "medium"
    return "low"


def build_metrics(
    post_result: FilterResult,
    comment_result: Optional[FilterResult] = None,
    posts_found: int = 0,
    comments_found: int = 0,
    prefiltered: int = 0,
    expansion_attempts: Optional[list[ExpansionAttempt]] = None,
    communities_searched: Optional[list[str]] = None,
    strategy: str = "",
) -> FilteringMetrics:
    """
    Computed once, after filtering and expansion have finished.
    """
    comment_result = comment_result or FilterResult()
    has_comments = comment_result.input_count > 0

    tier_counts = {tier.value: 0 for tier in SignalTier}
    for result in (post_result, comment_result):
        for tier, count in result.tier_counts.items():
            tier_counts[tier] = tier_counts.get(tier, 0) + count

    kept = post_result.items + comment_result.items
    metrics = FilteringMetrics(
        posts_found=posts_found or post_result.input_count,
        posts_analyzed=post_result.input_count,
        posts_filtered=post_result.input_count - post_result.output_count,
        post_filter_rate=post_result.filter_rate,
        comments_found=comments_found or comment_result.input_count,
        comments_analyzed=comment_result.input_count,
        comments_filtered=comment_result.input_count - comment_result.output_count,
        comment_filter_rate=comment_result.filter_rate,
        prefiltered=prefiltered,
        quality_level=calculate_quality_level(
            post_result.filter_rate,
            comment_result.filter_rate if has_comments else None,
        ),
        core_signals=sum(1 for t in kept if t.tier == SignalTier.CORE),
        related_signals=sum(1 for t in kept if t.tier in (SignalTier.STRONG, SignalTier.RELATED)),
        tier_counts=tier_counts,
        stages=post_result.stages + comment_result.stages,
        expansion_attempts=list(expansion_attempts or []),
        communities_searched=list(communities_searched or []),
        strategy=strategy,
    )

    logger.info(
        f"Metrics: posts {metrics.posts_analyzed} analyzed ({metrics.post_filter_rate}% filtered), "
        f"comments {metrics.comments_analyzed} analyzed ({metrics.comment_filter_rate}% filtered), "
        f"quality={metrics.quality_level}"
    )
    return metrics
