"""Signal tiering: continuous relevance score to a discrete confidence tier."""

import math
from pydantic import BaseModel, Field, model_validator

from ..models.signals import SignalTier, TieredItem


class TierThresholds(BaseModel):
    """Lower bounds per tier. Must be strictly decreasing."""

    core: float = Field(default=0.45, ge=0, le=1)
    strong: float = Field(default=0.35, ge=0, le=1)
    related: float = Field(default=0.25, ge=0, le=1)
    adjacent: float = Field(default=0.15, ge=0, le=1)

    @model_validator(mode="after")
    def check_order(self) -> "TierThresholds":
        if not (self.core > self.strong > self.related > self.adjacent):
            raise ValueError("Tier thresholds must be strictly decreasing")
        return self

    @classmethod
    def from_settings(cls, settings) -> "TierThresholds":
        return cls(
            core=settings.tier_core_threshold,
            strong=settings.tier_strong_threshold,
            related=settings.tier_related_threshold,
            adjacent=settings.tier_adjacent_threshold,
        )

    def ordered(self) -> list[tuple[SignalTier, float]]:
        return [
            (SignalTier.CORE, self.core),
            (SignalTier.STRONG, self.strong),
            (SignalTier.RELATED, self.related),
            (SignalTier.ADJACENT, self.adjacent),
        ]


DEFAULT_THRESHOLDS = TierThresholds()


def assign_tier(score: float, thresholds: TierThresholds = DEFAULT_THRESHOLDS) -> SignalTier:
    """
    Highest tier whose threshold the score clears.
    Total: NaN and anything below the lowest threshold is NOISE.
    """
    if score is None or math.isnan(score):
        return SignalTier.NOISE
    for tier, minimum in thresholds.ordered():
        if score >= minimum:
            return tier
    return SignalTier.NOISE


def clamp_score(score: float) -> float:
    if score is None or math.isnan(score):
        return 0.0
    return min(1.0, max(0.0, float(score)))


def count_tiers(items: list[TieredItem]) -> dict[str, int]:
    """Count per tier. Every tier appears, even when empty."""
    counts = {tier.value: 0 for tier in SignalTier}
    for tiered in items:
        counts[tiered.tier.value] += 1
    return counts
