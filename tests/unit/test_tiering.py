"""
Unit tests for signal tiering.
"""

import math
import pytest


@pytest.mark.unit
class TestAssignTier:
    """Tests for score to tier mapping."""

    @pytest.mark.parametrize("score,expected", [
        (1.0, "core"),
        (0.45, "core"),
        (0.4499, "strong"),
        (0.35, "strong"),
        (0.30, "related"),
        (0.25, "related"),
        (0.20, "adjacent"),
        (0.15, "adjacent"),
        (0.1499, "noise"),
        (0.0, "noise"),
    ])
    def test_thresholds(self, score, expected):
        """Each threshold is an inclusive lower bound."""
        from src.painsignals.filtering.tiering import assign_tier

        assert assign_tier(score).value == expected

    def test_total_over_unit_interval(self):
        """Every score in [0, 1] maps to exactly one tier."""
        from src.painsignals.filtering.tiering import assign_tier
        from src.painsignals.models.signals import SignalTier

        for step in range(1001):
            tier = assign_tier(step / 1000)
            assert isinstance(tier, SignalTier)

    def test_nan_is_noise(self):
        """Unscorable items fall to NOISE."""
        from src.painsignals.filtering.tiering import assign_tier
        from src.painsignals.models.signals import SignalTier

        assert assign_tier(math.nan) == SignalTier.NOISE

    def test_idempotent(self):
        """Same score, same tier."""
        from src.painsignals.filtering.tiering import assign_tier

        assert assign_tier(0.37) == assign_tier(0.37)

    def test_custom_thresholds(self):
        """Thresholds come from configuration."""
        from src.painsignals.filtering.tiering import TierThresholds, assign_tier
        from src.painsignals.models.signals import SignalTier

        thresholds = TierThresholds(core=0.8, strong=0.6, related=0.4, adjacent=0.2)
        assert assign_tier(0.5, thresholds) == SignalTier.RELATED


@pytest.mark.unit
class TestTierThresholds:
    """Tests for threshold validation."""

    def test_defaults(self):
        """Default thresholds."""
        from src.painsignals.filtering.tiering import TierThresholds

        t = TierThresholds()
        assert (t.core, t.strong, t.related, t.adjacent) == (0.45, 0.35, 0.25, 0.15)

    def test_must_be_strictly_decreasing(self):
        """Overlapping thresholds are rejected."""
        from pydantic import ValidationError
        from src.painsignals.filtering.tiering import TierThresholds

        with pytest.raises(ValidationError):
            TierThresholds(core=0.3, strong=0.35)

    def test_from_settings(self, settings):
        """Thresholds load from settings."""
        from src.painsignals.filtering.tiering import TierThresholds

        assert TierThresholds.from_settings(settings).core == settings.tier_core_threshold


@pytest.mark.unit
class TestCountTiers:
    """Tests for tier counting."""

    def test_partition(self, make_post, make_tiered):
        """Counts over all tiers add up to the item count."""
        from src.painsignals.filtering.tiering import assign_tier, count_tiers

        scores = [0.9, 0.4, 0.3, 0.2, 0.1, 0.0, 0.45]
        items = [
            make_tiered(make_post(i, f"Post {i}", "body"), tier=assign_tier(s), score=s)
            for i, s in enumerate(scores)
        ]

        counts = count_tiers(items)

        assert sum(counts.values()) == len(items)
        assert counts == {"core": 2, "strong": 1, "related": 1, "adjacent": 1, "noise": 2}

    def test_empty_has_every_tier(self):
        """Empty input still reports every tier."""
        from src.painsignals.filtering.tiering import count_tiers

        assert count_tiers([]) == {"core": 0, "strong": 0, "related": 0, "adjacent": 0, "noise": 0}

    def test_clamp_score(self):
        """Scores outside [0, 1] are clamped."""
        from src.painsignals.filtering.tiering import clamp_score

        assert clamp_score(1.3) == 1.0
        assert clamp_score(-0.2) == 0.0
        assert clamp_score(math.nan) == 0.0
