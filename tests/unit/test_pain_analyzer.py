"""
Unit tests for pain scoring and signal analysis.
"""

import pytest
from datetime import datetime, timedelta


@pytest.mark.unit
class TestMultipliers:
    """Tests for engagement and recency multipliers."""

    @pytest.mark.parametrize("votes,expected", [
        (0, 1.0),
        (1, 1.0),
        (100, 1.1),
        (10 ** 6, 1.2),
    ])
    def test_engagement_capped(self, votes, expected):
        """Log-scaled engagement, never above 1.2."""
        from src.painsignals.analysis.pain_analyzer import engagement_multiplier

        assert engagement_multiplier(votes) == pytest.approx(expected)

    @pytest.mark.parametrize("age_days,expected", [
        (10, 1.5),
        (60, 1.25),
        (120, 1.0),
        (300, 0.75),
        (400, 0.5),
    ])
    def test_recency(self, age_days, expected):
        """Fresher pain counts more."""
        from src.painsignals.analysis.pain_analyzer import recency_multiplier

        now = datetime(2025, 6, 1)
        assert recency_multiplier(now - timedelta(days=age_days), now) == expected

    def test_no_date_is_neutral(self):
        """Missing dates don't change the score."""
        from src.painsignals.analysis.pain_analyzer import recency_multiplier

        assert recency_multiplier(None) == 1.0


@pytest.mark.unit
class TestScoreText:
    """Tests for keyword scoring."""

    def test_high_intensity(self):
        """High and medium keywords add up."""
        from src.painsignals.analysis.pain_analyzer import score_text

        result = score_text("This app keeps crashing and I'm so frustrated")

        assert "frustrated" in result.matched
        assert "keeps crashing" in result.matched
        assert result.score == 8.0

    def test_low_only_capped_and_reduced(self):
        """Low-only text is capped at 4 and loses a point."""
        from src.painsignals.analysis.pain_analyzer import score_text

        result = score_text("I'm curious and wondering about options, maybe")

        assert result.low == 3
        assert result.score == 2.0

    def test_solution_only_capped(self):
        """Solution seeking without pain caps at 5."""
        from src.painsignals.analysis.pain_analyzer import score_text

        result = score_text("Does anyone know a good app? Looking for recommendations and advice")

        assert result.solution_seeking > 0
        assert result.score == 5.0

    def test_strong_wtp(self):
        """Explicit willingness to pay."""
        from src.painsignals.analysis.pain_analyzer import score_text

        result = score_text("I would pay for an app that fixes this problem")

        assert result.wtp > 0
        assert result.wtp_confidence == "high"

    def test_wtp_exclusion(self):
        """Refund talk is not purchase intent."""
        from src.painsignals.analysis.pain_analyzer import score_text

        result = score_text("I want my money back, the premium subscription is useless")

        assert result.wtp_excluded
        assert result.wtp == 0
        assert result.wtp_confidence == "none"

    def test_negative_context_reduces(self):
        """Resolved pain is discounted."""
        from src.painsignals.analysis.pain_analyzer import score_text

        resolved = score_text("I used to be frustrated with invoices but now it's fine")
        current = score_text("I am frustrated with invoices")

        assert resolved.negative_context
        assert resolved.score == pytest.approx(current.score * 0.6, abs=0.05)

    def test_word_boundaries(self):
        """Single words don't match inside other words."""
        from src.painsignals.analysis.pain_analyzer import score_text

        result = score_text("The hardware shop sells bugspray")

        assert "hard" not in result.matched
        assert "bug" not in result.matched
        assert result.score == 0.0

    def test_score_bounded(self):
        """Scores stay in [0, 10]."""
        from src.painsignals.analysis.pain_analyzer import score_text

        text = (
            "Frustrated, desperate, exhausted, overwhelmed. This is a nightmare and I hate it. "
            "I would pay anything, take my money. Looking for alternatives, need help."
        )
        result = score_text(text, votes=5000, created_at=datetime.now())

        assert 0.0 <= result.score <= 10.0

    @pytest.mark.parametrize("score,expected", [(7.0, "high"), (6.9, "medium"), (4.0, "medium"), (3.9, "low")])
    def test_intensity(self, score, expected):
        """Intensity bands."""
        from src.painsignals.analysis.pain_analyzer import intensity_for

        assert intensity_for(score) == expected


@pytest.mark.unit
class TestPainSignalAnalyzer:
    """Tests for PainSignalAnalyzer."""

    def test_low_rated_review_floor(self, make_review, make_tiered):
        """One-star reviews are at least medium intensity."""
        from src.painsignals.analysis.pain_analyzer import PainSignalAnalyzer

        review = make_tiered(make_review(1, "The app crashes", rating=1))

        signal = PainSignalAnalyzer().analyze_item(review)

        assert signal.score == 6.0
        assert signal.intensity == "medium"
        assert signal.rating == 1

    @pytest.mark.parametrize("rating,floor", [(1, 6.0), (2, 5.0), (3, 4.0)])
    def test_rating_floors(self, make_review, make_tiered, rating, floor):
        """Each low rating has its own floor."""
        from src.painsignals.analysis.pain_analyzer import PainSignalAnalyzer

        review = make_tiered(make_review(rating, "Okay I guess", rating=rating))

        assert PainSignalAnalyzer().analyze_item(review).score == floor

    def test_title_only_weight(self, make_post, make_tiered):
        """Title-only posts score the title at 0.7 weight."""
        from src.painsignals.analysis.pain_analyzer import PainSignalAnalyzer

        post = make_post(
            1, "Does anyone else feel isolated working remotely? I'm struggling", "[removed]", score=0
        )

        signal = PainSignalAnalyzer().analyze_item(make_tiered(post, title_only=True))

        assert signal.title_only
        assert signal.text.startswith("Does anyone else")
        assert signal.score == 4.2

    def test_only_core_and_strong_analyzed(self, make_post, make_tiered):
        """RELATED and below are evidence, not signals."""
        from src.painsignals.analysis.pain_analyzer import PainSignalAnalyzer
        from src.painsignals.models.signals import SignalTier

        items = [
            make_tiered(make_post(1, "Stuck", "I am struggling with late invoices every month"), SignalTier.CORE),
            make_tiered(make_post(2, "Stuck", "Invoices are a problem, so frustrating"), SignalTier.STRONG),
            make_tiered(make_post(3, "Stuck", "I am struggling with this too honestly"), SignalTier.RELATED),
        ]

        signals = PainSignalAnalyzer().analyze(items)

        assert {s.item_id for s in signals} == {items[0].id, items[1].id}
        assert signals[0].score >= signals[1].score

    def test_zero_score_dropped(self, make_post, make_tiered):
        """Items with no pain markers yield no signal."""
        from src.painsignals.analysis.pain_analyzer import PainSignalAnalyzer

        post = make_tiered(make_post(1, "Portfolio", "Here is my new portfolio site for review"))

        assert PainSignalAnalyzer().analyze([post]) == []

    def test_summarize(self, make_post, make_tiered):
        """Summary counts match the signals."""
        from src.painsignals.analysis.pain_analyzer import PainSignalAnalyzer, summarize

        items = [
            make_tiered(make_post(1, "Help", "I hate chasing invoices, it is a nightmare")),
            make_tiered(make_post(2, "Help", "Looking for a tool, invoices are a problem")),
        ]

        summary = summarize(PainSignalAnalyzer().analyze(items))

        assert summary.total_signals == 2
        assert summary.solution_seeking == 1
        assert summary.high_intensity + summary.medium_intensity + summary.low_intensity == 2
        assert "hate" in summary.top_keywords

    def test_summarize_empty(self):
        """Empty signal set."""
        from src.painsignals.analysis.pain_analyzer import summarize

        assert summarize([]).total_signals == 0
