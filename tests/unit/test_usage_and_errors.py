"""
Unit tests for usage tracking, the classification client and error tagging.
"""

import asyncio
import pytest
import httpx
from unittest.mock import AsyncMock, MagicMock, patch


@pytest.mark.unit
class TestUsageTracker:
    """Tests for UsageTracker."""

    def test_record_and_summary(self):
        """Records roll up per stage and per model."""
        from src.painsignals.llm.usage import UsageTracker

        tracker = UsageTracker(job_id="job-1")
        tracker.record("domain_gate", "gemini-2.0-flash", 1_000_000, 0)
        tracker.record("domain_gate", "gemini-2.0-flash", 0, 1_000_000)
        tracker.record("problem_match", "gemini-2.5-flash", 1000, 100)

        summary = tracker.get_usage_summary()

        assert summary["calls"] == 3
        assert summary["by_stage"]["domain_gate"]["calls"] == 2
        assert summary["by_stage"]["domain_gate"]["cost_usd"] == pytest.approx(0.50)
        assert set(summary["by_model"]) == {"gemini-2.0-flash", "gemini-2.5-flash"}

    def test_unknown_model_uses_default_price(self):
        """Unpriced models still get a cost."""
        from src.painsignals.llm.usage import calculate_cost

        assert calculate_cost("some-new-model", 1_000_000, 0) == pytest.approx(0.10)

    def test_closed_tracker_rejects_records(self):
        """Nothing can be recorded after close."""
        from src.painsignals.llm.usage import UsageTracker

        tracker = UsageTracker(job_id="job-1")
        summary = tracker.close()

        assert summary["calls"] == 0
        with pytest.raises(RuntimeError):
            tracker.record("late", "gemini-2.0-flash", 1, 1)

    def test_record_response_reads_usage_metadata(self):
        """Token counts come from usage_metadata."""
        from src.painsignals.llm.usage import UsageTracker

        response = MagicMock()
        response.usage_metadata.prompt_token_count = 120
        response.usage_metadata.candidates_token_count = 4

        record = UsageTracker().record_response("verification", "gemini-2.0-flash", response)

        assert (record.input_tokens, record.output_tokens) == (120, 4)


@pytest.mark.unit
class TestClassificationClient:
    """Tests for ClassificationClient."""

    def test_missing_key_raises(self, monkeypatch):
        """No API key anywhere is a classification error."""
        from src.painsignals.errors import ClassificationError
        from src.painsignals.llm.client import ClassificationClient

        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)

        with pytest.raises(ClassificationError):
            ClassificationClient().client

    @pytest.mark.asyncio
    async def test_complete_records_usage(self, tracker):
        """Every call is recorded on the tracker it was given."""
        from src.painsignals.llm.client import ClassificationClient

        response = MagicMock(text="YN")
        response.usage_metadata.prompt_token_count = 50
        response.usage_metadata.candidates_token_count = 2

        client = ClassificationClient(api_key="test")
        fake = MagicMock()
        fake.aio.models.generate_content = AsyncMock(return_value=response)

        with patch("src.painsignals.llm.client.genai.Client", return_value=fake):
            text = await client.complete("prompt", tracker, stage="verification")

        assert text == "YN"
        assert tracker.call_count == 1
        assert tracker.records[0].stage == "verification"

    @pytest.mark.asyncio
    async def test_service_failure_wrapped(self, tracker):
        """Service exceptions become ClassificationError."""
        from src.painsignals.errors import ClassificationError, ErrorSource
        from src.painsignals.llm.client import ClassificationClient

        client = ClassificationClient(api_key="test")
        fake = MagicMock()
        fake.aio.models.generate_content = AsyncMock(side_effect=RuntimeError("503"))

        with patch("src.painsignals.llm.client.genai.Client", return_value=fake):
            with pytest.raises(ClassificationError) as exc_info:
                await client.complete("prompt", tracker, stage="domain_gate")

        assert exc_info.value.source == ErrorSource.CLASSIFICATION
        assert tracker.call_count == 0

    @pytest.mark.asyncio
    async def test_run_batches_keeps_batch_order(self):
        """Results line up with batches, not completion order."""
        from src.painsignals.llm.client import chunk, run_batches

        async def worker(index, batch):
            await asyncio.sleep(0.01 * (3 - index))
            if index == 1:
                raise ValueError("boom")
            return [x * 10 for x in batch]

        results = await run_batches(chunk([1, 2, 3, 4, 5], 2), worker)

        assert results[0] == [10, 20]
        assert isinstance(results[1], ValueError)
        assert results[2] == [50]


@pytest.mark.unit
class TestErrors:
    """Tests for the error taxonomy."""

    def test_pipeline_error_tags(self):
        """Subclasses carry their source tag."""
        from src.painsignals.errors import (
            ClassificationError,
            ErrorSource,
            PersistenceError,
            PipelineError,
            SourceFetchError,
        )

        assert ClassificationError("x").source == ErrorSource.CLASSIFICATION
        assert SourceFetchError("x").source == ErrorSource.FETCH
        assert PersistenceError("x").source == ErrorSource.DATABASE
        assert PipelineError("x").source == ErrorSource.UNKNOWN
        assert PipelineError("x", ErrorSource.TIMEOUT).to_dict() == {"error": "x", "source": "timeout"}

    @pytest.mark.parametrize("error,expected", [
        (asyncio.TimeoutError(), "timeout"),
        (httpx.ReadTimeout("slow"), "timeout"),
        (httpx.ConnectError("refused"), "fetch"),
        (ValueError("bad"), "unknown"),
    ])
    def test_classify_error(self, error, expected):
        """Arbitrary exceptions map to a tag."""
        from src.painsignals.errors import classify_error

        assert classify_error(error).value == expected


@pytest.mark.unit
class TestSettings:
    """Tests for pipeline settings."""

    def test_defaults(self, settings):
        """Documented defaults."""
        assert settings.filter_strategy == "tiered"
        assert settings.embedding_threshold == 0.28
        assert settings.verification_cap == 50
        assert settings.post_batch_size == 20
        assert settings.comment_batch_size == 25
        assert settings.expansion_max_communities == 5
        assert settings.expansion_max_rounds == 1
        assert settings.decision_log_limit == 100

    def test_env_override(self, monkeypatch):
        """Environment variables override defaults."""
        from config.settings import Settings

        monkeypatch.setenv("FILTER_STRATEGY", "legacy")
        monkeypatch.setenv("TIER_CORE_THRESHOLD", "0.5")

        settings = Settings(_env_file=None)

        assert settings.filter_strategy == "legacy"
        assert settings.tier_core_threshold == 0.5

    def test_tier_order_validated(self):
        """Tier thresholds must decrease."""
        from pydantic import ValidationError
        from config.settings import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, tier_strong_threshold=0.5)

    def test_expansion_rounds_bounded(self):
        """Expansion never runs more than once."""
        from pydantic import ValidationError
        from config.settings import Settings

        with pytest.raises(ValidationError):
            Settings(_env_file=None, expansion_max_rounds=2)
