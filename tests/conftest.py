"""
Pytest configuration and fixtures for pain signal pipeline tests.
"""

import os
import re
import sys
import pytest
import numpy as np
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timedelta

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment
os.environ['TESTING'] = '1'
os.environ.setdefault('GEMINI_API_KEY', 'test-api-key')


# ============================================================
# Fake Services
# ============================================================

# Each theme word is one embedding dimension
THEMES = ["crash", "sync", "login", "price", "isolat", "lonely", "love", "invoice", "broken"]


def theme_vector(text: str) -> np.ndarray:
    lower = text.lower()
    return np.array([1.0 if theme in lower else 0.0 for theme in THEMES])


class FakeEmbedder:
    """
    Stands in for SemanticEmbedder.
    Vectors are theme-word indicators; item scores come from `scorer`.
    """

    def __init__(self, scorer=None):
        self.scorer = scorer or (lambda item: 0.0)
        self.calls = 0

    @staticmethod
    def item_text(item) -> str:
        return item.text

    def embed_texts(self, texts):
        return np.array([theme_vector(t) for t in texts])

    async def aembed_texts(self, texts):
        self.calls += 1
        return self.embed_texts(texts)

    async def score_items(self, reference, items):
        self.calls += 1
        return [self.scorer(item) for item in items]


BLOCK_RE = re.compile(r"^\[(\d+)\] (.*?)(?=^\[\d+\] |^Respond with|\Z)", re.S | re.M)


def batch_blocks(prompt: str) -> list[str]:
    """Numbered item blocks of a batch prompt, in order."""
    return [block.strip() for _, block in BLOCK_RE.findall(prompt)]


def scripted_complete(decide=None, responses=None, raw=None):
    """
    Build an async `complete` replacement.

    decide(stage, block_text) -> letter for batch stages.
    responses maps non-batch stages to canned text.
    raw(stage, prompt) -> text overrides both when it returns non-None.
    """
    responses = responses or {}

    async def complete(prompt, tracker=None, stage="", max_output_tokens=200, temperature=0.0):
        if raw is not None:
            text = raw(stage, prompt)
            if text is not None:
                return text
        if stage in responses:
            value = responses[stage]
            if isinstance(value, BaseException):
                raise value
            return value
        blocks = batch_blocks(prompt)
        if decide is None or not blocks:
            return ""
        return "".join(decide(stage, block) for block in blocks)

    return complete


# ============================================================
# Mock Fixtures
# ============================================================

@pytest.fixture
def fake_embedder():
    """Embedder that scores nothing as relevant until told otherwise."""
    return FakeEmbedder()


@pytest.fixture
def mock_client():
    """Mock ClassificationClient with an AsyncMock `complete`."""
    from src.painsignals.llm.client import ClassificationClient

    client = MagicMock(spec=ClassificationClient)
    client.model = "gemini-2.0-flash"
    client.complete = AsyncMock(return_value="")
    return client


@pytest.fixture
def tracker():
    """Fresh per-request usage tracker."""
    from src.painsignals.llm.usage import UsageTracker

    return UsageTracker(job_id="test-job")


@pytest.fixture
def settings(tmp_path):
    """Settings with defaults, isolated from any local .env file."""
    from config.settings import Settings

    return Settings(_env_file=None, gemini_api_key="test-api-key", output_dir=str(tmp_path))


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def make_post():
    """Factory for community posts."""
    from src.painsignals.models.items import RawItem, SourceKind

    def _make(native_id, title, body, source="designers", score=10, num_comments=2, age_days=5):
        return RawItem(
            id=RawItem.generate_id("community_post", source, str(native_id)),
            source_kind=SourceKind.COMMUNITY_POST,
            source=source,
            title=title,
            body=body,
            score=score,
            num_comments=num_comments,
            created_at=datetime.now() - timedelta(days=age_days),
        )

    return _make


@pytest.fixture
def make_comment():
    """Factory for community comments."""
    from src.painsignals.models.items import RawItem, SourceKind

    def _make(native_id, body, source="designers", score=3, parent_id="p1", age_days=5):
        return RawItem(
            id=RawItem.generate_id("community_comment", source, str(native_id)),
            source_kind=SourceKind.COMMUNITY_COMMENT,
            source=source,
            body=body,
            score=score,
            parent_id=parent_id,
            created_at=datetime.now() - timedelta(days=age_days),
        )

    return _make


@pytest.fixture
def make_review():
    """Factory for app store reviews."""
    from src.painsignals.models.items import RawItem, SourceKind

    def _make(native_id, body, rating, app_id="budgetly", title=None, age_days=10):
        return RawItem(
            id=RawItem.generate_id("app_review", app_id, str(native_id)),
            source_kind=SourceKind.APP_REVIEW,
            source=app_id,
            title=title,
            body=body,
            rating=rating,
            store="app_store",
            created_at=datetime.now() - timedelta(days=age_days),
        )

    return _make


@pytest.fixture
def make_tiered():
    """Wrap a raw item in a TieredItem."""
    from src.painsignals.models.signals import SignalTier, TieredItem

    def _make(item, tier=SignalTier.CORE, score=0.5, title_only=False):
        return TieredItem(item=item, relevance_score=score, tier=tier, title_only=title_only)

    return _make


@pytest.fixture
def make_signal():
    """Factory for pain signals."""
    from src.painsignals.models.items import SourceKind
    from src.painsignals.models.signals import PainSignal, SignalTier

    def _make(item_id, score, source="designers", source_kind=SourceKind.COMMUNITY_POST,
              text="This keeps crashing and I am frustrated", rating=None):
        return PainSignal(
            item_id=item_id,
            text=text,
            source=source,
            source_kind=source_kind,
            tier=SignalTier.CORE,
            intensity="medium",
            score=score,
            base_score=score,
            rating=rating,
        )

    return _make
