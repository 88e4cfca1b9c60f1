"""
Unit tests for the relevance filter strategies.
"""

import pytest
from unittest.mock import AsyncMock

from tests.conftest import FakeEmbedder, batch_blocks, scripted_complete


LONG = "I have been freelancing for three years and it has never felt this hard to keep going."


@pytest.mark.unit
class TestTieredFilter:
    """Tests for TieredFilter."""

    @pytest.mark.asyncio
    async def test_buckets_by_score(self, make_post, tracker):
        """Items are tiered by similarity; NOISE is counted but dropped."""
        from src.painsignals.filtering.tiered import TieredFilter

        scores = [0.9, 0.4, 0.3, 0.2, 0.05]
        items = [make_post(i, f"Post {i}", LONG) for i in range(len(scores))]
        by_id = {item.id: s for item, s in zip(items, scores)}
        strategy = TieredFilter(embedder=FakeEmbedder(lambda item: by_id[item.id]))

        result = await strategy.filter(items, "freelancers burn out", tracker)

        assert [t.tier.value for t in result.items] == ["core", "strong", "related", "adjacent"]
        assert result.tier_counts == {"core": 1, "strong": 1, "related": 1, "adjacent": 1, "noise": 1}
        assert sum(result.tier_counts.values()) == len(items)
        assert len(result.decisions) == len(items)
        assert tracker.call_count == 0

    @pytest.mark.asyncio
    async def test_every_item_counted(self, make_post, tracker):
        """Large inputs are scored in full; tier counts partition the input."""
        from src.painsignals.filtering.tiered import TieredFilter

        items = [make_post(i, f"Post {i}", LONG) for i in range(250)]
        strategy = TieredFilter(embedder=FakeEmbedder(lambda item: 0.5 if int(item.title.split()[1]) % 2 else 0.05))

        result = await strategy.filter(items, "freelancers burn out", tracker)

        assert result.input_count == 250
        assert sum(result.tier_counts.values()) == 250
        assert result.tier_counts["core"] == 125
        assert result.tier_counts["noise"] == 125
        assert len(result.items) == 125

    @pytest.mark.asyncio
    async def test_reliability_by_source_kind(self, make_post, make_comment, make_review, tracker):
        """Reliability depends on where the item came from."""
        from src.painsignals.filtering.tiered import TieredFilter

        items = [make_review(1, LONG, rating=2), make_post(2, "T", LONG), make_comment(3, LONG)]
        strategy = TieredFilter(embedder=FakeEmbedder(lambda item: 0.5))

        result = await strategy.filter(items, "h", tracker)

        reliability = {t.id: t.source_reliability for t in result.items}
        assert reliability == {items[0].id: 1.0, items[1].id: 0.9, items[2].id: 0.7}

    @pytest.mark.asyncio
    async def test_scores_clamped(self, make_post, tracker):
        """Similarities outside [0, 1] are clamped before tiering."""
        from src.painsignals.filtering.tiered import TieredFilter

        items = [make_post(1, "T", LONG), make_post(2, "T2", LONG)]
        strategy = TieredFilter(embedder=FakeEmbedder(lambda item: 1.7 if item.id == items[0].id else -0.3))

        result = await strategy.filter(items, "h", tracker)

        assert result.items[0].relevance_score == 1.0
        assert result.tier_counts["noise"] == 1

    @pytest.mark.asyncio
    async def test_empty(self, tracker):
        """No items, no work."""
        from src.painsignals.filtering.tiered import TieredFilter

        result = await TieredFilter(embedder=FakeEmbedder()).filter([], "h", tracker)

        assert result.items == []
        assert result.filter_rate == 0.0


@pytest.mark.unit
class TestTwoStageFilter:
    """Tests for TwoStageFilter."""

    @pytest.mark.asyncio
    async def test_threshold_cap_and_verify(self, make_post, mock_client, tracker):
        """Candidates above threshold, capped, then verified."""
        from src.painsignals.filtering.two_stage import TwoStageFilter

        items = [make_post(i, f"Post {i}", f"{LONG} case {i}") for i in range(6)]
        scores = dict(zip([i.id for i in items], [0.9, 0.8, 0.7, 0.6, 0.27, 0.1]))
        mock_client.complete = AsyncMock(side_effect=scripted_complete(
            decide=lambda stage, block: "N" if "case 1" in block else "Y"
        ))
        strategy = TwoStageFilter(
            mock_client,
            embedder=FakeEmbedder(lambda item: scores[item.id]),
            verification_cap=3,
            batch_size=10,
        )

        result = await strategy.filter(items, "h", tracker)

        assert [t.id for t in result.items] == [items[0].id, items[2].id]
        assert all(t.tier.value == "core" for t in result.items)
        assert [(s.stage, s.before, s.after) for s in result.stages] == [
            ("embedding", 6, 4),
            ("cap", 4, 3),
            ("verification", 3, 2),
        ]
        assert result.tier_counts["core"] == 2
        assert result.tier_counts["noise"] == 4

    @pytest.mark.asyncio
    async def test_malformed_batch_kept(self, make_post, mock_client, tracker):
        """Unparseable verification keeps the whole batch."""
        from src.painsignals.filtering.base import BATCH_FAILED
        from src.painsignals.filtering.two_stage import TwoStageFilter

        items = [make_post(i, f"Post {i}", LONG) for i in range(3)]
        mock_client.complete = AsyncMock(return_value="yes, yes, no")
        strategy = TwoStageFilter(mock_client, embedder=FakeEmbedder(lambda item: 0.5))

        result = await strategy.filter(items, "h", tracker)

        assert len(result.items) == 3
        assert all(d.reason == BATCH_FAILED for d in result.decisions)


@pytest.mark.unit
class TestClassifyInBatches:
    """Tests for batched classification."""

    @pytest.mark.asyncio
    async def test_failed_batch_keeps_all_items(self, make_post, mock_client, tracker):
        """A batch of 20 that throws keeps all 20 items."""
        from src.painsignals.errors import ClassificationError
        from src.painsignals.filtering.base import classify_in_batches, format_batch

        items = [make_post(i, f"Post {i}", LONG) for i in range(40)]

        async def complete(prompt, tracker=None, stage="", **kwargs):
            if "Post 0\n" in prompt:
                raise ClassificationError("timeout")
            return "N" * len(batch_blocks(prompt))

        mock_client.complete = AsyncMock(side_effect=complete)

        pairs = await classify_in_batches(
            mock_client, tracker, "problem_match", items, 20,
            build_prompt=lambda batch: f"Items:\n{format_batch(batch)}\n\nRespond with letters",
        )

        assert [item.id for item, _ in pairs] == [item.id for item in items]
        assert [label for _, label in pairs[:20]] == [None] * 20
        assert [label for _, label in pairs[20:]] == ["N"] * 20


@pytest.mark.unit
class TestLegacyCascadeFilter:
    """Tests for LegacyCascadeFilter."""

    @pytest.mark.asyncio
    async def test_cascade(self, make_post, mock_client, tracker):
        """Quality, domain and problem gates run in order."""
        from src.painsignals.filtering.legacy import LegacyCascadeFilter

        items = [
            make_post(1, "Chasing invoices", f"{LONG} Clients pay me 90 days late."),
            make_post(2, "Portfolio review", f"{LONG} Please review my portfolio."),
            make_post(3, "Crypto", f"{LONG} Bitcoin is up again."),
            make_post(4, "Hi", "short"),
        ]
        mock_client.complete = AsyncMock(side_effect=scripted_complete(
            decide=lambda stage, block: {
                "domain_gate": "N" if "Bitcoin" in block else "Y",
                "problem_match": "Y" if "late" in block else "N",
            }[stage],
            responses={"domain_extraction": '{"domain": "client payments", "anti_domains": ["crypto"]}'},
        ))

        result = await LegacyCascadeFilter(mock_client).filter(items, "freelancers get paid late", tracker)

        assert [t.id for t in result.items] == [items[0].id]
        assert [(s.stage, s.before, s.after) for s in result.stages] == [
            ("quality_gate", 4, 3),
            ("prerank", 3, 3),
            ("domain_gate", 3, 2),
            ("problem_match", 2, 1),
        ]
        assert result.tier_counts["core"] == 1
        assert result.tier_counts["noise"] == 3

    @pytest.mark.asyncio
    async def test_setting_context_yields_related(self, make_post, mock_client, tracker):
        """C/R/N prompts produce CORE and RELATED items."""
        from src.painsignals.filtering.legacy import LegacyCascadeFilter

        items = [
            make_post(1, "Remote and alone", f"{LONG} Working remote I feel isolated."),
            make_post(2, "Lonely", f"{LONG} I feel lonely lately."),
            make_post(3, "Fonts", f"{LONG} Which font should I use?"),
        ]
        prompts = []

        def decide(stage, block):
            if stage == "domain_gate":
                return "Y"
            if "isolated" in block:
                return "C"
            return "R" if "lonely" in block else "N"

        async def complete(prompt, tracker=None, stage="", **kwargs):
            prompts.append(prompt)
            return await scripted_complete(decide, {"domain_extraction": '{"domain": "isolation"}'})(
                prompt, tracker, stage
            )

        mock_client.complete = AsyncMock(side_effect=complete)

        result = await LegacyCascadeFilter(mock_client).filter(items, "remote designers feel isolated", tracker)

        tiers = {t.id: t.tier.value for t in result.items}
        assert tiers == {items[0].id: "core", items[1].id: "related"}
        assert any("Setting: remote" in p for p in prompts)

    @pytest.mark.asyncio
    async def test_domain_failure_skips_gate(self, make_post, mock_client, tracker):
        """Unusable domain extraction disables the domain gate."""
        from src.painsignals.errors import ClassificationError
        from src.painsignals.filtering.legacy import LegacyCascadeFilter

        items = [make_post(1, "Late pay", f"{LONG} Clients pay late.")]
        mock_client.complete = AsyncMock(side_effect=scripted_complete(
            decide=lambda stage, block: "Y",
            responses={"domain_extraction": ClassificationError("quota")},
        ))

        result = await LegacyCascadeFilter(mock_client).filter(items, "freelancers get paid late", tracker)

        assert len(result.items) == 1
        stages = [call.kwargs["stage"] for call in mock_client.complete.await_args_list]
        assert "domain_gate" not in stages

    @pytest.mark.asyncio
    async def test_title_only_flag_carried(self, make_post, mock_client, tracker):
        """Title-only posts stay marked through the cascade."""
        from src.painsignals.filtering.legacy import LegacyCascadeFilter

        post = make_post(1, "Does anyone else get paid 90 days late by every single client?", "[removed]")
        mock_client.complete = AsyncMock(side_effect=scripted_complete(
            decide=lambda stage, block: "Y",
            responses={"domain_extraction": "not json"},
        ))

        result = await LegacyCascadeFilter(mock_client).filter([post], "freelancers get paid late", tracker)

        assert result.items[0].title_only


@pytest.mark.unit
class TestCommentFilter:
    """Tests for CommentFilter."""

    @pytest.mark.asyncio
    async def test_comments(self, make_comment, mock_client, tracker):
        """Quality gate, then problem match in batches."""
        from src.painsignals.filtering.legacy import CommentFilter

        comments = [
            make_comment(1, "Same, my clients always pay late and I hate chasing them."),
            make_comment(2, "Nice portfolio, love the colors you picked here."),
            make_comment(3, "lol"),
        ]
        mock_client.complete = AsyncMock(side_effect=scripted_complete(
            decide=lambda stage, block: "Y" if "late" in block else "N"
        ))

        result = await CommentFilter(mock_client, batch_size=25).filter(comments, "freelancers get paid late", tracker)

        assert [t.id for t in result.items] == [comments[0].id]
        assert result.stages[0].after == 2
        assert {d.stage for d in result.decisions} == {"comment_problem_match"}


@pytest.mark.unit
class TestStrategyFactory:
    """Tests for create_filter_strategy."""

    @pytest.mark.parametrize("name,cls_name", [
        ("tiered", "TieredFilter"),
        ("two_stage", "TwoStageFilter"),
        ("legacy", "LegacyCascadeFilter"),
    ])
    def test_builds_each(self, settings, mock_client, name, cls_name):
        """Each strategy name builds its class."""
        from src.painsignals.filtering import create_filter_strategy

        strategy = create_filter_strategy(name, settings, mock_client, embedder=FakeEmbedder())

        assert type(strategy).__name__ == cls_name
        assert strategy.name == name

    def test_unknown(self, settings, mock_client):
        """Unknown names are rejected."""
        from src.painsignals.filtering import create_filter_strategy

        with pytest.raises(ValueError):
            create_filter_strategy("keyword", settings, mock_client)
