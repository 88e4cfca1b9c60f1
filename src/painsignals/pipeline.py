"""
Research Pipeline - hypothesis in, ranked and auditable pain signals out.

Usage:
    python -m src.painsignals.pipeline "freelance designers struggle to get paid on time"
    python -m src.painsignals.pipeline "budget app keeps crashing" --app "Budgetly: Money Tracker"
    python -m src.painsignals.pipeline "remote designers feel isolated" --strategy legacy -c designers
"""

import asyncio
import argparse
import logging
import json
import uuid
from typing import Callable, Optional

from dotenv import load_dotenv

from config.settings import FILTER_STRATEGIES, Settings, get_settings

from .aggregation.discovery import CommunityDiscovery
from .aggregation.reddit import normalize_community
from .aggregation.source_manager import SourceManager
from .analysis.pain_analyzer import PainSignalAnalyzer, summarize
from .analysis.praise_filter import PraiseFilter
from .analysis.source_weights import SourceWeighter
from .clustering.clusterer import EvidenceClusterer
from .clustering.embedder import SemanticEmbedder
from .errors import PipelineError, classify_error
from .expansion import AdaptiveExpander
from .extraction.keywords import KeywordExtractor
from .filtering import create_filter_strategy
from .filtering.app_name_gate import AppNameGate
from .filtering.base import FilterStrategy
from .filtering.legacy import CommentFilter
from .filtering.prefilter import apply_exclude_filter
from .filtering.quality import QualityGate
from .filtering.tiering import TierThresholds
from .llm.client import ClassificationClient
from .llm.usage import UsageTracker
from .metrics import build_metrics
from .models.items import FetchRequest, ResearchRequest, StructuredHypothesis
from .models.signals import ClusteringResult, FilterResult, PainSignal, ResearchResult
from .storage.result_store import JsonFileResultStore, ResultStore


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, str], None]


def gate_result(result: FilterResult, gate: Optional[AppNameGate]) -> FilterResult:
    if gate is None:
        return result
    return result.model_copy(update={"items": gate.apply(result.items)})


class ResearchPipeline:
    """
    Runs one research request end to end:
    keywords, fetch, prefilter, relevance filter, app name gate,
    expansion, pain analysis, praise filter, weighting, clustering.

    Every collaborator is injected. The filter strategy is fixed at
    construction and reused for the expansion round.
    """

    def __init__(
        self,
        strategy: FilterStrategy,
        comment_filter: Optional[CommentFilter],
        keyword_extractor: KeywordExtractor,
        source_manager: SourceManager,
        discovery: Optional[CommunityDiscovery] = None,
        analyzer: Optional[PainSignalAnalyzer] = None,
        praise_filter: Optional[PraiseFilter] = None,
        weighter: Optional[SourceWeighter] = None,
        clusterer: Optional[EvidenceClusterer] = None,
        store: Optional[ResultStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.strategy = strategy
        self.comment_filter = comment_filter
        self.keyword_extractor = keyword_extractor
        self.source_manager = source_manager
        self.discovery = discovery
        self.analyzer = analyzer or PainSignalAnalyzer()
        self.praise_filter = praise_filter
        self.weighter = weighter
        self.clusterer = clusterer
        self.store = store

        self.expander = (
            AdaptiveExpander.from_settings(self.settings, discovery, source_manager, strategy)
            if discovery else None
        )

    def _report(self, progress: Optional[ProgressCallback], step: str, message: str):
        logger.info(f"[{step}] {message}")
        if progress is None:
            return
        try:
            progress(step, message)
        except Exception as e:
            logger.debug(f"Progress callback failed at {step}: {e}")

    async def run(
        self,
        request: ResearchRequest,
        progress: Optional[ProgressCallback] = None,
    ) -> ResearchResult:
        """
        Run the request. Fetch and primary filter failures raise
        PipelineError tagged with their source; everything after the
        primary filter degrades instead of failing.
        """
        tracker = UsageTracker(job_id=request.job_id)
        try:
            return await self._run(request, tracker, progress)
        except PipelineError:
            raise
        except Exception as e:
            raise PipelineError(f"Research request {request.job_id} failed: {e}", classify_error(e)) from e
        finally:
            if not tracker.closed:
                tracker.close()

    async def _run(
        self,
        request: ResearchRequest,
        tracker: UsageTracker,
        progress: Optional[ProgressCallback],
    ) -> ResearchResult:
        warnings: list[str] = []

        # Step 1: Keywords
        self._report(progress, "keywords", "Extracting search keywords")
        keywords = await self.keyword_extractor.extract(request.hypothesis, tracker, request.structured)

        # Step 2: Fetch
        communities = [normalize_community(c) for c in request.communities]
        self._report(progress, "fetch", f"Fetching from {len(communities)} communities, {len(request.app_ids)} apps")
        fetched = await self.source_manager.fetch(FetchRequest(
            communities=communities,
            app_ids=request.app_ids,
            keywords=keywords.all_search_terms,
            limit=self.settings.fetch_limit,
            velocity_hints=request.velocity_hints,
        ))
        if fetched.staleness_warning:
            warnings.append(fetched.staleness_warning)

        # Step 3: Exclude prefilter
        posts = apply_exclude_filter(fetched.posts, keywords.exclude)
        comments = apply_exclude_filter(fetched.comments, keywords.exclude)
        prefiltered = len(fetched.items) - len(posts) - len(comments)
        self._report(progress, "prefilter", f"{len(posts)} posts, {len(comments)} comments after exclude filter")

        # Step 4: Relevance filter, posts and comments concurrently
        self._report(progress, "filter", f"Filtering with {self.strategy.name} strategy")
        post_result, comment_result = await self._filter(request, posts, comments, tracker, warnings)

        # Step 5: App name gate
        gate = AppNameGate(request.app_name) if request.app_name else None
        post_result = gate_result(post_result, gate)
        comment_result = gate_result(comment_result, gate)

        # Step 6: Adaptive expansion
        expansion_attempts = []
        searched = list(communities)
        if self.expander:
            combined = post_result.merge(comment_result)
            if self.expander.needs_expansion(combined, request.fixed_communities):
                self._report(progress, "expansion", "Evidence is thin, searching more communities")
                outcome = await self.expander.expand(request, keywords, post_result, tracker, searched)
                post_result = gate_result(outcome.result, gate)
                expansion_attempts = outcome.attempts
                searched = outcome.communities_searched

        tiered_items = post_result.items + comment_result.items

        # Step 7: Pain analysis
        self._report(progress, "analysis", f"Analyzing {len(tiered_items)} tiered items")
        signals = self.analyzer.analyze(tiered_items)

        # Step 8: Optional enrichments, none of them fatal
        praised_ids: set[str] = set()
        if request.app_name and self.praise_filter:
            before = {s.item_id for s in signals}
            signals = await self.praise_filter.filter(signals)
            praised_ids = before - {s.item_id for s in signals}

        if self.weighter:
            signals = await self._weigh(request.hypothesis, signals, tracker, warnings)

        clusters = await self._cluster(
            [t for t in tiered_items if t.id not in praised_ids], request.app_name, warnings
        )

        metrics = build_metrics(
            post_result,
            comment_result,
            posts_found=len(fetched.posts),
            comments_found=len(fetched.comments),
            prefiltered=prefiltered,
            expansion_attempts=expansion_attempts,
            communities_searched=searched,
            strategy=self.strategy.name,
        )

        result = ResearchResult(
            job_id=request.job_id,
            hypothesis=request.hypothesis,
            keywords=keywords,
            strategy=self.strategy.name,
            signals=signals,
            tiered_items=tiered_items,
            summary=summarize(signals),
            metrics=metrics,
            decisions=post_result.decisions + comment_result.decisions,
            clusters=clusters,
            sources_used=fetched.sources_used,
            warnings=warnings,
            usage=tracker.close(),
        )

        # Step 9: Persist
        if self.store:
            self._report(progress, "persist", "Saving result")
            await self.store.save(result)

        self._report(
            progress, "complete",
            f"{len(signals)} signals, {metrics.core_signals} core, {len(clusters.clusters)} clusters"
        )
        return result

    async def _filter(
        self,
        request: ResearchRequest,
        posts: list,
        comments: list,
        tracker: UsageTracker,
        warnings: list[str],
    ) -> tuple[FilterResult, FilterResult]:
        tasks = [self.strategy.filter(posts, request.hypothesis, tracker, request.structured)]
        if self.comment_filter and comments:
            tasks.append(self.comment_filter.filter(comments, request.hypothesis, tracker, request.structured))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        post_result = results[0]
        if isinstance(post_result, Exception):
            logger.error(f"Primary filter failed: {post_result}")
            raise PipelineError(
                f"Relevance filter failed: {post_result}", classify_error(post_result)
            ) from post_result

        comment_result = results[1] if len(results) > 1 else FilterResult()
        if isinstance(comment_result, Exception):
            logger.warning(f"Comment filter failed, continuing without comments: {comment_result}")
            warnings.append(f"Comment filtering failed: {comment_result}")
            comment_result = FilterResult()

        return post_result, comment_result

    async def _weigh(
        self,
        hypothesis: str,
        signals: list[PainSignal],
        tracker: UsageTracker,
        warnings: list[str],
    ) -> list[PainSignal]:
        try:
            return await self.weighter.weigh(hypothesis, signals, tracker)
        except Exception as e:
            logger.warning(f"Source weighting failed, keeping unweighted scores: {e}")
            warnings.append(f"Source weighting failed: {e}")
            return signals

    async def _cluster(
        self,
        tiered_items: list,
        app_name: Optional[str],
        warnings: list[str],
    ) -> ClusteringResult:
        if not self.clusterer:
            return ClusteringResult()
        try:
            return await self.clusterer.cluster(tiered_items, app_name)
        except Exception as e:
            logger.warning(f"Clustering failed, continuing without clusters: {e}")
            warnings.append(f"Clustering failed: {e}")
            return ClusteringResult()


def create_pipeline(
    settings: Optional[Settings] = None,
    strategy_name: Optional[str] = None,
    output_dir: Optional[str] = None,
) -> ResearchPipeline:
    """
    Wire the default collaborators from settings.
    """
    settings = settings or get_settings()
    strategy_name = strategy_name or settings.filter_strategy

    client = ClassificationClient(
        model=settings.classification_model,
        api_key=settings.gemini_api_key,
        max_concurrency=settings.max_concurrent_batches,
    )
    embedder = SemanticEmbedder(settings.embedding_model, settings.embedding_batch_size)
    quality_gate = QualityGate(settings.min_post_length, settings.min_comment_length)

    source_manager = SourceManager.from_names(
        settings.sources,
        max_data_age_days=settings.max_data_age_days,
        user_agent=settings.reddit_user_agent,
        time_filter=settings.reddit_time_filter,
    )

    return ResearchPipeline(
        strategy=create_filter_strategy(strategy_name, settings, client, embedder),
        comment_filter=CommentFilter(
            client,
            quality_gate=quality_gate,
            thresholds=TierThresholds.from_settings(settings),
            batch_size=settings.comment_batch_size,
        ),
        keyword_extractor=KeywordExtractor(client),
        source_manager=source_manager,
        discovery=CommunityDiscovery(client),
        analyzer=PainSignalAnalyzer(),
        praise_filter=PraiseFilter(embedder),
        weighter=SourceWeighter(client, settings.min_source_weight, settings.max_source_weight),
        clusterer=EvidenceClusterer(
            embedder,
            min_cluster_size=settings.cluster_min_size,
            similarity_threshold=settings.cluster_similarity_threshold,
            max_clusters=settings.cluster_max_clusters,
            quote_count=settings.cluster_quote_count,
        ),
        store=JsonFileResultStore(output_dir or settings.output_dir, settings.decision_log_limit),
        settings=settings,
    )


async def run_research(
    hypothesis: str,
    communities: list[str],
    app_name: Optional[str] = None,
    strategy_name: Optional[str] = None,
    fixed_communities: bool = False,
    output_dir: Optional[str] = None,
) -> ResearchResult:
    pipeline = create_pipeline(strategy_name=strategy_name, output_dir=output_dir)
    request = ResearchRequest(
        job_id=uuid.uuid4().hex[:12],
        hypothesis=hypothesis,
        structured=StructuredHypothesis(app_name=app_name) if app_name else None,
        communities=communities,
        fixed_communities=fixed_communities,
    )
    return await pipeline.run(request)


def main():
    parser = argparse.ArgumentParser(description="Pain signal research pipeline")
    parser.add_argument("hypothesis", help="Problem hypothesis to research")
    parser.add_argument(
        "--community", "-c",
        action="append",
        default=[],
        help="Community to search (repeatable)",
    )
    parser.add_argument(
        "--fixed",
        action="store_true",
        help="Only search the given communities, never expand",
    )
    parser.add_argument("--app", help="Existing app the hypothesis is about")
    parser.add_argument(
        "--strategy",
        choices=FILTER_STRATEGIES,
        help="Relevance filter strategy (default from settings)",
    )
    parser.add_argument("--output", help="Output directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()

    # Reddit and Gemini credentials are read from the environment
    load_dotenv()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        result = asyncio.run(run_research(
            hypothesis=args.hypothesis,
            communities=args.community,
            app_name=args.app,
            strategy_name=args.strategy,
            fixed_communities=args.fixed,
            output_dir=args.output,
        ))
    except PipelineError as e:
        logger.error(f"Pipeline failed: {e}")
        print(json.dumps(e.to_dict(), indent=2))
        raise SystemExit(1)

    print("\n" + "=" * 60)
    print("RESEARCH COMPLETE")
    print("=" * 60)
    print(json.dumps({
        "job_id": result.job_id,
        "strategy": result.strategy,
        "signals": len(result.signals),
        "summary": result.summary.model_dump(),
        "quality_level": result.metrics.quality_level,
        "tier_counts": result.metrics.tier_counts,
        "expansion_attempts": [a.model_dump() for a in result.metrics.expansion_attempts],
        "clusters": len(result.clusters.clusters),
        "cost_usd": result.usage.get("total_cost_usd", 0.0),
        "warnings": result.warnings,
    }, indent=2, default=str))
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
