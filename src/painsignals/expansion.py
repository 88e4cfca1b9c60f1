"""
Adaptive expansion.

When the first filter pass finds too little evidence, discover more
communities, fetch a small sample from them and run the same strategy on
the new batch only. Bounded to a fixed number of rounds.
"""

from dataclasses import dataclass, field
from typing import Optional
import logging

from .aggregation.discovery import CommunityDiscovery
from .aggregation.reddit import normalize_community
from .aggregation.source_manager import SourceManager
from .filtering.base import FilterStrategy
from .filtering.prefilter import apply_exclude_filter
from .llm.usage import UsageTracker
from .models.items import ExtractedKeywords, FetchRequest, ResearchRequest
from .models.signals import ExpansionAttempt, FilterResult, SignalTier


logger = logging.getLogger(__name__)


def should_expand(
    core_count: int,
    related_count: int,
    fixed_communities: bool = False,
    min_core: int = 15,
    min_total: int = 30,
) -> bool:
    """
    Expand when CORE < min_core or CORE + STRONG/RELATED < min_total,
    unless the user pinned the community list.
    """
    if fixed_communities:
        return False
    return core_count < min_core or core_count + related_count < min_total


def evidence_counts(result: FilterResult) -> tuple[int, int]:
    """(core, strong + related) over the kept items."""
    core = len(result.by_tier(SignalTier.CORE))
    related = len(result.by_tier(SignalTier.STRONG, SignalTier.RELATED))
    return core, related


@dataclass
class ExpansionOutcome:
    result: FilterResult
    attempts: list[ExpansionAttempt] = field(default_factory=list)
    communities_searched: list[str] = field(default_factory=list)

    @property
    def expanded(self) -> bool:
        return bool(self.attempts)


class AdaptiveExpander:
    """
    Runs at most `max_rounds` discovery + fetch + filter rounds.
    Every round is recorded as an ExpansionAttempt; a failed round leaves
    the running result untouched.
    """

    def __init__(
        self,
        discovery: CommunityDiscovery,
        source_manager: SourceManager,
        strategy: FilterStrategy,
        max_communities: int = 5,
        sample_size: int = 25,
        max_rounds: int = 1,
        min_core: int = 15,
        min_total: int = 30,
    ):
        self.discovery = discovery
        self.source_manager = source_manager
        self.strategy = strategy
        self.max_communities = max_communities
        self.sample_size = sample_size
        self.max_rounds = max_rounds
        self.min_core = min_core
        self.min_total = min_total

    @classmethod
    def from_settings(cls, settings, discovery, source_manager, strategy) -> "AdaptiveExpander":
        return cls(
            discovery,
            source_manager,
            strategy,
            max_communities=settings.expansion_max_communities,
            sample_size=settings.expansion_sample_size,
            max_rounds=settings.expansion_max_rounds,
            min_core=settings.expansion_min_core,
            min_total=settings.expansion_min_total,
        )

    def needs_expansion(self, result: FilterResult, fixed_communities: bool = False) -> bool:
        core, related = evidence_counts(result)
        return should_expand(core, related, fixed_communities, self.min_core, self.min_total)

    async def expand(
        self,
        request: ResearchRequest,
        keywords: ExtractedKeywords,
        result: FilterResult,
        tracker: UsageTracker,
        searched: Optional[list[str]] = None,
    ) -> ExpansionOutcome:
        outcome = ExpansionOutcome(
            result=result,
            communities_searched=[normalize_community(c) for c in (searched or request.communities)],
        )

        for round_number in range(1, self.max_rounds + 1):
            if not self.needs_expansion(outcome.result, request.fixed_communities):
                break

            core, related = evidence_counts(outcome.result)
            logger.info(
                f"[Expansion] Round {round_number}: core={core}, strong/related={related}, "
                f"discovering up to {self.max_communities} communities"
            )
            gained, attempt, communities = await self._run_round(
                request, keywords, outcome.result, tracker, outcome.communities_searched
            )
            outcome.attempts.append(attempt)
            outcome.communities_searched.extend(
                c for c in communities if c not in outcome.communities_searched
            )
            if gained is not None:
                outcome.result = outcome.result.merge(gained)

        return outcome

    async def _run_round(
        self,
        request: ResearchRequest,
        keywords: ExtractedKeywords,
        current: FilterResult,
        tracker: UsageTracker,
        searched: list[str],
    ) -> tuple[Optional[FilterResult], ExpansionAttempt, list[str]]:
        """
        One discovery + fetch + filter round. Never raises.
        """
        communities: list[str] = []
        try:
            communities = await self.discovery.discover(
                request.hypothesis,
                keywords,
                tracker,
                exclude=list(searched),
                limit=self.max_communities,
            )
            if not communities:
                return None, ExpansionAttempt(
                    kind="communities",
                    value="",
                    success=False,
                    error="No new communities discovered",
                ), []

            fetched = await self.source_manager.fetch(FetchRequest(
                communities=communities,
                keywords=keywords.all_search_terms,
                limit=self.sample_size * len(communities),
                velocity_hints=request.velocity_hints,
                include_comments=False,
            ))

            known = {t.id for t in current.items}
            new_items = [
                item for item in apply_exclude_filter(fetched.posts, keywords.exclude)
                if item.id not in known
            ]
            gained = await self.strategy.filter(
                new_items, request.hypothesis, tracker, request.structured
            )
        except Exception as e:
            logger.warning(f"[Expansion] Round failed, keeping original results: {e}")
            return None, ExpansionAttempt(
                kind="communities",
                value=", ".join(communities),
                success=False,
                error=str(e),
            ), communities

        signals_gained = len([t for t in gained.items if t.id not in known])
        logger.info(
            f"[Expansion] {len(new_items)} new items from {len(communities)} communities, "
            f"{signals_gained} signals gained"
        )
        return gained, ExpansionAttempt(
            kind="communities",
            value=", ".join(communities),
            success=signals_gained > 0,
            signals_gained=signals_gained,
        ), communities
