"""
Output models for the research pipeline.
Tiers, audit decisions, pain signals, metrics and clusters.
"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .items import ExtractedKeywords, RawItem, SourceKind


class SignalTier(str, Enum):
    """Confidence tiers, strongest first."""

    CORE = "core"
    STRONG = "strong"
    RELATED = "related"
    ADJACENT = "adjacent"
    NOISE = "noise"

    @property
    def feeds_analysis(self) -> bool:
        """CORE and STRONG items feed pain analysis."""
        return self in (SignalTier.CORE, SignalTier.STRONG)


class TieredItem(BaseModel):
    """A raw item with its relevance score and tier."""

    item: RawItem
    relevance_score: float = Field(..., ge=0, le=1)
    tier: SignalTier
    source_reliability: float = 1.0
    title_only: bool = False

    @property
    def id(self) -> str:
        return self.item.id


class RelevanceDecision(BaseModel):
    """
    Audit record for one item at one paid (or embedding) stage.
    The full list is the filtering transparency trail.
    """

    item_id: str
    stage: str
    decision: str = Field(..., description="Y/N, C/R/N, or pass/fail")
    tier: Optional[SignalTier] = None
    score: Optional[float] = None
    reason: str = ""
    source_kind: SourceKind = SourceKind.COMMUNITY_POST
    excerpt: str = ""


class StageCount(BaseModel):
    """Before/after counts for one filter stage."""

    stage: str
    before: int
    after: int


class FilterResult(BaseModel):
    """What every filter strategy returns."""

    items: list[TieredItem] = Field(default_factory=list)
    decisions: list[RelevanceDecision] = Field(default_factory=list)
    stages: list[StageCount] = Field(default_factory=list)
    input_count: int = 0
    tier_counts: dict[str, int] = Field(
        default_factory=dict, description="Every scored input item, NOISE included"
    )

    @property
    def output_count(self) -> int:
        return len(self.items)

    @property
    def filter_rate(self) -> float:
        """Percentage of input items removed."""
        if self.input_count == 0:
            return 0.0
        return round((1 - self.output_count / self.input_count) * 100, 1)

    def by_tier(self, *tiers: SignalTier) -> list[TieredItem]:
        return [t for t in self.items if t.tier in tiers]

    def merge(self, other: "FilterResult") -> "FilterResult":
        """Combine two results, skipping items already present."""
        seen = {t.id for t in self.items}
        merged = list(self.items) + [t for t in other.items if t.id not in seen]
        return FilterResult(
            items=merged,
            decisions=list(self.decisions) + list(other.decisions),
            stages=list(self.stages) + list(other.stages),
            input_count=self.input_count + other.input_count,
            tier_counts={
                key: self.tier_counts.get(key, 0) + other.tier_counts.get(key, 0)
                for key in set(self.tier_counts) | set(other.tier_counts)
            },
        )


ExpansionKind = Literal["communities", "time_range", "fetch_limit"]


class ExpansionAttempt(BaseModel):
    """Record of one adaptive expansion try."""

    kind: ExpansionKind = "communities"
    value: str
    success: bool
    signals_gained: int = 0
    error: Optional[str] = None


QualityLevel = Literal["high", "medium", "low"]


class FilteringMetrics(BaseModel):
    """Per-request filter counters. Computed once."""

    posts_found: int = 0
    posts_analyzed: int = 0
    posts_filtered: int = 0
    post_filter_rate: float = 0.0
    comments_found: int = 0
    comments_analyzed: int = 0
    comments_filtered: int = 0
    comment_filter_rate: float = 0.0
    prefiltered: int = 0
    quality_level: QualityLevel = "high"
    core_signals: int = 0
    related_signals: int = 0
    tier_counts: dict[str, int] = Field(default_factory=dict)
    stages: list[StageCount] = Field(default_factory=list)
    expansion_attempts: list[ExpansionAttempt] = Field(default_factory=list)
    communities_searched: list[str] = Field(default_factory=list)
    strategy: str = ""


Intensity = Literal["low", "medium", "high"]


class PainSignal(BaseModel):
    """
    A pain signal derived from a filtered item.
    Source weighting rescales the score once; never mutated afterward.
    """

    item_id: str
    text: str
    source: str
    source_kind: SourceKind
    tier: SignalTier
    intensity: Intensity
    score: float = Field(..., ge=0, le=10)
    base_score: float = Field(default=0.0, ge=0, le=10)
    solution_seeking: bool = False
    willingness_to_pay: bool = False
    wtp_confidence: Literal["none", "low", "medium", "high"] = "none"
    source_weight: float = 1.0
    matched_keywords: list[str] = Field(default_factory=list)
    rating: Optional[int] = None
    engagement: int = 0
    created_at: Optional[datetime] = None
    title_only: bool = False


class PainSummary(BaseModel):
    """Aggregate view over a signal set."""

    total_signals: int = 0
    high_intensity: int = 0
    medium_intensity: int = 0
    low_intensity: int = 0
    solution_seeking: int = 0
    willingness_to_pay: int = 0
    average_score: float = 0.0
    top_keywords: list[str] = Field(default_factory=list)


class EvidenceCluster(BaseModel):
    """A group of thematically similar signals."""

    id: str
    size: int
    item_ids: list[str] = Field(default_factory=list)
    representative_quotes: list[str] = Field(default_factory=list)
    cohesion: float = 0.0
    centroid: Optional[list[float]] = None
    sources: list[str] = Field(default_factory=list)


class ClusteringResult(BaseModel):
    clusters: list[EvidenceCluster] = Field(default_factory=list)
    unclustered_ids: list[str] = Field(default_factory=list)
    total_signals: int = 0

    @property
    def clustered_count(self) -> int:
        return sum(c.size for c in self.clusters)


class ResearchResult(BaseModel):
    """Final ranked output of one research request."""

    job_id: str
    hypothesis: str
    keywords: ExtractedKeywords
    strategy: str
    signals: list[PainSignal] = Field(default_factory=list)
    tiered_items: list[TieredItem] = Field(default_factory=list)
    summary: PainSummary = Field(default_factory=PainSummary)
    metrics: FilteringMetrics = Field(default_factory=FilteringMetrics)
    decisions: list[RelevanceDecision] = Field(default_factory=list)
    clusters: ClusteringResult = Field(default_factory=ClusteringResult)
    sources_used: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    usage: dict = Field(default_factory=dict)
    completed_at: datetime = Field(default_factory=datetime.now)
