"""Data models for the pain signal pipeline."""

from .items import (
    SourceKind,
    RawItem,
    StructuredHypothesis,
    ResearchRequest,
    ExtractedKeywords,
    FetchRequest,
    FetchResult,
)
from .signals import (
    SignalTier,
    TieredItem,
    RelevanceDecision,
    StageCount,
    FilterResult,
    ExpansionAttempt,
    FilteringMetrics,
    PainSignal,
    PainSummary,
    EvidenceCluster,
    ClusteringResult,
    ResearchResult,
)

__all__ = [
    "SourceKind",
    "RawItem",
    "StructuredHypothesis",
    "ResearchRequest",
    "ExtractedKeywords",
    "FetchRequest",
    "FetchResult",
    "SignalTier",
    "TieredItem",
    "RelevanceDecision",
    "StageCount",
    "FilterResult",
    "ExpansionAttempt",
    "FilteringMetrics",
    "PainSignal",
    "PainSummary",
    "EvidenceCluster",
    "ClusteringResult",
    "ResearchResult",
]
