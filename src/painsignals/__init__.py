"""
Pain Signal Research Engine

Takes a problem hypothesis plus posts, comments and app reviews, and keeps
only the fragments that are real evidence the problem exists.

Pipeline stages:
1. Extraction - Search keywords and exclude terms from the hypothesis
2. Aggregation - Community fetch and discovery of new communities
3. Filtering - Exclude prefilter, relevance strategy, tiers, app name gate
4. Expansion - One extra discovery + fetch + filter round when evidence is thin
5. Analysis - Pain scoring, praise filter, source weighting
6. Clustering - Thematic evidence clusters with representative quotes
"""

# Core models
from .models.items import RawItem, ResearchRequest, StructuredHypothesis, ExtractedKeywords
from .models.signals import (
    SignalTier,
    TieredItem,
    FilterResult,
    PainSignal,
    FilteringMetrics,
    ExpansionAttempt,
    ResearchResult,
)

# Errors and usage
from .errors import ErrorSource, PipelineError, classify_error
from .llm.usage import UsageTracker

# Filtering
from .filtering import (
    FilterStrategy,
    TieredFilter,
    TwoStageFilter,
    LegacyCascadeFilter,
    AppNameGate,
    create_filter_strategy,
)

# Orchestration
from .expansion import AdaptiveExpander, should_expand
from .pipeline import ResearchPipeline, create_pipeline

__all__ = [
    # Models
    "RawItem",
    "ResearchRequest",
    "StructuredHypothesis",
    "ExtractedKeywords",
    "SignalTier",
    "TieredItem",
    "FilterResult",
    "PainSignal",
    "FilteringMetrics",
    "ExpansionAttempt",
    "ResearchResult",
    # Errors and usage
    "ErrorSource",
    "PipelineError",
    "classify_error",
    "UsageTracker",
    # Filtering
    "FilterStrategy",
    "TieredFilter",
    "TwoStageFilter",
    "LegacyCascadeFilter",
    "AppNameGate",
    "create_filter_strategy",
    # Orchestration
    "AdaptiveExpander",
    "should_expand",
    "ResearchPipeline",
    "create_pipeline",
]
