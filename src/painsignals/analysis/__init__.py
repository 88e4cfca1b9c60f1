"""Pain analysis, praise filtering and source weighting."""

from .pain_analyzer import PainSignalAnalyzer, score_text, summarize, intensity_for
from .praise_filter import PraiseFilter
from .source_weights import SourceWeighter, clamp_weight

__all__ = [
    "PainSignalAnalyzer",
    "score_text",
    "summarize",
    "intensity_for",
    "PraiseFilter",
    "SourceWeighter",
    "clamp_weight",
]
