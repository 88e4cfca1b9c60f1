"""Classification service access: client, response parsing and usage tracking."""

from .client import ClassificationClient, run_batches, chunk
from .parsing import parse_json_response, parse_letter_decisions
from .usage import UsageTracker, UsageRecord, calculate_cost

__all__ = [
    "ClassificationClient",
    "run_batches",
    "chunk",
    "parse_json_response",
    "parse_letter_decisions",
    "UsageTracker",
    "UsageRecord",
    "calculate_cost",
]
