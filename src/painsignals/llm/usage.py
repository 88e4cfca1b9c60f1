"""
Token and cost tracking for classification calls.

One tracker is created per research request and handed to every
classification call, then closed when the request finishes.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


logger = logging.getLogger(__name__)

# USD per 1M tokens (input, output)
MODEL_PRICING = {
    "gemini-2.0-flash": (0.10, 0.40),
    "gemini-2.0-flash-lite": (0.075, 0.30),
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.5-pro": (1.25, 10.00),
}
DEFAULT_PRICING = (0.10, 0.40)


@dataclass
class UsageRecord:
    """Token usage of one classification call."""

    stage: str
    model: str
    input_tokens: int
    output_tokens: int
    cost_usd: float
    recorded_at: datetime = field(default_factory=datetime.now)


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    input_price, output_price = MODEL_PRICING.get(model, DEFAULT_PRICING)
    return (input_tokens / 1_000_000) * input_price + (output_tokens / 1_000_000) * output_price


def extract_token_counts(response) -> tuple[int, int]:
    """Read (input, output) token counts from a Gemini response."""
    usage = getattr(response, "usage_metadata", None)
    if not usage:
        return 0, 0
    input_tokens = getattr(usage, "prompt_token_count", 0) or 0
    output_tokens = getattr(usage, "candidates_token_count", 0) or 0
    return int(input_tokens), int(output_tokens)


class UsageTracker:
    """Per-request ledger of classification token usage."""

    def __init__(self, job_id: Optional[str] = None):
        self.job_id = job_id
        self.records: list[UsageRecord] = []
        self.closed = False

    def record(
        self,
        stage: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
    ) -> UsageRecord:
        if self.closed:
            raise RuntimeError(f"Usage tracker for job {self.job_id} is closed")
        entry = UsageRecord(
            stage=stage,
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=calculate_cost(model, input_tokens, output_tokens),
        )
        self.records.append(entry)
        return entry

    def record_response(self, stage: str, model: str, response) -> UsageRecord:
        input_tokens, output_tokens = extract_token_counts(response)
        return self.record(stage, model, input_tokens, output_tokens)

    @property
    def call_count(self) -> int:
        return len(self.records)

    @property
    def total_cost(self) -> float:
        return sum(r.cost_usd for r in self.records)

    def get_usage_summary(self) -> dict:
        """Totals plus per-stage and per-model breakdowns."""
        by_stage: dict[str, dict] = {}
        by_model: dict[str, dict] = {}

        for r in self.records:
            for key, bucket in ((r.stage, by_stage), (r.model, by_model)):
                entry = bucket.setdefault(
                    key, {"calls": 0, "input_tokens": 0, "output_tokens": 0, "cost_usd": 0.0}
                )
                entry["calls"] += 1
                entry["input_tokens"] += r.input_tokens
                entry["output_tokens"] += r.output_tokens
                entry["cost_usd"] += r.cost_usd

        return {
            "job_id": self.job_id,
            "calls": self.call_count,
            "input_tokens": sum(r.input_tokens for r in self.records),
            "output_tokens": sum(r.output_tokens for r in self.records),
            "total_cost_usd": round(self.total_cost, 6),
            "by_stage": by_stage,
            "by_model": by_model,
        }

    def close(self) -> dict:
        """Close out the tracker at request end and return the summary."""
        self.closed = True
        summary = self.get_usage_summary()
        logger.info(
            f"Job {self.job_id}: {summary['calls']} classification calls, "
            f"${summary['total_cost_usd']:.4f}"
        )
        return summary
