"""
Legacy cascade filter.

Free quality gate, cheap first-person pre-rank, then two batched
classification gates: a broad domain gate and a narrower problem-match
gate. Comments always go through the comment variant of this cascade.
"""

import re
from dataclasses import dataclass, field
from typing import Optional
import logging

from .base import BATCH_FAILED, FilterStrategy, classify_in_batches, format_batch
from .quality import QualityGate, prerank
from .tiering import TierThresholds, count_tiers
from ..errors import ClassificationError
from ..llm.client import ClassificationClient
from ..llm.parsing import parse_json_response
from ..llm.usage import UsageTracker
from ..models.items import RawItem, StructuredHypothesis
from ..models.signals import (
    FilterResult,
    RelevanceDecision,
    SignalTier,
    StageCount,
    TieredItem,
)


logger = logging.getLogger(__name__)

SETTING_CONTEXT = re.compile(
    r"\b(gym|fitness|workout|office|workplace|work|school|classroom|home|restaurant|"
    r"bar|club|church|community|online|remote|virtual)\b",
    re.IGNORECASE,
)

TRANSITION_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in [
        r"\b(want(?:ing|s)? to|trying to|considering|thinking about|planning to)\s+"
        r"(start|launch|build|create|begin|open)\s+(\w+\s+)?(a\s+)?(\w+\s+)?"
        r"(business|company|startup|side hustle|freelance)",
        r"\b(escape|leave|quit)\s+(my\s+)?(\w+\s+)?(job|9-5|corporate|career)",
        r"\b(become|becoming)\s+(an?\s+)?(\w+\s+)?(entrepreneur|freelancer|founder|"
        r"business owner|self-employed|independent)",
        r"\b(transition(?:ing)?|switch(?:ing)?|move|moving)\s+(from|to|into)\s+",
        r"\b(build|start|launch|create)\s+(\w+\s+)?(own\s+)?(business|company)",
    ]
]

EMPLOYED_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in [
        r"\b(employed|employee|corporate|9-5|nine-to-five|office job|day job|"
        r"full-time job|w-2|salaried)\b",
        r"\b(stuck in|trapped in|escape from)\s+(a\s+)?(job|career|corporate)",
        r"\b(working professional|office worker|desk job)\b",
    ]
]


def hypothesis_text(hypothesis: str, structured: Optional[StructuredHypothesis]) -> str:
    if structured and structured.has_fields:
        return " ".join(
            part for part in (structured.audience, structured.problem, structured.problem_language) if part
        )
    return hypothesis


def is_employed_transition(hypothesis: str, structured: Optional[StructuredHypothesis] = None) -> bool:
    """Employee-to-founder hypotheses get audience-aware tiering."""
    text = hypothesis_text(hypothesis, structured)
    return any(p.search(text) for p in TRANSITION_PATTERNS) and any(
        p.search(text) for p in EMPLOYED_PATTERNS
    )


def setting_context(hypothesis: str, structured: Optional[StructuredHypothesis] = None) -> Optional[str]:
    """Setting the problem happens in (gym, office, remote...), if any."""
    match = SETTING_CONTEXT.search(hypothesis_text(hypothesis, structured))
    return match.group(1).lower() if match else None


@dataclass
class ProblemDomain:
    domain: str = ""
    anti_domains: list[str] = field(default_factory=list)


class ProblemMatchGate:
    """
    Batched problem-match classification, Y/N or C/R/N.
    Shared by the post cascade and the comment filter.
    """

    STANDARD_PROMPT = """Hypothesis: "{hypothesis}"

For each numbered item, does the author describe experiencing THIS SPECIFIC problem?
- Y = yes, the author has this exact problem
- N = no, a different problem, general discussion, or off-topic

Items:
{items}

Respond with exactly {count} letters (Y or N), one per item, in order. No other text."""

    TIERED_PROMPT = """Hypothesis: "{hypothesis}"
Setting: {setting}

Classify each numbered item:
- C = the problem happens in this setting ("How do I talk to people at the {setting}?")
- R = the problem without the setting, or the setting without the problem
- N = neither

Items:
{items}

Respond with exactly {count} letters (C, R or N), one per item, in order. No other text."""

    TRANSITION_PROMPT = """Hypothesis: "{hypothesis}"

This hypothesis is about EMPLOYED people who want to start their own business.
Classify each numbered item:
- C = written by someone currently employed who wants to make the transition
  ("thinking of quitting my job to start...", "side hustle while working full time")
- R = about entrepreneurship, but the author is not currently employed
  (established owners, people who already made the switch)
- N = unrelated

Items:
{items}

Respond with exactly {count} letters (C, R or N), one per item, in order. No other text."""

    def __init__(
        self,
        client: ClassificationClient,
        thresholds: Optional[TierThresholds] = None,
        batch_size: int = 20,
        stage: str = "problem_match",
    ):
        self.client = client
        self.thresholds = thresholds or TierThresholds()
        self.batch_size = batch_size
        self.stage = stage

    def build_prompt(
        self,
        hypothesis: str,
        structured: Optional[StructuredHypothesis],
        batch: list[RawItem],
    ) -> tuple[str, str]:
        """Return (prompt, allowed letters)."""
        items = format_batch(batch)
        if is_employed_transition(hypothesis, structured):
            return (
                self.TRANSITION_PROMPT.format(hypothesis=hypothesis, items=items, count=len(batch)),
                "CRN",
            )
        setting = setting_context(hypothesis, structured)
        if setting:
            return (
                self.TIERED_PROMPT.format(
                    hypothesis=hypothesis, setting=setting, items=items, count=len(batch)
                ),
                "CRN",
            )
        return (
            self.STANDARD_PROMPT.format(hypothesis=hypothesis, items=items, count=len(batch)),
            "YN",
        )

    async def run(
        self,
        items: list[RawItem],
        hypothesis: str,
        tracker: UsageTracker,
        structured: Optional[StructuredHypothesis] = None,
        title_only: Optional[set[str]] = None,
    ) -> tuple[list[TieredItem], list[RelevanceDecision]]:
        if not items:
            return [], []

        title_only = title_only or set()
        _, allowed = self.build_prompt(hypothesis, structured, items[:1])

        pairs = await classify_in_batches(
            self.client,
            tracker,
            stage=self.stage,
            items=items,
            batch_size=self.batch_size,
            build_prompt=lambda batch: self.build_prompt(hypothesis, structured, batch)[0],
            allowed=allowed,
        )

        kept: list[TieredItem] = []
        decisions: list[RelevanceDecision] = []
        for item, label in pairs:
            is_title_only = item.id in title_only
            if label is None:
                kept.append(FilterStrategy.core(item, title_only=is_title_only))
                decisions.append(
                    FilterStrategy.decision(item, self.stage, "Y", tier=SignalTier.CORE, reason=BATCH_FAILED)
                )
            elif label in ("Y", "C"):
                kept.append(FilterStrategy.core(item, title_only=is_title_only))
                decisions.append(FilterStrategy.decision(item, self.stage, label, tier=SignalTier.CORE))
            elif label == "R":
                kept.append(
                    TieredItem(
                        item=item,
                        relevance_score=self.thresholds.related,
                        tier=SignalTier.RELATED,
                        title_only=is_title_only,
                    )
                )
                decisions.append(FilterStrategy.decision(item, self.stage, "R", tier=SignalTier.RELATED))
            else:
                decisions.append(FilterStrategy.decision(item, self.stage, "N", tier=SignalTier.NOISE))

        return kept, decisions


class LegacyCascadeFilter(FilterStrategy):
    """
    Quality gate -> pre-rank -> domain gate -> problem-match gate.
    Passed items become CORE; C/R/N prompts also yield RELATED items.
    """

    name = "legacy"

    DOMAIN_PROMPT = """Extract the PRIMARY PROBLEM DOMAIN from this business hypothesis.

{context}

The domain is 1-3 words naming the topic of the PROBLEM, not the audience.
Examples:
- "Men in 50s struggling with aging skin" -> "skin aging"
- "Busy parents with picky eaters" -> "child nutrition"
- "Remote workers with back pain" -> "ergonomics"

Also list 3-5 UNRELATED domains that may show up because of audience overlap.

Return JSON only:
{{"domain": "primary problem domain", "anti_domains": ["unrelated 1", "unrelated 2"]}}"""

    DOMAIN_GATE_PROMPT = """Problem domain: {domain}{anti}

For each numbered item, is it about the problem domain "{domain}"?
- Y = the item discusses this domain
- N = a different topic

Items:
{items}

Respond with exactly {count} letters (Y or N), one per item, in order. No other text."""

    def __init__(
        self,
        client: ClassificationClient,
        quality_gate: Optional[QualityGate] = None,
        thresholds: Optional[TierThresholds] = None,
        batch_size: int = 20,
        prerank_top_n: int = 100,
    ):
        self.client = client
        self.quality_gate = quality_gate or QualityGate()
        self.thresholds = thresholds or TierThresholds()
        self.batch_size = batch_size
        self.prerank_top_n = prerank_top_n
        self.problem_gate = ProblemMatchGate(client, self.thresholds, batch_size)

    async def extract_domain(
        self,
        hypothesis: str,
        tracker: UsageTracker,
        structured: Optional[StructuredHypothesis] = None,
    ) -> ProblemDomain:
        """Ask for the problem domain. An empty domain disables the domain gate."""
        if structured and structured.has_fields:
            context = f"Audience: {structured.audience or ''}\nProblem: {structured.problem or ''}"
        else:
            context = hypothesis

        try:
            text = await self.client.complete(
                self.DOMAIN_PROMPT.format(context=context),
                tracker=tracker,
                stage="domain_extraction",
                max_output_tokens=150,
            )
        except ClassificationError as e:
            logger.error(f"Domain extraction failed, skipping domain gate: {e}")
            return ProblemDomain()

        parsed = parse_json_response(text, "domain extraction")
        if not isinstance(parsed, dict):
            return ProblemDomain()
        anti = parsed.get("anti_domains") or parsed.get("antiDomains") or []
        return ProblemDomain(
            domain=str(parsed.get("domain") or "").strip(),
            anti_domains=[str(a) for a in anti if a][:5],
        )

    async def domain_gate(
        self,
        items: list[RawItem],
        domain: ProblemDomain,
        tracker: UsageTracker,
    ) -> tuple[list[RawItem], list[RelevanceDecision]]:
        if not domain.domain or not items:
            return list(items), []

        anti = ""
        if domain.anti_domains:
            anti = f"\nREJECT items about: {', '.join(domain.anti_domains)}"

        pairs = await classify_in_batches(
            self.client,
            tracker,
            stage="domain_gate",
            items=items,
            batch_size=self.batch_size,
            build_prompt=lambda batch: self.DOMAIN_GATE_PROMPT.format(
                domain=domain.domain, anti=anti, items=format_batch(batch), count=len(batch)
            ),
        )

        passed: list[RawItem] = []
        decisions: list[RelevanceDecision] = []
        for item, label in pairs:
            if label is None:
                passed.append(item)
                decisions.append(self.decision(item, "domain_gate", "Y", reason=BATCH_FAILED))
            elif label == "Y":
                passed.append(item)
                decisions.append(self.decision(item, "domain_gate", "Y"))
            else:
                decisions.append(self.decision(item, "domain_gate", "N", tier=SignalTier.NOISE))
        return passed, decisions

    async def filter(
        self,
        items: list[RawItem],
        hypothesis: str,
        tracker: UsageTracker,
        structured: Optional[StructuredHypothesis] = None,
    ) -> FilterResult:
        if not items:
            return FilterResult(tier_counts=count_tiers([]))

        stages: list[StageCount] = []

        quality = self.quality_gate.apply(items)
        stages.append(StageCount(stage="quality_gate", before=len(items), after=len(quality.kept)))

        ranked = prerank(quality.kept, self.prerank_top_n)
        stages.append(StageCount(stage="prerank", before=len(quality.kept), after=len(ranked)))

        domain = await self.extract_domain(hypothesis, tracker, structured)
        in_domain, domain_decisions = await self.domain_gate(ranked, domain, tracker)
        stages.append(StageCount(stage="domain_gate", before=len(ranked), after=len(in_domain)))
        logger.info(f"[Legacy] Domain gate ({domain.domain or 'skipped'}): {len(in_domain)}/{len(ranked)}")

        kept, problem_decisions = await self.problem_gate.run(
            in_domain, hypothesis, tracker, structured, quality.title_only
        )
        stages.append(StageCount(stage="problem_match", before=len(in_domain), after=len(kept)))
        logger.info(f"[Legacy] Problem match: {len(kept)}/{len(in_domain)}")

        tier_counts = count_tiers(kept)
        tier_counts[SignalTier.NOISE.value] = len(items) - len(kept)

        return FilterResult(
            items=kept,
            decisions=domain_decisions + problem_decisions,
            stages=stages,
            input_count=len(items),
            tier_counts=tier_counts,
        )


class CommentFilter:
    """
    Comments are short, so they skip embeddings: quality gate, then a
    problem-match gate in larger batches.
    """

    name = "comments"

    def __init__(
        self,
        client: ClassificationClient,
        quality_gate: Optional[QualityGate] = None,
        thresholds: Optional[TierThresholds] = None,
        batch_size: int = 25,
    ):
        self.quality_gate = quality_gate or QualityGate()
        self.problem_gate = ProblemMatchGate(
            client, thresholds, batch_size, stage="comment_problem_match"
        )

    async def filter(
        self,
        comments: list[RawItem],
        hypothesis: str,
        tracker: UsageTracker,
        structured: Optional[StructuredHypothesis] = None,
    ) -> FilterResult:
        if not comments:
            return FilterResult(tier_counts=count_tiers([]))

        quality = self.quality_gate.apply(comments)
        kept, decisions = await self.problem_gate.run(quality.kept, hypothesis, tracker, structured)
        logger.info(f"[Comments] {len(kept)}/{len(comments)} kept")

        tier_counts = count_tiers(kept)
        tier_counts[SignalTier.NOISE.value] = len(comments) - len(kept)

        return FilterResult(
            items=kept,
            decisions=decisions,
            stages=[
                StageCount(stage="comment_quality_gate", before=len(comments), after=len(quality.kept)),
                StageCount(stage="comment_problem_match", before=len(quality.kept), after=len(kept)),
            ],
            input_count=len(comments),
            tier_counts=tier_counts,
        )
