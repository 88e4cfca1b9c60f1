"""
Source weighting.

Scales pain scores by how relevant each originating community is to the
hypothesis. Weights come from one classification call and are clamped.
"""

from typing import Optional
import logging

from .pain_analyzer import MAX_SCORE, intensity_for
from ..aggregation.reddit import normalize_community
from ..errors import ClassificationError
from ..llm.client import ClassificationClient
from ..llm.parsing import parse_json_response
from ..llm.usage import UsageTracker
from ..models.items import SourceKind
from ..models.signals import PainSignal


logger = logging.getLogger(__name__)

NEUTRAL_WEIGHT = 1.0


def clamp_weight(value, min_weight: float = 0.5, max_weight: float = 1.5) -> float:
    """Clamp to [min, max]; anything non-numeric is neutral."""
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return NEUTRAL_WEIGHT
    if weight != weight:  # NaN
        return NEUTRAL_WEIGHT
    return max(min_weight, min(max_weight, weight))


class SourceWeighter:
    """
    Estimates a relevance weight per community and applies it to signals.
    1.0 is neutral. Failures fall back to neutral weights.
    """

    WEIGHT_PROMPT = """Rate how relevant each community is to this hypothesis.

Hypothesis: "{hypothesis}"

Communities: {communities}

For each community, assign a relevance weight:
- 1.5 = Highly specific to the hypothesis domain
- 1.2 = Directly related to the target audience's needs
- 1.0 = Somewhat related, useful but not core
- 0.7 = Tangentially related, mostly different topics
- 0.5 = Too broad, mostly irrelevant posts

Be strict. Only give 1.5 to communities that are directly about the hypothesis topic.

Respond with JSON only:
{{"weights": {{"communityname": 1.2, "anothercommunity": 0.7}}}}"""

    def __init__(
        self,
        client: Optional[ClassificationClient],
        min_weight: float = 0.5,
        max_weight: float = 1.5,
    ):
        self.client = client
        self.min_weight = min_weight
        self.max_weight = max_weight

    def default_weights(self, sources: list[str]) -> dict[str, float]:
        return {normalize_community(s): NEUTRAL_WEIGHT for s in sources}

    async def get_weights(
        self,
        hypothesis: str,
        sources: list[str],
        tracker: UsageTracker,
    ) -> dict[str, float]:
        """
        One weight per source, keyed by normalized name.
        """
        weights = self.default_weights(sources)
        if not sources or self.client is None:
            return weights

        try:
            text = await self.client.complete(
                self.WEIGHT_PROMPT.format(hypothesis=hypothesis, communities=", ".join(sources)),
                tracker=tracker,
                stage="source_weighting",
                max_output_tokens=300,
            )
        except ClassificationError as e:
            logger.warning(f"Source weighting failed, using neutral weights: {e}")
            return weights

        parsed = parse_json_response(text, "source weights")
        raw = parsed.get("weights") if isinstance(parsed, dict) else None
        if not isinstance(raw, dict):
            logger.warning("Source weighting returned no weights, using neutral weights")
            return weights

        for name, value in raw.items():
            weights[normalize_community(str(name))] = clamp_weight(
                value, self.min_weight, self.max_weight
            )
        logger.info(f"Source weights: {weights}")
        return weights

    def weight_for(self, signal: PainSignal, weights: dict[str, float]) -> float:
        # Reviews are weighted by rating, not by origin
        if signal.source_kind == SourceKind.APP_REVIEW:
            return NEUTRAL_WEIGHT
        weight = weights.get(normalize_community(signal.source), NEUTRAL_WEIGHT)
        return clamp_weight(weight, self.min_weight, self.max_weight)

    def apply(self, signals: list[PainSignal], weights: dict[str, float]) -> list[PainSignal]:
        """
        Return re-scored copies. Each score is multiplied once and
        clamped to [0, 10]; the input signals are left untouched.
        """
        weighted = []
        for signal in signals:
            weight = self.weight_for(signal, weights)
            score = round(min(MAX_SCORE, max(0.0, signal.score * weight)), 1)
            weighted.append(signal.model_copy(update={
                "score": score,
                "source_weight": weight,
                "intensity": intensity_for(score),
            }))
        weighted.sort(key=lambda s: s.score, reverse=True)
        return weighted

    async def weigh(
        self,
        hypothesis: str,
        signals: list[PainSignal],
        tracker: UsageTracker,
    ) -> list[PainSignal]:
        sources = list(dict.fromkeys(
            s.source for s in signals if s.source_kind != SourceKind.APP_REVIEW
        ))
        weights = await self.get_weights(hypothesis, sources, tracker)
        return self.apply(signals, weights)
