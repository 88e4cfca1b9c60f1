"""Keyword extraction: hypothesis to search keywords and exclude terms."""

import re
from typing import Optional
import logging

from ..errors import ClassificationError
from ..llm.client import ClassificationClient
from ..llm.parsing import parse_json_response
from ..llm.usage import UsageTracker
from ..models.items import ExtractedKeywords, StructuredHypothesis


logger = logging.getLogger(__name__)

MAX_PRIMARY = 6
MAX_SECONDARY = 6
MAX_EXCLUDE = 4
MAX_USER_PHRASES = 3
FALLBACK_KEYWORDS = 5

STOPWORDS = {
    "about", "after", "also", "been", "being", "from", "have", "having", "into",
    "just", "like", "more", "most", "much", "need", "needs", "over", "some",
    "such", "than", "that", "their", "them", "then", "there", "these", "they",
    "this", "those", "very", "want", "wants", "were", "what", "when", "where",
    "which", "while", "with", "would", "your", "people", "who", "feel", "feels",
}


def build_search_context(hypothesis: str, structured: Optional[StructuredHypothesis] = None) -> str:
    """Compose the search context string from structured fields when present."""
    if not structured or not structured.has_fields:
        return hypothesis.strip()

    context = f"{structured.audience or 'people'} who {structured.problem or hypothesis}".strip()
    if structured.problem_language:
        context += f" (searches for: {structured.problem_language.strip()})"
    return context


def split_user_phrases(problem_language: Optional[str]) -> list[str]:
    """User phrases: split on commas and quotes, 3-50 chars, first three."""
    if not problem_language:
        return []
    phrases = [p.strip() for p in re.split(r'[,"]', problem_language)]
    return [p for p in phrases if 3 <= len(p) <= 50][:MAX_USER_PHRASES]


def split_exclude_topics(exclude_topics: Optional[str]) -> list[str]:
    """Exclude topics: comma separated, 2-50 chars, lower-cased."""
    if not exclude_topics:
        return []
    terms = [t.strip().lower() for t in exclude_topics.split(",")]
    return [t for t in terms if 2 <= len(t) <= 50]


def fallback_keywords(hypothesis: str) -> list[str]:
    """Basic split: words longer than 3 chars that aren't stopwords."""
    words = re.findall(r"[a-z0-9']+", hypothesis.lower())
    seen: list[str] = []
    for word in words:
        if len(word) > 3 and word not in STOPWORDS and word not in seen:
            seen.append(word)
    return seen[:FALLBACK_KEYWORDS]


def _dedupe(terms: list[str]) -> list[str]:
    result: list[str] = []
    lowered: set[str] = set()
    for term in terms:
        key = term.strip().lower()
        if key and key not in lowered:
            lowered.add(key)
            result.append(term.strip())
    return result


class KeywordExtractor:
    """
    Turns a hypothesis into primary/secondary search keywords and excludes.
    Uses Gemini, falling back to a plain word split if that fails.
    """

    EXTRACTION_PROMPT = """Extract search keywords for finding people who experience this problem online.

Hypothesis: {context}

Return:
- primary: up to 6 phrases the people with this problem would actually write
  (first-person, everyday language, most important first)
- secondary: up to 6 broader related phrases
- exclude: up to 4 terms for off-topic content that would match the keywords anyway

Respond in this exact JSON format:
{{"primary": ["..."], "secondary": ["..."], "exclude": ["..."]}}"""

    def __init__(self, client: Optional[ClassificationClient] = None):
        self.client = client

    async def extract(
        self,
        hypothesis: str,
        tracker: UsageTracker,
        structured: Optional[StructuredHypothesis] = None,
    ) -> ExtractedKeywords:
        context = build_search_context(hypothesis, structured)
        extracted = await self._extract_with_model(context, tracker)

        if extracted is None:
            logger.warning("Keyword extraction failed, using basic keyword split")
            primary, secondary, exclude = fallback_keywords(hypothesis), [], []
        else:
            primary, secondary, exclude = extracted

        if structured:
            primary = split_user_phrases(structured.problem_language) + primary
            exclude = exclude + split_exclude_topics(structured.exclude_topics)

        keywords = ExtractedKeywords(
            primary=_dedupe(primary),
            secondary=_dedupe(secondary),
            exclude=_dedupe([e.lower() for e in exclude]),
            search_context=context,
        )
        logger.info(
            f"Keywords: primary={keywords.primary} secondary={len(keywords.secondary)} "
            f"exclude={keywords.exclude}"
        )
        return keywords

    async def _extract_with_model(
        self, context: str, tracker: UsageTracker
    ) -> Optional[tuple[list[str], list[str], list[str]]]:
        if self.client is None:
            return None
        try:
            text = await self.client.complete(
                self.EXTRACTION_PROMPT.format(context=context),
                tracker=tracker,
                stage="keyword_extraction",
                max_output_tokens=300,
            )
        except ClassificationError as e:
            logger.error(f"Keyword extraction call failed: {e}")
            return None

        parsed = parse_json_response(text, "keyword extraction")
        if not isinstance(parsed, dict):
            return None

        def terms(key: str, limit: int) -> list[str]:
            values = parsed.get(key) or []
            if not isinstance(values, list):
                return []
            return [str(v).strip() for v in values if str(v).strip()][:limit]

        primary = terms("primary", MAX_PRIMARY)
        if not primary:
            return None
        return primary, terms("secondary", MAX_SECONDARY), terms("exclude", MAX_EXCLUDE)
