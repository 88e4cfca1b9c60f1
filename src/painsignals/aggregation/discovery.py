"""Community discovery: find communities where the hypothesis audience talks."""

import logging

from .reddit import normalize_community
from ..llm.client import ClassificationClient
from ..llm.parsing import parse_json_response
from ..llm.usage import UsageTracker
from ..models.items import ExtractedKeywords


logger = logging.getLogger(__name__)


class CommunityDiscovery:
    """
    Asks Gemini for communities relevant to a hypothesis.
    Returns only communities not already searched.
    """

    DISCOVERY_PROMPT = """Suggest Reddit communities where people experiencing this problem post about it.

Hypothesis: {hypothesis}
Search keywords: {keywords}
Already searched (do not repeat): {exclude}

Prefer active communities where the audience describes their own problems.
Return up to {limit} subreddit names without the r/ prefix.

Respond in this exact JSON format:
{{"communities": ["name1", "name2"]}}"""

    def __init__(self, client: ClassificationClient):
        self.client = client

    async def discover(
        self,
        hypothesis: str,
        keywords: ExtractedKeywords,
        tracker: UsageTracker,
        exclude: list[str],
        limit: int = 5,
    ) -> list[str]:
        """
        Discover up to `limit` new communities. Raises ClassificationError
        if the service call fails; unparseable output yields an empty list.
        """
        already = {normalize_community(c) for c in exclude}
        text = await self.client.complete(
            self.DISCOVERY_PROMPT.format(
                hypothesis=hypothesis,
                keywords=", ".join(keywords.primary) or hypothesis,
                exclude=", ".join(sorted(already)) or "none",
                limit=limit * 2,
            ),
            tracker=tracker,
            stage="community_discovery",
            max_output_tokens=200,
        )

        parsed = parse_json_response(text, "community discovery")
        if isinstance(parsed, dict):
            parsed = parsed.get("communities") or parsed.get("subreddits")
        if not isinstance(parsed, list):
            return []

        discovered: list[str] = []
        for name in parsed:
            community = normalize_community(str(name))
            if community and community not in already and community not in discovered:
                discovered.append(community)

        logger.info(f"Discovered {len(discovered[:limit])} new communities: {discovered[:limit]}")
        return discovered[:limit]
