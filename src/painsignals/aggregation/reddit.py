"""Reddit connector: keyword search inside communities via the JSON API."""

import os
import asyncio
from datetime import datetime, timedelta
from typing import Optional
import httpx
import logging

from .base import BaseConnector
from ..models.items import FetchRequest, RawItem, SourceKind


logger = logging.getLogger(__name__)

MIN_PER_COMMUNITY = 10
MAX_PER_COMMUNITY = 100
COMMENT_POSTS_PER_COMMUNITY = 3
COMMENTS_PER_POST = 10


def normalize_community(name: str) -> str:
    """'r/Freelance ' -> 'freelance'"""
    name = name.strip().lower()
    for prefix in ("/r/", "r/"):
        if name.startswith(prefix):
            name = name[len(prefix):]
    return name.strip("/ ")


def sample_sizes(request: FetchRequest) -> dict[str, int]:
    """
    Split the sample across communities. Velocity hints (posts/day) shift
    the share toward busier communities.
    """
    communities = [normalize_community(c) for c in request.communities]
    if not communities:
        return {}

    base = max(MIN_PER_COMMUNITY, request.limit // len(communities))
    hints = {normalize_community(k): v for k, v in request.velocity_hints.items()}
    if not hints:
        return {c: base for c in communities}

    known = [hints[c] for c in communities if c in hints and hints[c] > 0]
    average = sum(known) / len(known) if known else 0
    sizes = {}
    for community in communities:
        velocity = hints.get(community)
        if not velocity or average <= 0:
            sizes[community] = base
            continue
        scaled = int(base * min(2.0, max(0.5, velocity / average)))
        sizes[community] = min(MAX_PER_COMMUNITY, max(MIN_PER_COMMUNITY, scaled))
    return sizes


class RedditConnector(BaseConnector):
    """
    Connector for Reddit search.
    Uses REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET env variables when set,
    falls back to the public API otherwise.
    """

    source_type = "reddit"

    def __init__(
        self,
        user_agent: Optional[str] = None,
        time_filter: str = "year",
        include_comments: bool = True,
    ):
        super().__init__()
        self.client_id = os.getenv("REDDIT_CLIENT_ID")
        self.client_secret = os.getenv("REDDIT_CLIENT_SECRET")
        self.user_agent = user_agent or os.getenv("REDDIT_USER_AGENT", "PainSignals/1.0")
        self.time_filter = time_filter
        self.include_comments = include_comments

        self.access_token: Optional[str] = None
        self.token_expiry: Optional[datetime] = None

    async def _get_access_token(self) -> Optional[str]:
        """Get Reddit OAuth access token."""
        if not self.client_id or not self.client_secret:
            return None

        if self.access_token and self.token_expiry and datetime.now() < self.token_expiry:
            return self.access_token

        async with httpx.AsyncClient(timeout=10.0) as client:
            try:
                response = await client.post(
                    "https://www.reddit.com/api/v1/access_token",
                    auth=(self.client_id, self.client_secret),
                    data={"grant_type": "client_credentials"},
                    headers={"User-Agent": self.user_agent},
                )
                if response.status_code == 200:
                    data = response.json()
                    self.access_token = data["access_token"]
                    self.token_expiry = datetime.now() + timedelta(
                        seconds=data["expires_in"] - 60
                    )
                    return self.access_token
            except httpx.HTTPError as e:
                logger.error(f"Failed to get Reddit access token: {e}")

        return None

    async def _base_url_and_headers(self) -> tuple[str, dict]:
        token = await self._get_access_token()
        if token:
            return "https://oauth.reddit.com", {
                "Authorization": f"Bearer {token}",
                "User-Agent": self.user_agent,
            }
        return "https://www.reddit.com", {"User-Agent": self.user_agent}

    async def fetch(self, request: FetchRequest) -> list[RawItem]:
        """Search every requested community concurrently."""
        sizes = sample_sizes(request)
        if not sizes:
            return []

        query = " OR ".join(f'"{k}"' if " " in k else k for k in request.keywords[:6])
        base_url, headers = await self._base_url_and_headers()

        async with httpx.AsyncClient(timeout=15.0, headers=headers) as client:
            tasks = [
                self._search_community(client, base_url, community, query, limit)
                for community, limit in sizes.items()
            ]
            results = await asyncio.gather(*tasks, return_exceptions=True)

            items: list[RawItem] = []
            failures = 0
            for community, result in zip(sizes, results):
                if isinstance(result, Exception):
                    failures += 1
                    logger.error(f"Reddit fetch error for r/{community}: {result}")
                else:
                    items.extend(result)

            if failures == len(sizes):
                raise httpx.HTTPError(f"All {failures} community searches failed")

            if self.include_comments and request.include_comments:
                items.extend(await self._fetch_comments_for(client, base_url, items))

        return items

    async def _search_community(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        community: str,
        query: str,
        limit: int,
    ) -> list[RawItem]:
        url = f"{base_url}/r/{community}/search.json"
        params = {
            "q": query,
            "restrict_sr": "1",
            "sort": "relevance",
            "t": self.time_filter,
            "limit": min(limit, MAX_PER_COMMUNITY),
        }
        response = await client.get(url, params=params)
        response.raise_for_status()

        items = []
        for child in response.json().get("data", {}).get("children", []):
            item = self._parse_post(child.get("data", {}), community)
            if item:
                items.append(item)
        return items

    def _parse_post(self, post_data: dict, community: str) -> Optional[RawItem]:
        """Parse a Reddit post into a RawItem."""
        title = post_data.get("title")
        if not title or post_data.get("stickied"):
            return None

        created_utc = post_data.get("created_utc", 0)
        return RawItem(
            id=RawItem.generate_id("post", community, post_data.get("id", title)),
            source_kind=SourceKind.COMMUNITY_POST,
            source=community,
            title=title,
            body=(post_data.get("selftext") or "")[:4000],
            url=f"https://reddit.com{post_data.get('permalink', '')}",
            author=post_data.get("author"),
            score=post_data.get("score", 0) or 0,
            num_comments=post_data.get("num_comments", 0) or 0,
            created_at=datetime.fromtimestamp(created_utc) if created_utc else datetime.now(),
        )

    async def _fetch_comments_for(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        posts: list[RawItem],
    ) -> list[RawItem]:
        """Top comments from the most discussed posts of each community."""
        by_community: dict[str, list[RawItem]] = {}
        for post in posts:
            by_community.setdefault(post.source, []).append(post)

        targets = []
        for community_posts in by_community.values():
            community_posts.sort(key=lambda p: p.num_comments, reverse=True)
            targets.extend(community_posts[:COMMENT_POSTS_PER_COMMUNITY])

        results = await asyncio.gather(
            *[self._fetch_comments(client, base_url, post) for post in targets],
            return_exceptions=True,
        )

        comments: list[RawItem] = []
        for post, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(f"Error fetching comments for {post.id}: {result}")
            else:
                comments.extend(result)
        return comments

    async def _fetch_comments(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        post: RawItem,
    ) -> list[RawItem]:
        native_id = (post.url or "").rstrip("/").split("/comments/")[-1].split("/")[0]
        if not native_id:
            return []

        response = await client.get(
            f"{base_url}/comments/{native_id}.json",
            params={"limit": COMMENTS_PER_POST, "sort": "top"},
        )
        response.raise_for_status()
        data = response.json()

        comments = []
        # Comments are in the second element
        if len(data) > 1:
            for child in data[1].get("data", {}).get("children", []):
                comment = child.get("data", {})
                body = comment.get("body", "")
                if not body or child.get("kind") != "t1":
                    continue
                created_utc = comment.get("created_utc", 0)
                comments.append(
                    RawItem(
                        id=RawItem.generate_id("comment", post.source, comment.get("id", body[:20])),
                        source_kind=SourceKind.COMMUNITY_COMMENT,
                        source=post.source,
                        body=body[:2000],
                        author=comment.get("author"),
                        score=comment.get("score", 0) or 0,
                        created_at=datetime.fromtimestamp(created_utc) if created_utc else datetime.now(),
                        parent_id=post.id,
                    )
                )
                if len(comments) >= COMMENTS_PER_POST:
                    break
        return comments
