"""Source Manager for fanning a fetch request out to every connector."""

import asyncio
from datetime import datetime, timedelta
from typing import Optional
import logging

from .base import BaseConnector
from .reddit import RedditConnector
from ..errors import SourceFetchError
from ..models.items import FetchRequest, FetchResult, RawItem


logger = logging.getLogger(__name__)


class SourceManager:
    """
    Manages source connectors.
    Handles concurrent fetching, deduplication and staleness checks.
    """

    CONNECTOR_TYPES = {
        "reddit": RedditConnector,
    }

    def __init__(
        self,
        connectors: Optional[list[BaseConnector]] = None,
        max_data_age_days: int = 365,
    ):
        self.connectors: list[BaseConnector] = list(connectors or [])
        self.max_data_age = timedelta(days=max_data_age_days)
        self.last_fetch_all: Optional[datetime] = None
        self.total_items_fetched = 0

    def add_connector(self, connector: BaseConnector):
        self.connectors.append(connector)
        logger.info(f"Added source: {connector.source_type}")

    @classmethod
    def from_names(cls, names: list[str], **kwargs) -> "SourceManager":
        manager = cls(max_data_age_days=kwargs.pop("max_data_age_days", 365))
        for name in names:
            connector_class = cls.CONNECTOR_TYPES.get(name)
            if not connector_class:
                raise ValueError(f"Unknown source type: {name}")
            manager.add_connector(connector_class(**kwargs))
        return manager

    async def fetch(self, request: FetchRequest) -> FetchResult:
        """
        Fetch from all connectors concurrently.
        Raises SourceFetchError only if every connector failed.
        """
        if not self.connectors:
            raise SourceFetchError("No sources configured")

        results = await asyncio.gather(
            *[c.fetch_with_tracking(request) for c in self.connectors]
        )

        all_items: list[RawItem] = []
        sources_used: list[str] = []
        failed = 0
        for connector, result in zip(self.connectors, results):
            if result is None:
                failed += 1
                continue
            all_items.extend(result)
            if result:
                sources_used.append(connector.source_type)

        if failed == len(self.connectors):
            errors = "; ".join(c.last_error or "unknown" for c in self.connectors)
            raise SourceFetchError(f"All sources failed: {errors}")

        items = self._deduplicate(all_items)
        self.last_fetch_all = datetime.now()
        self.total_items_fetched += len(items)

        logger.info(f"Fetched {len(items)} unique items from {len(sources_used)} sources")

        return FetchResult(
            items=items,
            sources_used=sources_used,
            staleness_warning=self._staleness_warning(items),
        )

    def _deduplicate(self, items: list[RawItem]) -> list[RawItem]:
        """
        Deduplicate by id, then by title for posts.
        """
        seen_ids = set()
        seen_titles = set()
        unique_items = []

        for item in items:
            if item.id in seen_ids:
                continue
            if item.title:
                title_key = f"{item.source}:{item.title.lower().strip()[:80]}"
                if title_key in seen_titles:
                    continue
                seen_titles.add(title_key)
            seen_ids.add(item.id)
            unique_items.append(item)

        return unique_items

    def _staleness_warning(self, items: list[RawItem]) -> Optional[str]:
        if not items:
            return None
        newest = max(item.created_at for item in items)
        age = datetime.now() - newest
        if age > self.max_data_age:
            return f"Newest item is {age.days} days old; data may be stale"
        return None

    def get_stats(self) -> dict:
        """
        Get statistics for all sources.
        """
        return {
            "total_sources": len(self.connectors),
            "last_fetch_all": self.last_fetch_all.isoformat() if self.last_fetch_all else None,
            "total_items_fetched": self.total_items_fetched,
            "sources": [c.get_stats() for c in self.connectors],
        }
