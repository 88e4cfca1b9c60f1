"""Base connector class for community and app store sources."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
import logging

from ..models.items import FetchRequest, RawItem


logger = logging.getLogger(__name__)


class BaseConnector(ABC):
    """
    Abstract base class for source connectors.
    All connectors must implement the fetch method and return normalized RawItems.
    """

    source_type: str = "base"

    def __init__(self):
        self.last_fetch: Optional[datetime] = None
        self.fetch_count = 0
        self.error_count = 0
        self.last_error: Optional[str] = None

    @abstractmethod
    async def fetch(self, request: FetchRequest) -> list[RawItem]:
        """
        Fetch items for the request.

        Args:
            request: Communities/apps, keywords, sample limit and velocity hints

        Returns:
            List of RawItem
        """
        pass

    async def fetch_with_tracking(self, request: FetchRequest) -> Optional[list[RawItem]]:
        """
        Fetch with error tracking. Returns None when the fetch failed so the
        caller can tell a failure from an empty result.
        """
        try:
            logger.info(f"Fetching from {self.source_type} (limit={request.limit})")
            results = await self.fetch(request)
            self.last_fetch = datetime.now()
            self.fetch_count += 1
            logger.info(f"Fetched {len(results)} items from {self.source_type}")
            return results
        except Exception as e:
            self.error_count += 1
            self.last_error = str(e)
            logger.error(f"Error fetching from {self.source_type}: {e}")
            return None

    def get_stats(self) -> dict:
        """
        Get connector statistics.
        """
        return {
            "source_type": self.source_type,
            "last_fetch": self.last_fetch.isoformat() if self.last_fetch else None,
            "fetch_count": self.fetch_count,
            "error_count": self.error_count,
            "last_error": self.last_error,
        }
