"""Source fetch boundary: connectors, source manager and community discovery."""

from .base import BaseConnector
from .reddit import RedditConnector, normalize_community
from .source_manager import SourceManager
from .discovery import CommunityDiscovery

__all__ = [
    "BaseConnector",
    "RedditConnector",
    "normalize_community",
    "SourceManager",
    "CommunityDiscovery",
]
