"""App name gate: keep community chatter only when it names the app."""

import re
from typing import Optional
import logging

from ..models.signals import TieredItem


logger = logging.getLogger(__name__)

# "Calm: Sleep & Meditation" -> "calm", "Notion - Notes" -> "notion"
TITLE_SEPARATORS = re.compile(r"\s*[:\-–—|]\s*")


def extract_core_app_name(app_name: str) -> str:
    """Core name of an app: the part before any title separator, lower-cased."""
    if not app_name:
        return ""
    core = TITLE_SEPARATORS.split(app_name.strip(), maxsplit=1)[0]
    return core.strip().lower()


class AppNameGate:
    """
    Drops community items that don't mention the app by name.
    App store reviews always pass.
    """

    def __init__(self, app_name: str):
        self.app_name = app_name
        self.core_name = extract_core_app_name(app_name)
        self._pattern: Optional[re.Pattern] = None
        if self.core_name:
            self._pattern = re.compile(
                rf"(?<!\w){re.escape(self.core_name)}(?!\w)", re.IGNORECASE
            )

    def mentions(self, text: str) -> bool:
        """Whole-word, case-insensitive match of the core name."""
        if self._pattern is None:
            return True
        return bool(self._pattern.search(text or ""))

    def passes(self, tiered: TieredItem) -> bool:
        if tiered.item.is_review:
            return True
        return self.mentions(tiered.item.text)

    def apply(self, items: list[TieredItem]) -> list[TieredItem]:
        kept = [t for t in items if self.passes(t)]
        dropped = len(items) - len(kept)
        if dropped:
            logger.info(
                f"App name gate ({self.core_name!r}): dropped {dropped} of {len(items)} items"
            )
        return kept
