"""Persistence of finished research results."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
import asyncio
import json
import logging

from ..errors import PersistenceError
from ..models.items import SourceKind
from ..models.signals import RelevanceDecision, ResearchResult


logger = logging.getLogger(__name__)


def truncate_decisions(decisions: list[RelevanceDecision], limit: int = 100) -> list[RelevanceDecision]:
    """
    Keep the first `limit` decisions per type: comments and everything else.
    Input order is preserved.
    """
    kept = []
    seen = {"posts": 0, "comments": 0}
    for decision in decisions:
        kind = "comments" if decision.source_kind == SourceKind.COMMUNITY_COMMENT else "posts"
        if seen[kind] >= limit:
            continue
        seen[kind] += 1
        kept.append(decision)
    return kept


class ResultStore(ABC):
    """Abstract base class for result persistence."""

    @abstractmethod
    async def save(self, result: ResearchResult) -> str:
        """Persist a result and return where it was stored."""
        pass

    @abstractmethod
    async def load(self, job_id: str) -> Optional[ResearchResult]:
        pass


class JsonFileResultStore(ResultStore):
    """
    One JSON file per job under an output directory.
    """

    def __init__(self, output_dir: str = "output", decision_limit: int = 100):
        self.output_dir = Path(output_dir)
        self.decision_limit = decision_limit

    def path_for(self, job_id: str) -> Path:
        return self.output_dir / f"{job_id}_result.json"

    def _write(self, path: Path, payload: dict):
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(payload, f, indent=2, default=str)

    async def save(self, result: ResearchResult) -> str:
        trimmed = result.model_copy(update={
            "decisions": truncate_decisions(result.decisions, self.decision_limit),
        })
        path = self.path_for(result.job_id)
        try:
            await asyncio.to_thread(self._write, path, trimmed.model_dump(mode="json"))
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to save result {result.job_id}: {e}") from e

        logger.info(f"Saved result: {path} ({len(trimmed.decisions)}/{len(result.decisions)} decisions)")
        return str(path)

    async def load(self, job_id: str) -> Optional[ResearchResult]:
        path = self.path_for(job_id)
        if not path.exists():
            return None
        try:
            with open(path) as f:
                return ResearchResult.model_validate(json.load(f))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to load result {job_id}: {e}") from e
