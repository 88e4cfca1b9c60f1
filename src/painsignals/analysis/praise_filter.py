"""Semantic praise filter: drop pure testimonials from app-review signal sets."""

from typing import Optional
import numpy as np
import logging

from .lexicon import COMPLAINT_ANCHOR, PRAISE_ANCHOR
from ..clustering.embedder import SemanticEmbedder, cosine_similarities
from ..models.signals import PainSignal


logger = logging.getLogger(__name__)


class PraiseFilter:
    """
    Compares each signal to a praise anchor and a complaint anchor.
    A signal is praise only if it is clearly closer to praise.
    Reviews rated 3 stars or lower are never praise.
    """

    PRAISE_THRESHOLD = 0.45
    MARGIN = 0.10
    MAX_RATING_FOR_COMPLAINT = 3

    def __init__(self, embedder: Optional[SemanticEmbedder] = None):
        self.embedder = embedder or SemanticEmbedder()

    def is_praise(self, praise_sim: float, complaint_sim: float, rating: Optional[int] = None) -> bool:
        if rating is not None and rating <= self.MAX_RATING_FOR_COMPLAINT:
            return False
        return praise_sim > self.PRAISE_THRESHOLD and praise_sim > complaint_sim + self.MARGIN

    async def filter(self, signals: list[PainSignal]) -> list[PainSignal]:
        """
        Remove praise-only signals. Any failure keeps every signal.
        """
        candidates = [
            s for s in signals
            if s.rating is None or s.rating > self.MAX_RATING_FOR_COMPLAINT
        ]
        if not candidates:
            return list(signals)

        try:
            embeddings = await self.embedder.aembed_texts(
                [PRAISE_ANCHOR, COMPLAINT_ANCHOR] + [s.text for s in candidates]
            )
            embeddings = np.asarray(embeddings, dtype=np.float64)
            praise_sims = cosine_similarities(embeddings[0], embeddings[2:])
            complaint_sims = cosine_similarities(embeddings[1], embeddings[2:])
        except Exception as e:
            logger.warning(f"Praise filter failed, keeping all {len(signals)} signals: {e}")
            return list(signals)

        praise_ids = {
            s.item_id
            for s, p, c in zip(candidates, praise_sims, complaint_sims)
            if self.is_praise(float(p), float(c), s.rating)
        }
        if praise_ids:
            logger.info(f"Praise filter: removed {len(praise_ids)} praise-only signals")
        return [s for s in signals if s.item_id not in praise_ids]
