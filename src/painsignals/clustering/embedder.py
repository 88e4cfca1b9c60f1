"""Semantic embedder using sentence-transformers (local, free)."""

import asyncio
from typing import Optional
import numpy as np
import logging

from sentence_transformers import SentenceTransformer

from ..models.items import RawItem


logger = logging.getLogger(__name__)


class SemanticEmbedder:
    """
    Generates semantic embeddings using sentence-transformers.
    Runs locally - no API costs.

    Default model: all-MiniLM-L6-v2
    - 384 dimensions
    - Fast inference
    - Good enough for relevance scoring against a hypothesis
    """

    DEFAULT_MODEL = "all-MiniLM-L6-v2"
    MAX_CHARS = 1000

    def __init__(self, model_name: Optional[str] = None, batch_size: int = 32):
        self.model_name = model_name or self.DEFAULT_MODEL
        self.batch_size = batch_size
        self._model: Optional[SentenceTransformer] = None
        self.embedding_dim: int = 384

    @property
    def model(self) -> SentenceTransformer:
        """Lazy load the model."""
        if self._model is None:
            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
            self.embedding_dim = self._model.get_sentence_embedding_dimension()
            logger.info(f"Model loaded. Embedding dimension: {self.embedding_dim}")
        return self._model

    @staticmethod
    def item_text(item: RawItem) -> str:
        """Text used to embed an item. Title first, body truncated."""
        if item.title:
            return f"{item.title}. {item.body}"[:SemanticEmbedder.MAX_CHARS]
        return item.body[:SemanticEmbedder.MAX_CHARS]

    def embed_texts(self, texts: list[str]) -> np.ndarray:
        """
        Generate embeddings for multiple texts.
        Returns numpy array of shape (n_texts, embedding_dim).
        """
        if not texts:
            return np.zeros((0, self.embedding_dim))
        return self.model.encode(
            texts,
            batch_size=self.batch_size,
            show_progress_bar=len(texts) > 100,
            convert_to_numpy=True,
        )

    async def aembed_texts(self, texts: list[str]) -> np.ndarray:
        """Embed off the event loop."""
        return await asyncio.to_thread(self.embed_texts, texts)

    async def score_against(self, reference: str, texts: list[str]) -> list[float]:
        """
        Cosine similarity of each text to a reference text, clamped to [0, 1].
        """
        if not texts:
            return []
        embeddings = await self.aembed_texts([reference] + texts)
        reference_vec, vectors = embeddings[0], embeddings[1:]
        similarities = cosine_similarities(reference_vec, vectors)
        return [float(s) for s in np.clip(similarities, 0.0, 1.0)]

    async def score_items(self, reference: str, items: list[RawItem]) -> list[float]:
        return await self.score_against(reference, [self.item_text(i) for i in items])


def cosine_similarities(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of one vector against each row of a matrix."""
    query = np.asarray(query, dtype=np.float64)
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.size == 0:
        return np.zeros(0)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(norms > 0, dots / norms, 0.0)
    return np.nan_to_num(sims)
