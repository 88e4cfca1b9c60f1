"""Semantic embeddings and evidence clustering."""

from .embedder import SemanticEmbedder, cosine_similarities
from .clusterer import EvidenceClusterer

__all__ = [
    "SemanticEmbedder",
    "cosine_similarities",
    "EvidenceClusterer",
]
