"""Evidence clustering using agglomerative clustering over cosine distances."""

from typing import Optional
import numpy as np
import logging

from sklearn.cluster import AgglomerativeClustering
from sklearn.metrics.pairwise import cosine_distances

from .embedder import SemanticEmbedder
from ..filtering.app_name_gate import AppNameGate
from ..models.signals import ClusteringResult, EvidenceCluster, SignalTier, TieredItem


logger = logging.getLogger(__name__)


class EvidenceClusterer:
    """
    Groups CORE and STRONG evidence into thematic clusters.
    Agglomerative clustering with average linkage:
    - No need to specify number of clusters
    - A cluster only forms while members stay above the similarity threshold
    - Small groups fall back to the unclustered set
    """

    ELIGIBLE_TIERS = (SignalTier.CORE, SignalTier.STRONG)

    def __init__(
        self,
        embedder: Optional[SemanticEmbedder] = None,
        min_cluster_size: int = 3,
        similarity_threshold: float = 0.70,
        max_clusters: int = 10,
        quote_count: int = 3,
    ):
        self.embedder = embedder or SemanticEmbedder()
        self.min_cluster_size = min_cluster_size
        self.similarity_threshold = similarity_threshold
        self.max_clusters = max_clusters
        self.quote_count = quote_count

    def select_eligible(
        self,
        items: list[TieredItem],
        app_name: Optional[str] = None,
    ) -> list[TieredItem]:
        """
        Reviews are always eligible. Community items need to mention the app
        when one is being analyzed.
        """
        gate = AppNameGate(app_name) if app_name else None
        eligible = []
        for tiered in items:
            if tiered.tier not in self.ELIGIBLE_TIERS:
                continue
            if tiered.item.is_review or gate is None or gate.mentions(tiered.item.text):
                eligible.append(tiered)
        return eligible

    async def cluster(
        self,
        items: list[TieredItem],
        app_name: Optional[str] = None,
    ) -> ClusteringResult:
        """
        Cluster eligible items. Returns an empty result below the minimum size.
        """
        eligible = self.select_eligible(items, app_name)

        if len(eligible) < self.min_cluster_size:
            logger.info(
                f"Skipping clustering: {len(eligible)} eligible items "
                f"(need {self.min_cluster_size})"
            )
            return ClusteringResult(
                unclustered_ids=[t.id for t in eligible],
                total_signals=len(eligible),
            )

        texts = [SemanticEmbedder.item_text(t.item) for t in eligible]
        embeddings = np.asarray(await self.embedder.aembed_texts(texts), dtype=np.float64)
        labels = self.assign_labels(embeddings)

        groups: dict[int, list[int]] = {}
        for index, label in enumerate(labels):
            groups.setdefault(int(label), []).append(index)

        clusters: list[EvidenceCluster] = []
        unclustered: list[str] = []

        for indices in groups.values():
            if len(indices) < self.min_cluster_size:
                unclustered.extend(eligible[i].id for i in indices)
                continue
            clusters.append(self._build_cluster(eligible, embeddings, indices))

        # Largest first, excess clusters dissolve into unclustered
        clusters.sort(key=lambda c: c.size, reverse=True)
        for extra in clusters[self.max_clusters:]:
            unclustered.extend(extra.item_ids)
        clusters = clusters[:self.max_clusters]

        for number, cluster in enumerate(clusters):
            cluster.id = f"cluster_{number}"

        logger.info(
            f"Created {len(clusters)} clusters from {len(eligible)} items "
            f"({len(unclustered)} unclustered)"
        )

        return ClusteringResult(
            clusters=clusters,
            unclustered_ids=unclustered,
            total_signals=len(eligible),
        )

    def assign_labels(self, embeddings: np.ndarray) -> np.ndarray:
        """Cluster label per row of the embedding matrix."""
        distances = cosine_distances(embeddings)
        model = AgglomerativeClustering(
            n_clusters=None,
            metric="precomputed",
            linkage="average",
            distance_threshold=1 - self.similarity_threshold,
        )
        return model.fit_predict(distances)

    def _build_cluster(
        self,
        eligible: list[TieredItem],
        embeddings: np.ndarray,
        indices: list[int],
    ) -> EvidenceCluster:
        members = embeddings[indices]
        centroid = np.mean(members, axis=0)

        # Closest to centroid are the most representative
        distances = cosine_distances(members, centroid.reshape(1, -1)).ravel()
        order = np.argsort(distances)[:self.quote_count]
        quotes = [eligible[indices[i]].item.text[:300] for i in order]

        return EvidenceCluster(
            id="",
            size=len(indices),
            item_ids=[eligible[i].id for i in indices],
            representative_quotes=quotes,
            cohesion=self._compute_cohesion(members),
            centroid=centroid.tolist(),
            sources=sorted({eligible[i].item.source for i in indices}),
        )

    def _compute_cohesion(self, embeddings: np.ndarray) -> float:
        """
        Average pairwise similarity (excluding the diagonal).
        """
        n = len(embeddings)
        if n < 2:
            return 1.0
        similarities = 1 - cosine_distances(embeddings)
        total = np.sum(similarities) - np.trace(similarities)
        return float(total / (n * (n - 1)))
