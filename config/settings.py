"""
Configuration settings for the pain signal research pipeline
"""

from pydantic_settings import BaseSettings
from pydantic import Field, model_validator
from typing import Optional


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables"""

    # Google Gemini
    gemini_api_key: Optional[str] = Field(default=None)
    classification_model: str = Field(default="gemini-2.0-flash")

    # Embeddings
    embedding_model: str = Field(default="all-MiniLM-L6-v2")
    embedding_batch_size: int = Field(default=32, ge=1)

    # Sources, by connector name
    sources: list[str] = Field(default_factory=lambda: ["reddit"])

    # Reddit API
    reddit_user_agent: str = Field(default="PainSignals/1.0")
    reddit_time_filter: str = Field(default="year")
    max_data_age_days: int = Field(default=365, ge=1)

    # Filter strategy: tiered | two_stage | legacy
    filter_strategy: str = Field(default="tiered")

    # Signal tier thresholds
    tier_core_threshold: float = Field(default=0.45, ge=0, le=1)
    tier_strong_threshold: float = Field(default=0.35, ge=0, le=1)
    tier_related_threshold: float = Field(default=0.25, ge=0, le=1)
    tier_adjacent_threshold: float = Field(default=0.15, ge=0, le=1)

    # Two-stage filter
    embedding_threshold: float = Field(default=0.28, ge=0, le=1)
    verification_cap: int = Field(default=50, ge=1)
    verification_batch_size: int = Field(default=10, ge=1)

    # Legacy cascade
    post_batch_size: int = Field(default=20, ge=1)
    comment_batch_size: int = Field(default=25, ge=1)
    prerank_top_n: int = Field(default=100, ge=1)
    min_post_length: int = Field(default=50, ge=0)
    min_comment_length: int = Field(default=30, ge=0)
    max_concurrent_batches: int = Field(default=5, ge=1)

    # Adaptive expansion
    expansion_min_core: int = Field(default=15, ge=0)
    expansion_min_total: int = Field(default=30, ge=0)
    expansion_max_communities: int = Field(default=5, ge=1)
    expansion_sample_size: int = Field(default=25, ge=1)
    expansion_max_rounds: int = Field(default=1, ge=0, le=1)

    # Source weighting
    min_source_weight: float = Field(default=0.5, ge=0)
    max_source_weight: float = Field(default=1.5, ge=0)

    # Evidence clustering
    cluster_min_size: int = Field(default=3, ge=2)
    cluster_similarity_threshold: float = Field(default=0.70, ge=0, le=1)
    cluster_max_clusters: int = Field(default=10, ge=1)
    cluster_quote_count: int = Field(default=3, ge=1)

    # Persistence
    decision_log_limit: int = Field(default=100, ge=1)
    output_dir: str = Field(default="output")

    # Fetching
    fetch_limit: int = Field(default=100, ge=1)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    @model_validator(mode="after")
    def check_tier_order(self) -> "Settings":
        thresholds = [
            self.tier_core_threshold,
            self.tier_strong_threshold,
            self.tier_related_threshold,
            self.tier_adjacent_threshold,
        ]
        if any(a <= b for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError(f"Tier thresholds must be strictly decreasing: {thresholds}")
        if self.min_source_weight > self.max_source_weight:
            raise ValueError("min_source_weight must not exceed max_source_weight")
        return self


FILTER_STRATEGIES = ["tiered", "two_stage", "legacy"]


def get_settings() -> Settings:
    """Get pipeline settings"""
    return Settings()
