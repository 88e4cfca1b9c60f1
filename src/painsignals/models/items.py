"""
Input models for the research pipeline.
Normalized items from any community or app store, plus the hypothesis.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
import hashlib
import math


class SourceKind(str, Enum):
    """Kind of raw item the pipeline can consume."""

    COMMUNITY_POST = "community_post"
    COMMUNITY_COMMENT = "community_comment"
    APP_REVIEW = "app_review"


APP_STORES = {"app_store", "google_play"}


class RawItem(BaseModel):
    """
    One post, comment or review.
    Every source adapter normalizes its records to this shape.
    Items are immutable once fetched.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique ID within a request")
    source_kind: SourceKind
    source: str = Field(..., description="Community name or app id")

    title: Optional[str] = None
    body: str = ""
    url: Optional[str] = None
    author: Optional[str] = None

    # Engagement: votes for community items, star rating for reviews
    score: int = 0
    num_comments: int = 0
    rating: Optional[int] = Field(default=None, ge=1, le=5)

    created_at: datetime = Field(default_factory=datetime.now)

    # app_store / google_play for reviews
    store: Optional[str] = None
    parent_id: Optional[str] = None

    @field_validator("created_at")
    @classmethod
    def to_naive_local(cls, value: datetime) -> datetime:
        # Timestamps are compared against datetime.now()
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    @property
    def text(self) -> str:
        """Title and body joined for matching."""
        if self.title:
            return f"{self.title} {self.body}".strip()
        return self.body

    @property
    def is_review(self) -> bool:
        return self.source_kind == SourceKind.APP_REVIEW or self.store in APP_STORES

    @property
    def is_comment(self) -> bool:
        return self.source_kind == SourceKind.COMMUNITY_COMMENT

    @property
    def engagement_score(self) -> float:
        """Log-scaled engagement so outliers don't dominate ranking."""
        if self.is_review:
            return 0.0
        votes = max(self.score, 0)
        return math.log10(votes + 1) + math.log10(max(self.num_comments, 0) + 1)

    @classmethod
    def generate_id(cls, source_kind: str, source: str, native_id: str) -> str:
        """Generate unique ID from source and the source's own identifier."""
        content = f"{source_kind}:{source}:{native_id}"
        return hashlib.md5(content.encode()).hexdigest()[:16]


class StructuredHypothesis(BaseModel):
    """Optional structured breakdown of a hypothesis."""

    audience: Optional[str] = None
    problem: Optional[str] = None
    problem_language: Optional[str] = Field(
        default=None, description="Comma separated phrases the audience uses"
    )
    exclude_topics: Optional[str] = Field(
        default=None, description="Comma separated topics to exclude"
    )
    app_name: Optional[str] = Field(
        default=None, description="Existing app the hypothesis is about"
    )

    @property
    def has_fields(self) -> bool:
        return bool(self.audience or self.problem)


class ResearchRequest(BaseModel):
    """A single research request."""

    job_id: str
    hypothesis: str
    structured: Optional[StructuredHypothesis] = None
    communities: list[str] = Field(
        default_factory=list, description="Discovered communities to search"
    )
    fixed_communities: bool = Field(
        default=False, description="User supplied the community list; no expansion"
    )
    app_ids: list[str] = Field(default_factory=list)
    velocity_hints: dict[str, float] = Field(
        default_factory=dict, description="Posts per day per community"
    )

    @property
    def app_name(self) -> Optional[str]:
        return self.structured.app_name if self.structured else None


class ExtractedKeywords(BaseModel):
    """Search keywords derived from a hypothesis."""

    model_config = ConfigDict(frozen=True)

    primary: list[str] = Field(default_factory=list)
    secondary: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    search_context: str = ""

    @property
    def all_search_terms(self) -> list[str]:
        return self.primary + self.secondary


class FetchRequest(BaseModel):
    """What a source adapter is asked to fetch."""

    communities: list[str] = Field(default_factory=list)
    app_ids: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    limit: int = Field(default=100, ge=1)
    velocity_hints: dict[str, float] = Field(default_factory=dict)
    include_comments: bool = True


class FetchResult(BaseModel):
    """Normalized items plus fetch metadata."""

    items: list[RawItem] = Field(default_factory=list)
    sources_used: list[str] = Field(default_factory=list)
    staleness_warning: Optional[str] = None

    @property
    def posts(self) -> list[RawItem]:
        return [i for i in self.items if not i.is_comment]

    @property
    def comments(self) -> list[RawItem]:
        return [i for i in self.items if i.is_comment]
