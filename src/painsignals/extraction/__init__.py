"""Keyword extraction from hypotheses."""

from .keywords import (
    KeywordExtractor,
    build_search_context,
    fallback_keywords,
    split_exclude_topics,
    split_user_phrases,
)

__all__ = [
    "KeywordExtractor",
    "build_search_context",
    "fallback_keywords",
    "split_exclude_topics",
    "split_user_phrases",
]
