"""Result persistence."""

from .result_store import JsonFileResultStore, ResultStore, truncate_decisions

__all__ = ["ResultStore", "JsonFileResultStore", "truncate_decisions"]
