"""Error taxonomy for research requests.

Every request-level failure carries a source tag so that an outside
collaborator (refund or retry handling) can decide what to do with it.
"""

import asyncio
from enum import Enum
from typing import Optional

import httpx


class ErrorSource(str, Enum):
    """Where a failure originated."""

    CLASSIFICATION = "classification"
    FETCH = "fetch"
    DATABASE = "database"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class PipelineError(Exception):
    """Base error raised for hard request failures."""

    source: ErrorSource = ErrorSource.UNKNOWN

    def __init__(self, message: str, source: Optional[ErrorSource] = None):
        super().__init__(message)
        if source is not None:
            self.source = source

    def to_dict(self) -> dict:
        return {"error": str(self), "source": self.source.value}


class ClassificationError(PipelineError):
    source = ErrorSource.CLASSIFICATION


class SourceFetchError(PipelineError):
    source = ErrorSource.FETCH


class PersistenceError(PipelineError):
    source = ErrorSource.DATABASE


def classify_error(error: BaseException) -> ErrorSource:
    """Map an arbitrary exception to its error source tag."""
    if isinstance(error, PipelineError):
        return error.source
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return ErrorSource.TIMEOUT
    if isinstance(error, httpx.HTTPError):
        return ErrorSource.FETCH
    return ErrorSource.UNKNOWN
