"""Classification client using Gemini for batched relevance decisions."""

import asyncio
import os
from typing import Awaitable, Callable, Optional, TypeVar
import logging

from google import genai
from google.genai import types

from .usage import UsageTracker
from ..errors import ClassificationError


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ClassificationClient:
    """
    Thin async wrapper over Gemini for short classification prompts.
    Every call records its token usage on the tracker it is given.
    """

    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        api_key: Optional[str] = None,
        max_concurrency: int = 5,
    ):
        self.model = model
        self.api_key = api_key
        self._client: Optional[genai.Client] = None
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @property
    def client(self) -> genai.Client:
        """Lazy load the Gemini client."""
        if self._client is None:
            api_key = self.api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
            if not api_key:
                raise ClassificationError("GEMINI_API_KEY or GOOGLE_API_KEY not set")
            self._client = genai.Client(api_key=api_key)
        return self._client

    async def complete(
        self,
        prompt: str,
        tracker: UsageTracker,
        stage: str,
        max_output_tokens: int = 200,
        temperature: float = 0.0,
    ) -> str:
        """
        Send one prompt and return the response text.
        Raises ClassificationError on any service failure.
        """
        async with self._semaphore:
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=types.GenerateContentConfig(
                        temperature=temperature,
                        max_output_tokens=max_output_tokens,
                    ),
                )
            except ClassificationError:
                raise
            except Exception as e:
                raise ClassificationError(f"{stage} call failed: {e}") from e

        tracker.record_response(stage, self.model, response)
        text = response.text or ""
        logger.debug(f"[{stage}] response: {text[:80]!r}")
        return text


async def run_batches(
    batches: list[list[T]],
    worker: Callable[[int, list[T]], Awaitable[list]],
) -> list:
    """
    Run one coroutine per batch concurrently and return results in batch order.
    A failed batch yields its exception in place of a result.
    """
    tasks = [worker(index, batch) for index, batch in enumerate(batches)]
    return await asyncio.gather(*tasks, return_exceptions=True)


def chunk(items: list[T], size: int) -> list[list[T]]:
    return [items[i:i + size] for i in range(0, len(items), size)]
