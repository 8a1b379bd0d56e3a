"""Content generator backed by the Anthropic Claude API."""

import json
import os
import time
from collections import deque
from typing import Any, Callable, Protocol

import anthropic

from ..errors import GenerationError
from ..logging_config import get_logger

logger = get_logger(__name__)

QUOTA_WINDOW_S = 3600.0

SYSTEM_PROMPT = (
    "You are a component of an autonomous multi-agent system. "
    "Reply with a single JSON object and nothing else."
)


class IContentGenerator(Protocol):
    """Opaque generative collaborator: structured prompt in, structured result out."""

    async def generate(self, prompt: dict[str, Any]) -> dict[str, Any]:
        """Generate a JSON result for ``prompt``. Raises GenerationError."""
        ...

    def quota_usage(self) -> float:
        """Share of the hourly call quota used, in percent."""
        ...


def _extract_json(text: str) -> dict[str, Any]:
    """Parse the first JSON object in ``text``; tolerates fenced code blocks."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise GenerationError("Model reply contained no JSON object")
    try:
        result = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise GenerationError(f"Model reply was not valid JSON: {e}") from e
    if not isinstance(result, dict):
        raise GenerationError("Model reply was not a JSON object")
    return result


class ContentGenerator:
    """Anthropic Claude API content generator with an hourly call quota."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-sonnet-20241022",
        hourly_quota: int = 500,
        max_tokens: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self._api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable not set")

        self._model = model
        self._hourly_quota = hourly_quota
        self._max_tokens = max_tokens
        self._clock = clock
        self._calls: deque[float] = deque()
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)

    def _prune(self) -> None:
        horizon = self._clock() - QUOTA_WINDOW_S
        while self._calls and self._calls[0] < horizon:
            self._calls.popleft()

    def quota_usage(self) -> float:
        """Share of the hourly call quota used, in percent."""
        self._prune()
        if self._hourly_quota <= 0:
            return 100.0
        return min(100.0, 100.0 * len(self._calls) / self._hourly_quota)

    async def generate(self, prompt: dict[str, Any]) -> dict[str, Any]:
        """Send ``prompt`` as JSON and parse the JSON reply.

        Raises:
            GenerationError: quota exhausted, API failure, or unparseable reply.
        """
        self._prune()
        if len(self._calls) >= self._hourly_quota:
            raise GenerationError("Hourly generation quota exhausted")
        self._calls.append(self._clock())

        try:
            response = await self._client.messages.create(
                model=self._model,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": json.dumps(prompt, default=str)}],
                max_tokens=self._max_tokens,
            )
        except Exception as e:
            logger.error("Content generation failed: %s", e)
            raise GenerationError(f"LLM API error: {e}") from e

        return _extract_json(response.content[0].text)
