"""
Text-generation client (OpenAI chat completions). One user message in, text out.
"""

from __future__ import annotations
import logging
import re
from typing import Optional

from openai import APITimeoutError, OpenAI, OpenAIError

from autotrade.core.errors import CallTimeoutError, MalformedResponseError, UnconfiguredError, UpstreamError

logger = logging.getLogger("autotrade.llm")

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def strip_code_fence(text: str) -> str:
    """Return the body of the first ``` / ```json fenced block, or the text unchanged."""
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1)
    return text.strip()


class LLMClient:
    """Thin wrapper: timeout, no library retries, errors mapped to UpstreamError."""

    def __init__(self, api_key: str = "", timeout: float = 30.0, max_tokens: int = 1024):
        self.max_tokens = max_tokens
        self._client: Optional[OpenAI] = None
        if api_key:
            self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    def is_configured(self) -> bool:
        return self._client is not None

    def complete(self, model: str, prompt: str) -> str:
        logger.debug("[LLM prompt] model=%s prompt=%.200s...", model, prompt)
        if self._client is None:
            raise UnconfiguredError("OpenAI API key not configured")
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
            )
        except APITimeoutError as e:
            raise CallTimeoutError(f"OpenAI request timed out: {e}") from e
        except OpenAIError as e:
            raise UpstreamError(f"OpenAI API error: {e}") from e

        if not response.choices:
            raise MalformedResponseError("no response from OpenAI")
        content = response.choices[0].message.content or ""
        logger.debug("[LLM response] length=%d", len(content))
        return content
