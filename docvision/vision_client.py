"""Client for OpenAI-compatible vision and text models (OpenRouter by default).

Every failure at this boundary surfaces as ``ExternalCapabilityError`` with
a ``reason`` separating "no response" (transport/API errors after retries),
"invalid_envelope" (no choices or message) and "empty_content".
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable

import openai

from .config import (
    ANALYSIS_MODEL,
    APP_TITLE,
    MODEL_MAX_RETRIES,
    MODEL_MAX_TOKENS,
    MODEL_TIMEOUT,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    VISION_MODEL,
)
from .prompts import EXTRACTION_PROMPT
from .schema import Page
from .utils import ExternalCapabilityError

logger = logging.getLogger(__name__)

# Transient errors worth another attempt; anything else fails at once.
_RETRYABLE = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def _message_content(resp: Any, model: str) -> str:
    choices = getattr(resp, "choices", None)
    if not choices or getattr(choices[0], "message", None) is None:
        raise ExternalCapabilityError(
            ExternalCapabilityError.INVALID_ENVELOPE,
            f"Invalid response structure from {model}",
        )
    content = choices[0].message.content
    if isinstance(content, list):
        # some providers return content parts instead of a string
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(getattr(part, "text", ""))
            for part in content
        )
    if not content or not str(content).strip():
        raise ExternalCapabilityError(
            ExternalCapabilityError.EMPTY_CONTENT,
            f"Empty response from {model}",
        )
    return str(content)


class VisionClient:
    """Thin wrapper over ``openai.OpenAI`` chat completions."""

    def __init__(
        self,
        api_key: str = OPENROUTER_API_KEY,
        base_url: str = OPENROUTER_BASE_URL,
        vision_model: str = VISION_MODEL,
        analysis_model: str = ANALYSIS_MODEL,
        timeout: float = MODEL_TIMEOUT,
        max_retries: int = MODEL_MAX_RETRIES,
        max_tokens: int = MODEL_MAX_TOKENS,
        retry_backoff: float = 1.0,
        client: Any | None = None,
    ) -> None:
        self.vision_model = vision_model
        self.analysis_model = analysis_model
        self.timeout = timeout
        self.max_retries = max(0, max_retries)
        self.max_tokens = max_tokens
        self.retry_backoff = retry_backoff
        if client is None:
            client = openai.OpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0,
                default_headers={"HTTP-Referer": "http://localhost:3000", "X-Title": APP_TITLE},
            )
        self._client = client

    @classmethod
    def from_env(cls) -> VisionClient:
        if not OPENROUTER_API_KEY:
            logger.warning("OPENROUTER_API_KEY not set; model calls will be rejected")
        return cls()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def extract_content(
        self,
        pages: Iterable[Page],
        instruction: str = EXTRACTION_PROMPT,
        max_tokens: int | None = None,
    ) -> str:
        """Send every page plus *instruction* to the vision model; return its text."""

        content: list[dict[str, Any]] = [{"type": "text", "text": instruction}]
        content.extend(
            {"type": "image_url", "image_url": {"url": page.to_data_url()}}
            for page in pages
        )
        if len(content) == 1:
            raise ValueError("extract_content needs at least one page")
        return self._chat(
            self.vision_model,
            [{"role": "user", "content": content}],
            max_tokens=max_tokens or self.max_tokens,
        )

    def complete(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_tokens: int | None = None,
    ) -> str:
        """Send a single-prompt chat request to the analysis model."""

        return self._chat(
            self.analysis_model,
            [{"role": "user", "content": prompt}],
            max_tokens=max_tokens or self.max_tokens,
            temperature=temperature,
        )

    def test_connection(self) -> bool:
        """Return True if the endpoint answers a model listing."""

        try:
            self._client.models.list()
            return True
        except openai.OpenAIError as exc:
            logger.error("API connection test failed: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    def _chat(self, model: str, messages: list[dict[str, Any]], **kwargs: Any) -> str:
        last_err: Exception | None = None
        for attempt in range(self.max_retries + 1):
            try:
                resp = self._client.chat.completions.create(
                    model=model,
                    messages=messages,
                    timeout=self.timeout,
                    **kwargs,
                )
            except _RETRYABLE as exc:
                last_err = exc
                logger.warning("%s request failed (attempt %d): %s", model, attempt + 1, exc)
                if attempt < self.max_retries:
                    time.sleep(self.retry_backoff * (attempt + 1))
                continue
            except openai.OpenAIError as exc:
                raise ExternalCapabilityError(
                    ExternalCapabilityError.NO_RESPONSE,
                    f"{model} request failed: {exc}",
                ) from exc
            return _message_content(resp, model)

        raise ExternalCapabilityError(
            ExternalCapabilityError.NO_RESPONSE,
            f"{model} request failed after {self.max_retries + 1} attempts: {last_err}",
        ) from last_err
