"""
Gemini completion client: one prompt in, one text out.

Async wrapper around the sync google-genai SDK (runs in a worker thread).
No retry, no streaming: a failure surfaces to the caller as LLMError.
"""

import asyncio
import logging
import time
from typing import Optional

from ..core.config import get_settings
from ..core.errors import LLMConfigurationError, LLMError

logger = logging.getLogger(__name__)

# Status codes Gemini answers with when the key itself is refused
REJECTED_KEY_CODES = {401, 403}


def _is_rejected_key(error) -> bool:
    # An unknown key comes back as 400 INVALID_ARGUMENT with reason API_KEY_INVALID
    return error.code in REJECTED_KEY_CODES or "API_KEY_INVALID" in str(error.details)


class GeminiClient:
    """
    Thin client for `models.generate_content`.

    Args:
        api_key: Gemini API key. Empty means "not configured".
        model:   Model name used for every call.
        client:  Pre-built `genai.Client` (mainly for tests). Built lazily otherwise.
    """

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", client=None):
        self._api_key = api_key
        self.model = model
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key) or self._client is not None

    def _get_client(self):
        """Lazy-load and cache the google-genai client."""
        if self._client is not None:
            return self._client
        if not self._api_key:
            raise LLMConfigurationError("API_KEY is not set in environment variables")

        from google import genai

        self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _sync_complete(self, system_instruction: str, prompt: str) -> str:
        from google.genai import types

        client = self._get_client()
        response = client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(system_instruction=system_instruction),
        )
        return response.text or ""

    async def complete(self, system_instruction: str, prompt: str) -> str:
        """Run one completion. Returns the generated text ('' when the model said nothing)."""
        if not self.is_configured:
            raise LLMConfigurationError("API_KEY is not set in environment variables")

        start = time.monotonic()
        try:
            text = await asyncio.to_thread(self._sync_complete, system_instruction, prompt)
        except LLMError:
            raise
        except Exception as e:
            elapsed = time.monotonic() - start
            logger.error("LLM failed after %.1fs (model=%s): %s", elapsed, self.model, e)
            from google.genai.errors import ClientError
            if isinstance(e, ClientError) and _is_rejected_key(e):
                raise LLMConfigurationError(f"API key rejected by Gemini: {e}") from e
            raise LLMError(str(e)) from e

        logger.info(
            "LLM completion: %dms | prompt=%d chars | out=%d chars | model=%s",
            int((time.monotonic() - start) * 1000), len(prompt), len(text), self.model,
        )
        return text


_llm_client: Optional[GeminiClient] = None


def get_llm_client() -> GeminiClient:
    """Process-wide client built from settings."""
    global _llm_client
    if _llm_client is None:
        settings = get_settings()
        _llm_client = GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.default_llm_model,
        )
    return _llm_client
