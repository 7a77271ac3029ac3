"""LLM provider interface and Gemini implementation."""

from __future__ import annotations

import logging
import time
from typing import Protocol

from google import genai
from google.genai import types

from docdiagrams import config

logger = logging.getLogger(__name__)


class GenerationProvider(Protocol):
    """Protocol for text generation providers."""

    def generate(self, prompt: str, system: str | None = None) -> str:
        """Generate text from a prompt, returning the response string."""
        ...


class GeminiProvider:
    """Gemini text generation.

    The API key is passed in explicitly; callers resolve it once at startup
    with ``config.require_api_key()``.
    """

    def __init__(
        self,
        api_key: str,
        generation_model: str | None = None,
        max_output_tokens: int | None = None,
    ) -> None:
        self._client = genai.Client(api_key=api_key)
        self._generation_model = generation_model or config.GEMINI_MODEL
        self._max_output_tokens = max_output_tokens or config.MAX_OUTPUT_TOKENS

    def generate(self, prompt: str, system: str | None = None) -> str:
        """Generate text using Gemini.

        Args:
            prompt: The user prompt.
            system: Optional system instruction.

        Returns:
            The generated text response.
        """
        logger.debug("Generate via %s (%d char prompt)", self._generation_model, len(prompt))
        t0 = time.perf_counter()
        gen_config = types.GenerateContentConfig(
            system_instruction=system,
            max_output_tokens=self._max_output_tokens,
        )
        response = self._client.models.generate_content(
            model=self._generation_model,
            contents=prompt,
            config=gen_config,
        )
        logger.debug("Generate complete: %d chars, %.0fms", len(response.text or ""), (time.perf_counter() - t0) * 1000)
        return response.text or ""
