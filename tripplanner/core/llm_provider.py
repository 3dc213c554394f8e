from __future__ import annotations

import asyncio
import logging
import os
from typing import Any

import aisuite as ai  # type: ignore

try:
    import google.generativeai as genai  # type: ignore
except Exception:
    genai = None  # optional

from tripplanner.core.settings import get_settings

logger = logging.getLogger(__name__)


class LLMProvider:
    """
    Single-prompt text generation over aisuite.

    Models named `google-genai:<id>` go through google-generativeai instead,
    keyed by GOOGLE_API_KEY.
    """

    GENAI_PREFIX = "google-genai:"

    def __init__(self, model: str) -> None:
        self.model = model
        self._client = None
        self._genai_model: Any | None = None

        if model.startswith(self.GENAI_PREFIX):
            self._genai_model = self._build_genai_model(model[len(self.GENAI_PREFIX):])
        else:
            try:
                self._client = ai.Client()
            except Exception as exc:
                raise RuntimeError("Failed to initialize aisuite client") from exc

    @staticmethod
    def _build_genai_model(model_id: str) -> Any:
        if genai is None:
            raise RuntimeError("google-generativeai is not installed")
        api_key = os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise RuntimeError("GOOGLE_API_KEY is not set")
        genai.configure(api_key=api_key)
        return genai.GenerativeModel(model_id)

    def generate(self, prompt: str, temperature: float = 1.0) -> str:
        """Send one user prompt and return the model's text (empty if none)."""
        if self._genai_model is not None:
            response = self._genai_model.generate_content(
                prompt, generation_config={"temperature": temperature}
            )
            return response.text or ""

        resp = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
        )
        return resp.choices[0].message.content or ""

    async def generate_async(
        self, prompt: str, temperature: float = 1.0, timeout: float | None = None
    ) -> str:
        """
        Async wrapper around `generate`.

        The blocking client call runs in a worker thread so a slow model
        does not stall other requests on the event loop.

        Raises:
            asyncio.TimeoutError: if the call takes longer than `timeout` seconds
        """
        call = asyncio.to_thread(self.generate, prompt, temperature)
        if timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=timeout)


_provider: LLMProvider | None = None


def get_llm_provider() -> LLMProvider:
    """Process-wide provider for the configured model, created on first use."""
    global _provider
    if _provider is None:
        settings = get_settings()
        logger.info(f"Initializing LLM provider for model {settings.aisuite_model}")
        _provider = LLMProvider(model=settings.aisuite_model)
    return _provider
