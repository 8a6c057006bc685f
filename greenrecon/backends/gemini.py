"""Gemini backend — Google generateContent REST API via httpx."""

from __future__ import annotations

import logging

import httpx

from greenrecon.backends.base import GenerativeBackend, ImageInput
from greenrecon.config import settings

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiBackend:
    """Text and vision generation using a Gemini model."""

    name: str = "Gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.gemini_model
        self.timeout = timeout or settings.ai_timeout

    async def generate(self, prompt: str, image: ImageInput | None = None) -> str:
        """Send one user turn and return the concatenated text parts."""
        parts: list[dict] = [{"text": prompt}]
        if image is not None:
            parts.append({"inline_data": {"mime_type": image.mime_type, "data": image.data}})

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{API_BASE}/{self.model}:generateContent",
                headers={
                    "x-goog-api-key": self.api_key,
                    "content-type": "application/json",
                },
                json={"contents": [{"role": "user", "parts": parts}]},
            )
            response.raise_for_status()

        text = self._extract_text(response.json())
        logger.info("Gemini %s responded (%d chars)", self.model, len(text))
        return text

    def _extract_text(self, data: dict) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {})
            raise RuntimeError(f"Gemini returned no candidates: {feedback}")
        content = candidates[0].get("content", {})
        return "".join(part.get("text", "") for part in content.get("parts", []))


def default_backend() -> GenerativeBackend | None:
    """The configured backend, or ``None`` when no API key is set."""
    if not settings.google_api_key:
        logger.warning("GREENRECON_GOOGLE_API_KEY not set - AI features will use fallbacks")
        return None
    return GeminiBackend()
