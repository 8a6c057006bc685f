"""Base protocol for generative-AI backends."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass
class ImageInput:
    """An inline image sent alongside a prompt."""

    data: str  # base64, no data: prefix
    mime_type: str = "image/jpeg"

    @classmethod
    def from_data_url(cls, value: str) -> ImageInput:
        """Accept either raw base64 or a ``data:image/...;base64,`` URL."""
        match = re.match(r"^data:([\w/+.-]+);base64,(.*)$", value, re.DOTALL)
        if match:
            return cls(data=match.group(2), mime_type=match.group(1))
        return cls(data=value)


@runtime_checkable
class GenerativeBackend(Protocol):
    """Interface every text/vision model backend implements."""

    name: str

    async def generate(self, prompt: str, image: ImageInput | None = None) -> str:
        """Return the model's raw text response."""
        ...


def extract_json(raw_text: str) -> Any:
    """Parse the JSON payload out of a model response.

    Strips Markdown code fences and falls back to the outermost ``{...}``
    block. Raises ``json.JSONDecodeError`` when nothing parses.
    """
    text = raw_text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(text[start : end + 1])
