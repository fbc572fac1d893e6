"""Gemini completion gateway via Google AI Studio (google-genai SDK).

System messages are folded into ``system_instruction``; user and
assistant turns become ``user`` / ``model`` contents. A response schema,
when given, is passed as a JSON Schema with JSON MIME type so the model
returns a single JSON document.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

import structlog
from google import genai

from trialfinder.errors import CompletionError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from trialfinder.models.base import ChatMessage, CompletionOptions

logger = structlog.get_logger()

DEFAULT_MODEL = "gemini-3-flash-preview"

_ROLE_MAP = {"user": "user", "assistant": "model"}


def build_request(
    messages: Sequence[ChatMessage], options: CompletionOptions
) -> tuple[list[dict[str, Any]], dict[str, Any]]:
    """Translate chat messages + options into (contents, config) for generate_content."""
    system_parts = [m.content for m in messages if m.role == "system"]
    contents = [
        {"role": _ROLE_MAP[m.role], "parts": [{"text": m.content}]}
        for m in messages
        if m.role != "system"
    ]

    config: dict[str, Any] = {"temperature": options.temperature}
    if system_parts:
        config["system_instruction"] = "\n\n".join(system_parts)
    if options.response_schema is not None:
        config["response_mime_type"] = "application/json"
        config["response_json_schema"] = options.response_schema
    return contents, config


class GeminiGateway:
    """Completion gateway backed by a Gemini model."""

    def __init__(self, api_key: str = "", model: str = DEFAULT_MODEL):
        self._client = genai.Client(api_key=api_key or None)
        self._model = model

    @property
    def name(self) -> str:
        return self._model

    async def complete(
        self, messages: Sequence[ChatMessage], options: CompletionOptions
    ) -> str:
        contents, config = build_request(messages, options)
        model = options.model or self._model
        start = time.perf_counter()
        try:
            response = await asyncio.to_thread(
                self._client.models.generate_content,
                model=model,
                contents=contents,
                config=config,
            )
        except Exception as exc:
            raise CompletionError(f"Gemini API call failed: {exc}") from exc

        text = getattr(response, "text", None)
        if not text:
            raise CompletionError("No content in Gemini response")

        logger.debug(
            "gemini_completion",
            model=model,
            latency_ms=round((time.perf_counter() - start) * 1000),
            chars=len(text),
        )
        return text
