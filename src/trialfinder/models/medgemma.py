"""Chat-completion gateway for a HuggingFace Inference Endpoint.

Targets OpenAI-compatible chat endpoints (vLLM / TGI), e.g. a MedGemma
deployment. The endpoint URL selects the model, so ``options.model`` is
only used for logging here.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

import structlog
from huggingface_hub import InferenceClient

from trialfinder.errors import CompletionError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from trialfinder.models.base import ChatMessage, CompletionOptions

logger = structlog.get_logger()


class HFChatGateway:
    """Completion gateway backed by ``InferenceClient.chat_completion``."""

    def __init__(
        self,
        endpoint_url: str,
        hf_token: str = "",
        model_name: str = "medgemma-27b",
        max_tokens: int = 2048,
    ):
        self._client = InferenceClient(
            model=endpoint_url,
            token=hf_token or None,
            headers={"X-Scale-Up-Timeout": "300"},
        )
        self._model_name = model_name
        self._max_tokens = max_tokens

    @property
    def name(self) -> str:
        return self._model_name

    async def complete(
        self, messages: Sequence[ChatMessage], options: CompletionOptions
    ) -> str:
        payload = [{"role": m.role, "content": m.content} for m in messages]
        kwargs: dict[str, Any] = {"temperature": options.temperature, "max_tokens": self._max_tokens}
        if options.response_schema is not None:
            kwargs["response_format"] = {"type": "json", "value": options.response_schema}

        start = time.perf_counter()
        try:
            response = await asyncio.to_thread(
                self._client.chat_completion, messages=payload, **kwargs
            )
        except Exception as exc:
            raise CompletionError(f"HF chat completion failed: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        text = choices[0].message.content if choices else None
        if not text:
            raise CompletionError("No content in HF chat completion response")

        logger.debug(
            "hf_chat_completion",
            model=options.model or self._model_name,
            latency_ms=round((time.perf_counter() - start) * 1000),
            chars=len(text),
        )
        return text
