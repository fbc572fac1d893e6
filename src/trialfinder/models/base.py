"""Completion gateway protocol.

A gateway is pure infrastructure: it takes role-tagged messages plus a
small set of generation options, makes one call to a text-completion
backend, and returns the raw text of the first choice. Prompt building,
JSON parsing and validation all belong to the caller.

Any object with a matching ``complete`` coroutine is a gateway; no base
class is required.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: Role
    content: str


@dataclass(frozen=True, slots=True)
class CompletionOptions:
    """Generation settings a caller may pass through a gateway.

    response_schema is a JSON Schema dict the backend should constrain its
    output to. Backends without structured output support ignore it.
    """

    model: str
    temperature: float = 0.7
    response_schema: dict[str, Any] | None = None


@runtime_checkable
class CompletionGateway(Protocol):
    @property
    def name(self) -> str:
        """Backend/model name for logging."""
        ...

    async def complete(
        self, messages: Sequence[ChatMessage], options: CompletionOptions
    ) -> str:
        """Return the raw text of the first completion choice.

        Raises CompletionError on transport failure or empty content.
        """
        ...
