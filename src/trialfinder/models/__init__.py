"""Schemas and completion gateways.

Gateway backends are imported from their own modules so that the
provider SDKs only load when needed.
"""

from trialfinder.models.base import ChatMessage, CompletionGateway, CompletionOptions
from trialfinder.models.schema import PatientProfile, SearchResult, Trial

__all__ = [
    "ChatMessage",
    "CompletionGateway",
    "CompletionOptions",
    "PatientProfile",
    "SearchResult",
    "Trial",
]
