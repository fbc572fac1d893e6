"""Error taxonomy for the extraction → search pipeline.

Every failure the pipeline raises is one of these kinds, so an outer
layer (CLI, HTTP handler) can tell "upstream unavailable" apart from
"bad input" and "internal failure" without string matching.
"""

from __future__ import annotations

import enum


class TrialFinderError(Exception):
    """Base class for all trialfinder errors."""


class InvalidInputError(TrialFinderError):
    """Caller supplied malformed or insufficient input. No network call was made."""


class CompletionError(TrialFinderError):
    """LLM gateway transport failure, or a response with no text content."""


class ExtractionError(TrialFinderError):
    """LLM output could not be parsed or failed PatientProfile validation."""


class RegistryAPIError(TrialFinderError):
    """ClinicalTrials.gov was unreachable or answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ErrorKind(enum.StrEnum):
    """Caller-visible error category."""

    INVALID_INPUT = "invalid_input"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INTERNAL = "internal"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UPSTREAM_UNAVAILABLE: 502,
    ErrorKind.INTERNAL: 500,
}


def classify_error(exc: BaseException) -> ErrorKind:
    """Map an exception raised by the pipeline to its ErrorKind."""
    if isinstance(exc, RegistryAPIError):
        return ErrorKind.UPSTREAM_UNAVAILABLE
    if isinstance(exc, InvalidInputError):
        return ErrorKind.INVALID_INPUT
    return ErrorKind.INTERNAL
