"""End-to-end entry points: transcript or profile → SearchResult.

Flow:
  extract_and_search: transcript -> INGEST (LLM) -> PatientProfile -> PRESCREEN -> trials
  search_by_profile:  caller profile ----------------> PatientProfile -> PRESCREEN -> trials
  refine:             profile + edited query -------------------------> PRESCREEN -> trials

Errors propagate unchanged; use errors.classify_error() at the boundary
to turn them into a caller-visible signal.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from trialfinder.config import DEFAULT_LLM_MODEL
from trialfinder.errors import InvalidInputError
from trialfinder.ingest.extractor import extract_patient_profile
from trialfinder.models.schema import CTGovQuery, Demographics, PatientProfile, SearchResult

if TYPE_CHECKING:
    from trialfinder.models.base import CompletionGateway
    from trialfinder.models.schema import Trial
    from trialfinder.prescreen.ctgov_client import CTGovClient

logger = structlog.get_logger()


def ensure_medical_content(profile: PatientProfile) -> None:
    """Reject profiles with no conditions, biomarkers, or stage."""
    if not profile.has_medical_content():
        raise InvalidInputError(
            "No medical conditions in profile. "
            "Please provide at least one condition, biomarker, or stage."
        )


def coerce_profile(profile: PatientProfile | dict[str, Any]) -> PatientProfile:
    """Validate a caller-supplied profile (dict in camelCase or snake_case)."""
    if isinstance(profile, PatientProfile):
        return profile
    try:
        return PatientProfile.model_validate(profile)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid patient profile data: {exc}") from exc


def apply_query_override(
    profile: PatientProfile,
    query: CTGovQuery | dict[str, Any] | None = None,
    demographics: Demographics | dict[str, Any] | None = None,
) -> PatientProfile:
    """Return a copy of ``profile`` with client edits merged in.

    Only query fields the client actually set are replaced, so an explicit
    ``termQuery: ""`` clears the term query while leaving the condition
    query alone. Demographics, when given, replace the original wholesale.
    """
    update: dict[str, Any] = {}
    try:
        if query is not None:
            override = query if isinstance(query, CTGovQuery) else CTGovQuery.model_validate(query)
            edits = {name: getattr(override, name) for name in override.model_fields_set}
            update["ctgov_query"] = profile.ctgov_query.model_copy(update=edits)
        if demographics is not None:
            update["demographics"] = (
                demographics
                if isinstance(demographics, Demographics)
                else Demographics.model_validate(demographics)
            )
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid profile override: {exc}") from exc

    return profile.model_copy(update=update) if update else profile


async def refine(profile: PatientProfile, client: CTGovClient) -> list[Trial]:
    """Re-run the registry search for an (edited) profile. No LLM call.

    Raises InvalidInputError before any network call if the profile has
    no conditions, biomarkers, or stage.
    """
    ensure_medical_content(profile)
    return await client.search(profile)


async def search_by_profile(
    profile: PatientProfile | dict[str, Any], client: CTGovClient
) -> SearchResult:
    """Search trials for a structured profile supplied by the caller."""
    validated = coerce_profile(profile)
    trials = await refine(validated, client)
    logger.info("search_by_profile_completed", trials=len(trials))
    return SearchResult(profile=validated, trials=trials)


async def extract_and_search(
    transcript: str,
    gateway: CompletionGateway,
    client: CTGovClient,
    *,
    model: str = DEFAULT_LLM_MODEL,
) -> SearchResult:
    """Extract a profile from a transcript, then search trials for it.

    A transcript that yields no conditions, biomarkers, or stage is
    rejected with InvalidInputError before the registry is called.
    """
    profile = await extract_patient_profile(transcript, gateway, model=model)
    if not profile.has_medical_content():
        raise InvalidInputError(
            "No medical conditions identified in transcript. "
            "Please provide a valid patient-doctor conversation."
        )
    trials = await client.search(profile)
    logger.info("extract_and_search_completed", trials=len(trials))
    return SearchResult(profile=profile, trials=trials)
