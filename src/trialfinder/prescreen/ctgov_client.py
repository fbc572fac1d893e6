"""Async ClinicalTrials.gov API v2 client and study → Trial mapper.

One search is one GET against ``/studies``. There is no retry and no
rate limiting: a failed call fails the whole request with
RegistryAPIError, which callers report as "upstream unavailable".

Mapping is tolerant per record. A study that lacks an NCT ID or title,
or whose assembled Trial fails validation, is skipped and logged; the
rest of the page is still returned.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx
import structlog
from pydantic import ValidationError

from trialfinder.config import CTGOV_STUDIES_URL
from trialfinder.errors import RegistryAPIError
from trialfinder.models.schema import AgeBound, AgeUnit, EligibilitySex, Trial
from trialfinder.prescreen.query_builder import build_ctgov_query, params_to_query_string

if TYPE_CHECKING:
    from trialfinder.models.schema import PatientProfile

logger = structlog.get_logger()

STUDY_URL_TEMPLATE = "https://clinicaltrials.gov/study/{nct_id}"

_AGE_RE = re.compile(r"^(\d+)\s*(Years?|Months?|Days?)$", re.IGNORECASE)

_SEX_MAP: dict[str, EligibilitySex] = {
    "ALL": EligibilitySex.ALL,
    "BOTH": EligibilitySex.ALL,
    "FEMALE": EligibilitySex.FEMALE,
    "MALE": EligibilitySex.MALE,
}


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def parse_age(age_str: str | None) -> AgeBound | None:
    """Parse a CT.gov age string such as "18 Years" or "6 Months".

    Anything else ("N/A", "adult", "") yields None.
    """
    if not isinstance(age_str, str) or not age_str:
        return None
    match = _AGE_RE.match(age_str.strip())
    if not match:
        return None

    unit_str = match.group(2).lower()
    if unit_str.startswith("month"):
        unit = AgeUnit.MONTHS
    elif unit_str.startswith("day"):
        unit = AgeUnit.DAYS
    else:
        unit = AgeUnit.YEARS
    return AgeBound(value=int(match.group(1)), unit=unit)


def map_sex(sex: str | None) -> EligibilitySex | None:
    """Map a CT.gov eligibility sex value; unknown values yield None."""
    if not isinstance(sex, str):
        return None
    return _SEX_MAP.get(sex.upper())


# ---------------------------------------------------------------------------
# Study → Trial mapping
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MappedTrial:
    trial: Trial


@dataclass(frozen=True, slots=True)
class SkippedStudy:
    nct_id: str | None
    reason: str


StudyMapping = MappedTrial | SkippedStudy


def parse_search_results(raw: dict) -> list[dict]:
    """Extract the list of studies from a search API response."""
    return raw.get("studies") or []


def _build_candidate(nct_id: str, title: str, proto: dict[str, Any]) -> dict[str, Any]:
    status_mod = proto.get("statusModule") or {}
    cond_mod = proto.get("conditionsModule") or {}
    design_mod = proto.get("designModule") or {}
    arms_mod = proto.get("armsInterventionsModule") or {}
    elig_mod = proto.get("eligibilityModule") or {}
    contacts_mod = proto.get("contactsLocationsModule") or {}

    interventions = arms_mod.get("interventions")
    locations = contacts_mod.get("locations")

    return {
        "nct_id": nct_id,
        "title": title,
        "overall_status": status_mod.get("overallStatus") or "UNKNOWN",
        "conditions": cond_mod.get("conditions") or [],
        "phases": design_mod.get("phases"),
        "interventions": (
            [i.get("name") or "" for i in interventions] if interventions is not None else None
        ),
        "eligibility": {
            "criteria_text": elig_mod.get("eligibilityCriteria"),
            "min_age": parse_age(elig_mod.get("minimumAge")),
            "max_age": parse_age(elig_mod.get("maximumAge")),
            "sex": map_sex(elig_mod.get("sex")),
            "healthy_volunteers": elig_mod.get("healthyVolunteers"),
        },
        "locations": (
            [
                {
                    "facility": loc.get("facility"),
                    "city": loc.get("city"),
                    "state": loc.get("state"),
                    "country": loc.get("country"),
                }
                for loc in locations
            ]
            if locations is not None
            else None
        ),
        "url": STUDY_URL_TEMPLATE.format(nct_id=nct_id),
    }


def map_study_to_trial(study: dict[str, Any]) -> StudyMapping:
    """Map one raw search result to a validated Trial, or say why it was skipped."""
    proto = study.get("protocolSection") if isinstance(study, dict) else None
    if not isinstance(proto, dict) or not proto:
        return SkippedStudy(nct_id=None, reason="missing protocolSection")

    id_mod = proto.get("identificationModule") or {}
    nct_id = id_mod.get("nctId") if isinstance(id_mod, dict) else None
    title = id_mod.get("briefTitle") if isinstance(id_mod, dict) else None
    if not nct_id or not title:
        return SkippedStudy(nct_id=nct_id or None, reason="missing nctId or briefTitle")

    try:
        return MappedTrial(trial=Trial.model_validate(_build_candidate(nct_id, title, proto)))
    except ValidationError as exc:
        return SkippedStudy(nct_id=nct_id, reason=f"validation failed: {exc.error_count()} errors")
    except (AttributeError, TypeError) as exc:
        # a module or list entry that is not an object
        return SkippedStudy(nct_id=nct_id, reason=f"malformed record: {exc}")


def map_studies(studies: list[dict[str, Any]]) -> list[Trial]:
    """Map a page of studies, keeping only those that validate."""
    trials: list[Trial] = []
    for study in studies:
        result = map_study_to_trial(study)
        if isinstance(result, MappedTrial):
            trials.append(result.trial)
        else:
            logger.info("ctgov_study_skipped", nct_id=result.nct_id, reason=result.reason)
    return trials


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


class CTGovClient:
    """Async HTTP client for the ClinicalTrials.gov ``/studies`` search endpoint.

    Use as ``async with CTGovClient() as client:`` or call aclose() when done.
    """

    def __init__(self, base_url: str = CTGOV_STUDIES_URL, timeout_seconds: float = 30.0):
        self._base_url = base_url
        self._http = httpx.AsyncClient(
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> CTGovClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def fetch_studies(self, profile: PatientProfile) -> dict:
        """Run one search for ``profile`` and return the raw response dict."""
        params = build_ctgov_query(profile)
        logger.debug("ctgov_search", url=f"{self._base_url}?{params_to_query_string(params)}")

        try:
            resp = await self._http.get(self._base_url, params=dict(params))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.error("ctgov_request_failed", error=str(exc))
            raise RegistryAPIError(f"Search failed: {exc}") from exc

        if not resp.is_success:
            logger.error("ctgov_bad_status", status=resp.status_code, reason=resp.reason_phrase)
            raise RegistryAPIError(
                f"API returned {resp.status_code}: {resp.reason_phrase}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise RegistryAPIError(f"Search failed: invalid JSON response: {exc}") from exc
        if not isinstance(data, dict):
            raise RegistryAPIError("Search failed: unexpected response shape")
        return data

    async def search(self, profile: PatientProfile) -> list[Trial]:
        """Search recruiting trials for a profile and map them to Trials.

        Returns an empty list when nothing matches.
        Raises RegistryAPIError on transport failure or non-2xx status.
        """
        raw = await self.fetch_studies(profile)
        studies = parse_search_results(raw)
        if not studies:
            logger.info("ctgov_search_empty", total_count=raw.get("totalCount", 0))
            return []

        trials = map_studies(studies)
        logger.info(
            "ctgov_search_completed",
            studies=len(studies),
            trials=len(trials),
            skipped=len(studies) - len(trials),
            total_count=raw.get("totalCount"),
        )
        return trials

    async def aclose(self) -> None:
        await self._http.aclose()
