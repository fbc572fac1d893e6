"""PatientProfile → ClinicalTrials.gov API v2 search parameters.

Pure translation, no I/O. The status filter, field list, page size and
sort order are fixed search policy; only the query strings and the
age/sex filters come from the profile.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypedDict

import httpx

if TYPE_CHECKING:
    from trialfinder.models.schema import PatientProfile

DEFAULT_STATUS_FILTER = "RECRUITING,NOT_YET_RECRUITING"
DEFAULT_PAGE_SIZE = 20
DEFAULT_SORT = "LastUpdatePostDate:desc"

# Only the fields the trial mapper reads.
SEARCH_FIELDS: tuple[str, ...] = (
    "NCTId",
    "BriefTitle",
    "OverallStatus",
    "Condition",
    "Phase",
    "InterventionName",
    "EligibilityCriteria",
    "MinimumAge",
    "MaximumAge",
    "Sex",
    "HealthyVolunteers",
    "LocationFacility",
    "LocationCity",
    "LocationState",
    "LocationCountry",
)

MAX_FILTER_AGE = 120

# CT.gov API v2 sex filtering uses aggFilters, values "sex:<m|f|all>".
_SEX_AGG_MAP: dict[str, str] = {
    "male": "m",
    "female": "f",
    "other": "all",
    "all": "all",
}

# Keys contain dots, hence the functional TypedDict form.
CTGovQueryParams = TypedDict(
    "CTGovQueryParams",
    {
        "query.cond": str,
        "query.term": str,
        "filter.overallStatus": str,
        "filter.advanced": str,
        "aggFilters": str,
        "fields": str,
        "pageSize": int,
        "sort": str,
    },
    total=False,
)


def age_range_filter(age: int | None) -> str | None:
    """Essie filter keeping trials whose age bounds contain ``age``.

    Ages outside (0, 120] produce no filter.
    """
    if age is None or not 0 < age <= MAX_FILTER_AGE:
        return None
    return f"AREA[MinimumAge]RANGE[MIN,{age} years] AND AREA[MaximumAge]RANGE[{age} years,MAX]"


def sex_agg_filter(sex: str | None) -> str | None:
    """aggFilters value for a patient sex, or None if it does not map."""
    if not sex:
        return None
    mapped = _SEX_AGG_MAP.get(sex.lower())
    return f"sex:{mapped}" if mapped else None


def build_ctgov_query(profile: PatientProfile) -> CTGovQueryParams:
    """Build /studies search parameters for a patient profile.

    Empty condition/term queries are left out entirely rather than sent
    as empty strings. No geographic filter is built, even if the profile
    carries a location.
    """
    params: CTGovQueryParams = {
        "filter.overallStatus": DEFAULT_STATUS_FILTER,
        "fields": ",".join(SEARCH_FIELDS),
        "pageSize": DEFAULT_PAGE_SIZE,
        "sort": DEFAULT_SORT,
    }

    query = profile.ctgov_query
    if query.condition_query:
        params["query.cond"] = query.condition_query
    if query.term_query:
        params["query.term"] = query.term_query

    advanced = age_range_filter(profile.demographics.age)
    if advanced:
        params["filter.advanced"] = advanced

    agg = sex_agg_filter(profile.demographics.sex)
    if agg:
        params["aggFilters"] = agg

    return params


def params_to_query_string(params: CTGovQueryParams) -> str:
    """URL-encode search parameters, skipping any None values."""
    return str(httpx.QueryParams({k: v for k, v in params.items() if v is not None}))
