"""Domain models for trialfinder.

Two families live here:
  - PatientProfile and its parts: what the extraction engine produces
    from a transcript and what callers may hand back for refinement.
  - Trial and its parts: what the registry mapper emits for each
    ClinicalTrials.gov study that validates.

Attributes are snake_case. The JSON wire form (LLM output, CLI input and
output) is camelCase, e.g. ``ctgovQuery.conditionQuery``. Both spellings
are accepted on input.
"""

from __future__ import annotations

import enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Patient profile
# ---------------------------------------------------------------------------


class Demographics(_WireModel):
    age: int | None = Field(default=None, ge=0)
    sex: Literal["male", "female", "other"] | None = None

    @field_validator("sex", mode="before")
    @classmethod
    def _lowercase_sex(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower() or None
        return value


class Biomarker(_WireModel):
    name: str
    value: str | None = None  # e.g. "V600E"


class Location(_WireModel):
    """Patient location. Not used for filtering yet."""

    city: str | None = None
    state: str | None = None
    country: str | None = None
    zip_code: str | None = Field(default=None, alias="zip")


class CTGovQuery(_WireModel):
    """Registry search strings derived during extraction.

    condition_query feeds ``query.cond``, term_query feeds ``query.term``.
    Either may be empty; empty values are never sent to the registry.
    """

    condition_query: str | None = None
    term_query: str | None = None


class PatientProfile(_WireModel):
    demographics: Demographics
    conditions: list[str]
    diagnosis_date: str | None = None
    stage: str | None = None
    biomarkers: list[Biomarker] | None = None
    prior_therapies: list[str] | None = None
    performance_status: str | None = None
    location: Location | None = None
    notes: str | None = None
    ctgov_query: CTGovQuery

    def has_medical_content(self) -> bool:
        """True if the profile names at least one condition, biomarker, or stage."""
        return bool(self.conditions or self.biomarkers or (self.stage and self.stage.strip()))


# ---------------------------------------------------------------------------
# Clinical trial
# ---------------------------------------------------------------------------


class AgeUnit(enum.StrEnum):
    YEARS = "Years"
    MONTHS = "Months"
    DAYS = "Days"


class AgeBound(_WireModel):
    value: int
    unit: AgeUnit


class EligibilitySex(enum.StrEnum):
    ALL = "ALL"
    FEMALE = "FEMALE"
    MALE = "MALE"


class Eligibility(_WireModel):
    criteria_text: str | None = None
    min_age: AgeBound | None = None
    max_age: AgeBound | None = None
    sex: EligibilitySex | None = None
    healthy_volunteers: bool | None = None


class TrialLocation(_WireModel):
    facility: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None


class Trial(_WireModel):
    """A recruiting study mapped from a ClinicalTrials.gov search result.

    Rebuilt from the registry response on every search, never cached.
    """

    nct_id: str
    title: str
    overall_status: str = "UNKNOWN"  # "RECRUITING" | "NOT_YET_RECRUITING" | ...
    conditions: list[str] = Field(default_factory=list)
    phases: list[str] | None = None
    interventions: list[str] | None = None
    eligibility: Eligibility = Field(default_factory=Eligibility)
    locations: list[TrialLocation] | None = None
    url: HttpUrl


class SearchResult(_WireModel):
    """What both pipeline entry points return."""

    profile: PatientProfile
    trials: list[Trial]
