"""Tests for domain models."""

import pytest
from pydantic import ValidationError

from trialfinder.models.schema import (
    AgeBound,
    AgeUnit,
    CTGovQuery,
    Demographics,
    EligibilitySex,
    PatientProfile,
    Trial,
)


def test_profile_accepts_camel_case_wire_form(melanoma_profile_json):
    profile = PatientProfile.model_validate(melanoma_profile_json)
    assert profile.performance_status == "ECOG 1"
    assert profile.ctgov_query.condition_query == "melanoma"
    assert profile.biomarkers[0].name == "BRAF"
    assert profile.biomarkers[0].value == "V600E"
    assert profile.location.city == "San Francisco"


def test_profile_accepts_snake_case():
    profile = PatientProfile(
        demographics=Demographics(age=40, sex="female"),
        conditions=["breast cancer"],
        ctgov_query=CTGovQuery(condition_query="breast cancer"),
    )
    assert profile.ctgov_query.term_query is None


def test_profile_dumps_camel_case(melanoma_profile_json):
    profile = PatientProfile.model_validate(melanoma_profile_json)
    dumped = profile.model_dump(by_alias=True, exclude_none=True)
    assert dumped["ctgovQuery"]["termQuery"].startswith("(BRAF V600E)")
    assert dumped["performanceStatus"] == "ECOG 1"


def test_location_zip_alias(melanoma_profile_json):
    profile = PatientProfile.model_validate(
        {**melanoma_profile_json, "location": {"city": "Austin", "zip": "78701"}}
    )
    assert profile.location.zip_code == "78701"


def test_profile_requires_ctgov_query(melanoma_profile_json):
    data = {k: v for k, v in melanoma_profile_json.items() if k != "ctgovQuery"}
    with pytest.raises(ValidationError):
        PatientProfile.model_validate(data)


def test_demographics_sex_is_case_insensitive():
    assert Demographics(sex="Male").sex == "male"
    assert Demographics(sex="").sex is None


def test_demographics_rejects_unknown_sex_and_negative_age():
    with pytest.raises(ValidationError):
        Demographics(sex="unknown")
    with pytest.raises(ValidationError):
        Demographics(age=-1)


def test_demographics_all_fields_optional():
    d = Demographics()
    assert d.age is None
    assert d.sex is None


@pytest.mark.parametrize(
    ("conditions", "biomarkers", "stage", "expected"),
    [
        (["melanoma"], None, None, True),
        ([], [{"name": "BRAF"}], None, True),
        ([], None, "Stage IV", True),
        ([], [], None, False),
        ([], None, "   ", False),
        ([], None, None, False),
    ],
)
def test_has_medical_content(conditions, biomarkers, stage, expected):
    profile = PatientProfile.model_validate(
        {
            "demographics": {},
            "conditions": conditions,
            "biomarkers": biomarkers,
            "stage": stage,
            "ctgovQuery": {},
        }
    )
    assert profile.has_medical_content() is expected


def test_trial_defaults():
    trial = Trial(nct_id="NCT00000001", title="A Study", url="https://clinicaltrials.gov/study/NCT00000001")
    assert trial.overall_status == "UNKNOWN"
    assert trial.conditions == []
    assert trial.phases is None
    assert trial.eligibility.sex is None
    assert str(trial.url) == "https://clinicaltrials.gov/study/NCT00000001"


def test_trial_rejects_invalid_url():
    with pytest.raises(ValidationError):
        Trial(nct_id="NCT1", title="t", url="not a url")


def test_trial_json_uses_camel_case():
    trial = Trial(
        nct_id="NCT00000001",
        title="A Study",
        url="https://clinicaltrials.gov/study/NCT00000001",
        eligibility={"min_age": AgeBound(value=18, unit=AgeUnit.YEARS), "sex": EligibilitySex.ALL},
    )
    data = trial.model_dump(mode="json", by_alias=True)
    assert data["nctId"] == "NCT00000001"
    assert data["overallStatus"] == "UNKNOWN"
    assert data["eligibility"]["minAge"] == {"value": 18, "unit": "Years"}
    assert data["eligibility"]["sex"] == "ALL"
