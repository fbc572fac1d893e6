"""Shared fixtures: a melanoma patient profile and CT.gov search responses."""

from __future__ import annotations

import copy
import json
from unittest.mock import MagicMock

import pytest

from trialfinder.models.schema import PatientProfile

MELANOMA_PROFILE_JSON: dict = {
    "demographics": {"age": 55, "sex": "male"},
    "conditions": ["Metastatic Melanoma"],
    "stage": "Stage IV",
    "biomarkers": [{"name": "BRAF", "value": "V600E"}],
    "performanceStatus": "ECOG 1",
    "location": {"city": "San Francisco", "state": "CA"},
    "ctgovQuery": {
        "conditionQuery": "melanoma",
        "termQuery": "(BRAF V600E) OR (BRAF mutation) OR (BRAF V600)",
    },
}

MELANOMA_TRANSCRIPT = """\
Doctor: Good morning. What brings you in today?
Patient: I'm 55 and was diagnosed with metastatic melanoma last spring.
Doctor: Your tumor testing showed a BRAF V600E mutation, and staging puts you at Stage IV.
Patient: I'm still working most days, just more tired.
Doctor: I'd put your performance status at ECOG 1. You're still living in San Francisco, CA?
Patient: Yes.
"""


class FakeGateway:
    """Completion gateway test double that records every call."""

    def __init__(self, text: str = ""):
        self.text = text
        self.calls: list[tuple] = []

    @property
    def name(self) -> str:
        return "fake"

    async def complete(self, messages, options) -> str:
        self.calls.append((list(messages), options))
        return self.text


def make_response(payload: dict | None = None, status_code: int = 200, reason: str = "OK"):
    """Minimal stand-in for an httpx.Response."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.reason_phrase = reason
    resp.is_success = 200 <= status_code < 300
    resp.json.return_value = payload if payload is not None else {}
    return resp


@pytest.fixture
def sample_search_response() -> dict:
    """CT.gov search response: two valid studies, one without an NCT ID."""
    return {
        "totalCount": 3,
        "studies": [
            {
                "protocolSection": {
                    "identificationModule": {
                        "nctId": "NCT04267848",
                        "briefTitle": "Encorafenib and Binimetinib in Metastatic Melanoma",
                    },
                    "statusModule": {"overallStatus": "RECRUITING"},
                    "conditionsModule": {"conditions": ["Metastatic Melanoma", "BRAF V600E"]},
                    "designModule": {"phases": ["PHASE2"]},
                    "armsInterventionsModule": {
                        "interventions": [{"name": "Encorafenib"}, {"name": "Binimetinib"}]
                    },
                    "eligibilityModule": {
                        "eligibilityCriteria": "Inclusion Criteria:\n- Age ≥18 years\n- BRAF V600E",
                        "minimumAge": "18 Years",
                        "maximumAge": "75 Years",
                        "sex": "ALL",
                        "healthyVolunteers": False,
                    },
                    "contactsLocationsModule": {
                        "locations": [
                            {
                                "facility": "UCSF Medical Center",
                                "city": "San Francisco",
                                "state": "California",
                                "country": "United States",
                            }
                        ]
                    },
                }
            },
            {
                "protocolSection": {
                    "identificationModule": {"briefTitle": "Study Without Identifier"},
                    "statusModule": {"overallStatus": "RECRUITING"},
                }
            },
            {
                "protocolSection": {
                    "identificationModule": {
                        "nctId": "NCT05000001",
                        "briefTitle": "Pediatric Melanoma Registry",
                    },
                    "conditionsModule": {"conditions": ["Melanoma"]},
                    "eligibilityModule": {
                        "minimumAge": "6 Months",
                        "maximumAge": "N/A",
                        "sex": "BOTH",
                    },
                }
            },
        ],
    }


@pytest.fixture
def melanoma_profile_json() -> dict:
    return copy.deepcopy(MELANOMA_PROFILE_JSON)


@pytest.fixture
def melanoma_transcript() -> str:
    return MELANOMA_TRANSCRIPT


@pytest.fixture
def melanoma_profile() -> PatientProfile:
    return PatientProfile.model_validate(MELANOMA_PROFILE_JSON)


@pytest.fixture
def fake_gateway():
    """Factory: fake_gateway(text) -> FakeGateway returning ``text``."""
    return FakeGateway


@pytest.fixture
def melanoma_gateway() -> FakeGateway:
    return FakeGateway(json.dumps(MELANOMA_PROFILE_JSON))


@pytest.fixture
def http_response():
    """Factory: http_response(payload, status_code, reason) -> fake httpx.Response."""
    return make_response
