"""PRESCREEN module: PatientProfile → CT.gov search → Trial list.

Public API:
  build_ctgov_query(): pure profile → search parameters translation
  CTGovClient.search(): one registry search, mapped and validated
"""

from trialfinder.prescreen.ctgov_client import CTGovClient, map_study_to_trial
from trialfinder.prescreen.query_builder import build_ctgov_query

__all__ = [
    "CTGovClient",
    "build_ctgov_query",
    "map_study_to_trial",
]
