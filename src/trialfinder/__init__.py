"""trialfinder: clinical transcript → patient profile → recruiting ClinicalTrials.gov trials."""

from trialfinder.pipeline import apply_query_override, extract_and_search, refine, search_by_profile

__all__ = [
    "apply_query_override",
    "extract_and_search",
    "refine",
    "search_by_profile",
]
