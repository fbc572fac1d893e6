"""Transcript → PatientProfile extraction.

This module owns all of the business logic around the LLM call:
prompt construction, generation settings, JSON parsing and schema
validation. The gateway it calls is pure transport.

Extraction fails closed: if the model output does not parse or does not
validate, ExtractionError is raised and no partial profile is returned.
"""

from __future__ import annotations

import json
import re
import time
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from trialfinder.config import DEFAULT_LLM_MODEL
from trialfinder.errors import ExtractionError, InvalidInputError
from trialfinder.models.base import ChatMessage, CompletionOptions
from trialfinder.models.schema import PatientProfile

if TYPE_CHECKING:
    from trialfinder.models.base import CompletionGateway

logger = structlog.get_logger()

EXTRACTION_TEMPERATURE = 0.1

EXTRACTION_SYSTEM_PROMPT = """\
You are a medical data extraction assistant. Your job is to analyze patient-doctor \
conversation transcripts and extract structured patient information for clinical trial matching.

Extract the following information when available:
- **Demographics**: Patient age and sex (male/female/other)
- **Conditions**: All medical conditions, diagnoses, or diseases mentioned
- **Diagnosis Date**: When the primary diagnosis was made (if mentioned)
- **Stage**: Disease stage (e.g., "Stage IV", "Stage IIB", etc.)
- **Biomarkers**: Any genetic markers, mutations, or test results (e.g., "BRAF V600E", "HER2 Positive")
- **Prior Therapies**: Previous treatments, medications, or procedures
- **Performance Status**: ECOG or Karnofsky scores if mentioned
- **Location**: Patient's city, state, country, or zip code
- **Notes**: Any other relevant clinical information

Guidelines:
1. If information is not mentioned or unclear, use null or omit the field
2. If the transcript mentions only generic or vague terms (e.g., 'cancer', 'tumor', 'illness') \
without specifics, extract exactly those terms. Do NOT expand generic terms into specific \
diagnoses or infer details that are not explicitly stated.
3. Be precise with medical terminology - use exact terms from the transcript
4. For conditions, include both primary diagnosis and related conditions
5. Extract biomarkers even if partially mentioned (name without value is acceptable)
6. Include all prior therapies mentioned, even if unsuccessful
7. If the patient's location is not explicitly stated, omit it rather than guess
8. Use standard formats: dates as "YYYY-MM-DD", ages as numbers

Additionally, generate ClinicalTrials.gov API query parameters using ESSIE expression syntax:

**ctgovQuery.conditionQuery** (for query.cond parameter):
- Generate an ESSIE expression using STANDARD, BROAD disease categories that clinical trials typically use
- Use the common disease name, NOT specific subtypes or pathological classifications
- DO NOT include biomarkers, stage, or metastatic status here (those go in termQuery)
- Think about how trials are named in registries - use those standard terms
- Examples:
  - Good: "breast cancer" (not "invasive ductal carcinoma" or "ductal carcinoma in situ")
  - Good: "melanoma" (not "metastatic melanoma" or "cutaneous melanoma")
  - Good: "non-small cell lung cancer" (this is already a standard category)
  - Good: "glioblastoma" (specific enough but still standard)
  - Good: "colorectal cancer" (not "colon adenocarcinoma")
  - Avoid: Too generic like just "cancer"
  - Avoid: Pathological subtypes like "invasive ductal carcinoma"
  - Avoid: Including stage/biomarkers like "metastatic melanoma" or "HER2+ breast cancer"
- If no condition is found, return empty string ""

**ctgovQuery.termQuery** (for query.term parameter):
- Generate an ESSIE expression for additional search criteria (this searches across trial \
titles, descriptions, interventions, and keywords)
- MUST include biomarkers here if present (NOT in conditionQuery) - use OR for common variations
- Can also include: stage, metastatic status, or specific treatment types
- Use OR to cast a wider net and catch variations in terminology
- Examples:
  - "(HER2 positive) OR (HER2+) OR (HER2-positive)" (for HER2+ breast cancer)
  - "(BRAF V600E) OR (BRAF mutation) OR (BRAF V600)" (for BRAF-mutant melanoma)
  - "(EGFR exon 19) OR (EGFR mutation) OR (EGFR deletion)" (for EGFR+ lung cancer)
  - "stage IV OR metastatic OR advanced" (for advanced disease)
  - "(IDH wildtype) OR (IDH-wt) OR (IDH wild-type)" (for glioblastoma)
  - "(PD-L1 positive) OR (PD-L1+) OR immunotherapy" (for immunotherapy-related trials)
- Prefer OR over AND to maximize results (system will filter by eligibility later)
- If no additional search terms are relevant, return empty string ""

ESSIE Syntax Rules:
- Use parentheses to group terms: "(term1) AND (term2)"
- Use AND when both conditions must be present
- Use OR when any condition is acceptable
- Keep queries focused and medically relevant
- Avoid overly complex queries (max 3-4 combined terms)

Key Tips for Maximizing Trial Matches:
- query.cond (conditionQuery) searches ONLY the "Condition" field in CT.gov, which contains disease names
- query.term (termQuery) searches across ALL fields: title, description, interventions, keywords, eligibility
- Biomarkers are rarely listed in the Condition field, so they MUST go in termQuery to be found
- Using broad disease categories in conditionQuery prevents missing trials due to terminology differences
- The system filters results by age/sex/eligibility later, so it's better to over-match than under-match
- CT.gov trials use standardized disease terminology, not specific pathological classifications

Return a complete structured JSON object following the PatientProfile schema.\
"""

EXTRACTION_USER_TEMPLATE = """\
Extract the patient profile from the following medical transcript:

{transcript}"""

_FENCED_JSON = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


def build_extraction_messages(transcript: str) -> list[ChatMessage]:
    """System instruction + user message wrapping the transcript verbatim."""
    return [
        ChatMessage(role="system", content=EXTRACTION_SYSTEM_PROMPT),
        ChatMessage(role="user", content=EXTRACTION_USER_TEMPLATE.format(transcript=transcript)),
    ]


def profile_response_schema() -> dict:
    """JSON Schema of PatientProfile in its camelCase wire form."""
    return PatientProfile.model_json_schema(by_alias=True)


def strip_code_fence(raw_text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    match = _FENCED_JSON.match(raw_text)
    return match.group(1) if match else raw_text.strip()


def parse_profile(raw_text: str) -> PatientProfile:
    """Parse and validate raw model text into a PatientProfile.

    Raises ExtractionError (with the JSON or validation error as __cause__).
    """
    try:
        data = json.loads(strip_code_fence(raw_text))
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Patient profile extraction failed: invalid JSON: {exc}") from exc

    try:
        return PatientProfile.model_validate(data)
    except ValidationError as exc:
        raise ExtractionError(f"Patient profile extraction failed: {exc}") from exc


async def extract_patient_profile(
    transcript: str,
    gateway: CompletionGateway,
    *,
    model: str = DEFAULT_LLM_MODEL,
    temperature: float = EXTRACTION_TEMPERATURE,
) -> PatientProfile:
    """Extract a structured PatientProfile from a patient-doctor transcript.

    Args:
        transcript: Raw transcript text, passed to the model verbatim.
        gateway: Completion backend. CompletionError from it propagates as-is.
        model: Model identifier forwarded in CompletionOptions.
        temperature: Sampling temperature; kept low for repeatable output.

    Raises:
        InvalidInputError: transcript is empty or whitespace-only (no model call).
        ExtractionError: model output is not valid JSON or not a valid profile.
    """
    if not transcript or not transcript.strip():
        raise InvalidInputError("Transcript cannot be empty")

    options = CompletionOptions(
        model=model,
        temperature=temperature,
        response_schema=profile_response_schema(),
    )

    start = time.perf_counter()
    raw_text = await gateway.complete(build_extraction_messages(transcript), options)
    profile = parse_profile(raw_text)

    logger.info(
        "extraction_completed",
        gateway=gateway.name,
        latency_ms=round((time.perf_counter() - start) * 1000),
        conditions=len(profile.conditions),
        biomarkers=len(profile.biomarkers or []),
        has_condition_query=bool(profile.ctgov_query.condition_query),
        has_term_query=bool(profile.ctgov_query.term_query),
    )
    return profile
