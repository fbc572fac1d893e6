"""INGEST module: clinical transcript → PatientProfile via an LLM gateway."""

from trialfinder.ingest.extractor import extract_patient_profile

__all__ = ["extract_patient_profile"]
