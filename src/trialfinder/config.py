"""Runtime settings.

Resolved in order: built-in defaults, then an optional YAML file, then
environment variables (``.env`` is loaded by the CLI via python-dotenv).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
import yaml

if TYPE_CHECKING:
    from trialfinder.models.base import CompletionGateway

logger = structlog.get_logger()

DEFAULT_LLM_MODEL = "gemini-3-flash-preview"
CTGOV_STUDIES_URL = "https://clinicaltrials.gov/api/v2/studies"
MAX_TRANSCRIPT_BYTES = 1_048_576  # 1 MiB

# Settings field -> environment variable
_ENV_VARS: dict[str, str] = {
    "llm_backend": "TRIALFINDER_LLM_BACKEND",
    "llm_model": "TRIALFINDER_LLM_MODEL",
    "gemini_api_key": "GEMINI_API_KEY",
    "hf_token": "HF_TOKEN",
    "hf_endpoint_url": "HF_ENDPOINT_URL",
    "ctgov_base_url": "CTGOV_API_BASE_URL",
    "ctgov_timeout_seconds": "CTGOV_TIMEOUT_SECONDS",
    "max_transcript_bytes": "MAX_FILE_SIZE",
}

LLM_BACKENDS = ("gemini", "hf")


@dataclass(frozen=True, slots=True)
class Settings:
    llm_backend: str = "gemini"
    llm_model: str = DEFAULT_LLM_MODEL
    gemini_api_key: str = ""
    hf_token: str = ""
    hf_endpoint_url: str = ""
    ctgov_base_url: str = CTGOV_STUDIES_URL
    ctgov_timeout_seconds: float = 30.0
    max_transcript_bytes: int = MAX_TRANSCRIPT_BYTES


def _coerce(name: str, raw: Any) -> Any:
    if name == "ctgov_timeout_seconds":
        return float(raw)
    if name == "max_transcript_bytes":
        return int(raw)
    return str(raw)


def load_settings(
    config_path: Path | str | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Build Settings from defaults, an optional YAML file and the environment."""
    env = os.environ if environ is None else environ
    known = {f.name for f in fields(Settings)}
    overrides: dict[str, Any] = {}

    if config_path:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            msg = f"Config file {config_path} must contain a mapping"
            raise ValueError(msg)
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("config_unknown_keys", path=str(config_path), keys=unknown)
        overrides.update({k: _coerce(k, v) for k, v in data.items() if k in known})

    for name, var in _ENV_VARS.items():
        raw = env.get(var, "")
        if raw:
            overrides[name] = _coerce(name, raw)

    # GOOGLE_API_KEY is what the google-genai SDK itself reads.
    if "gemini_api_key" not in overrides and env.get("GOOGLE_API_KEY"):
        overrides["gemini_api_key"] = env["GOOGLE_API_KEY"]

    settings = replace(Settings(), **overrides)
    if settings.llm_backend not in LLM_BACKENDS:
        msg = f"Unknown llm_backend {settings.llm_backend!r}; expected one of {LLM_BACKENDS}"
        raise ValueError(msg)
    if settings.llm_backend == "hf" and not settings.hf_endpoint_url:
        msg = "HF_ENDPOINT_URL not set. Required for the hf backend."
        raise ValueError(msg)
    return settings


def create_gateway(settings: Settings) -> CompletionGateway:
    """Instantiate the completion gateway selected by settings.llm_backend."""
    if settings.llm_backend == "hf":
        from trialfinder.models.medgemma import HFChatGateway

        if not settings.hf_endpoint_url:
            msg = "HF_ENDPOINT_URL not set. Required for the hf backend."
            raise ValueError(msg)
        return HFChatGateway(
            endpoint_url=settings.hf_endpoint_url,
            hf_token=settings.hf_token,
            model_name=settings.llm_model,
        )

    from trialfinder.models.gemini import GeminiGateway

    return GeminiGateway(api_key=settings.gemini_api_key, model=settings.llm_model)
