"""CLI commands for transcript/profile trial search.

This is the outer surface around pipeline.py. It owns file validation,
output formatting and the mapping of error kinds to exit codes:
  invalid input         -> 2
  upstream unavailable  -> 3  (ClinicalTrials.gov down / non-2xx)
  anything else         -> 1
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
import structlog

from trialfinder.config import create_gateway
from trialfinder.errors import ErrorKind, InvalidInputError, classify_error
from trialfinder.ingest.extractor import extract_patient_profile
from trialfinder.models.schema import CTGovQuery
from trialfinder.pipeline import (
    apply_query_override,
    coerce_profile,
    extract_and_search,
    search_by_profile,
)
from trialfinder.prescreen.ctgov_client import CTGovClient

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from trialfinder.config import Settings
    from trialfinder.models.schema import SearchResult

logger = structlog.get_logger()

TRANSCRIPT_SUFFIXES = (".txt", ".md")

EXIT_CODES: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: 2,
    ErrorKind.UPSTREAM_UNAVAILABLE: 3,
    ErrorKind.INTERNAL: 1,
}


def read_transcript(path: Path, max_bytes: int) -> str:
    """Load a transcript file, enforcing type, size and non-empty content."""
    if path.suffix.lower() not in TRANSCRIPT_SUFFIXES:
        raise InvalidInputError("Invalid file type. Only .txt and .md files are allowed")
    size = path.stat().st_size
    if size > max_bytes:
        raise InvalidInputError(f"File size exceeds maximum allowed size of {max_bytes} bytes")
    try:
        transcript = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidInputError("Transcript file is not valid UTF-8 text") from exc
    if not transcript.strip():
        raise InvalidInputError("Transcript file is empty")
    return transcript


def load_profile_file(path: Path) -> dict[str, Any]:
    """Load a profile JSON file; accepts a bare profile or ``{"profile": {...}}``."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidInputError(f"Profile file is not valid JSON: {exc}") from exc
    if isinstance(data, dict) and "profile" in data:
        data = data["profile"]
    if not isinstance(data, dict):
        raise InvalidInputError("profile is required")
    return data


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a pipeline coroutine, turning its errors into exit codes."""
    try:
        return asyncio.run(coro)
    except Exception as exc:
        kind = classify_error(exc)
        logger.error("command_failed", kind=kind.value, error=str(exc))
        if kind is ErrorKind.UPSTREAM_UNAVAILABLE:
            message = f"ClinicalTrials.gov service unavailable: {exc}"
        elif kind is ErrorKind.INVALID_INPUT:
            message = str(exc)
        else:
            message = f"Internal error: {exc}"
        err = click.ClickException(message)
        err.exit_code = EXIT_CODES[kind]
        raise err from exc


def _client(settings: Settings) -> CTGovClient:
    return CTGovClient(
        base_url=settings.ctgov_base_url,
        timeout_seconds=settings.ctgov_timeout_seconds,
    )


def _echo_result(result: SearchResult, summary: bool) -> None:
    if not summary:
        click.echo(result.model_dump_json(by_alias=True, exclude_none=True, indent=2))
        return

    query = result.profile.ctgov_query
    click.echo(f"Conditions: {', '.join(result.profile.conditions) or '-'}")
    click.echo(f"query.cond: {query.condition_query or '-'}")
    click.echo(f"query.term: {query.term_query or '-'}")
    click.echo(f"{len(result.trials)} trial(s)")
    for trial in result.trials:
        click.echo(f"  {trial.nct_id}  [{trial.overall_status}]  {trial.title}")
        click.echo(f"      {trial.url}")


_summary_option = click.option(
    "--summary", is_flag=True, help="Print a short trial list instead of JSON."
)


@click.command("transcript")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@_summary_option
@click.pass_obj
def transcript_cmd(settings: Settings, path: Path, summary: bool):
    """Extract a patient profile from a transcript file and search trials."""

    async def _go() -> SearchResult:
        transcript = read_transcript(path, settings.max_transcript_bytes)
        gateway = create_gateway(settings)
        async with _client(settings) as client:
            return await extract_and_search(transcript, gateway, client, model=settings.llm_model)

    _echo_result(_run(_go()), summary)


@click.command("profile")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--condition-query", default=None, help="Replace ctgovQuery.conditionQuery.")
@click.option("--term-query", default=None, help='Replace ctgovQuery.termQuery ("" clears it).')
@_summary_option
@click.pass_obj
def profile_cmd(
    settings: Settings,
    path: Path,
    condition_query: str | None,
    term_query: str | None,
    summary: bool,
):
    """Search trials for a profile JSON file, optionally with edited queries."""

    async def _go() -> SearchResult:
        profile = coerce_profile(load_profile_file(path))
        edits: dict[str, str] = {}
        if condition_query is not None:
            edits["condition_query"] = condition_query
        if term_query is not None:
            edits["term_query"] = term_query
        if edits:
            profile = apply_query_override(profile, CTGovQuery(**edits))

        async with _client(settings) as client:
            return await search_by_profile(profile, client)

    _echo_result(_run(_go()), summary)


@click.command("extract")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def extract_cmd(settings: Settings, path: Path):
    """Extract and print the patient profile only (no registry search)."""

    async def _go():
        transcript = read_transcript(path, settings.max_transcript_bytes)
        return await extract_patient_profile(
            transcript, create_gateway(settings), model=settings.llm_model
        )

    profile = _run(_go())
    click.echo(profile.model_dump_json(by_alias=True, exclude_none=True, indent=2))
