"""CLI entry point for trialfinder."""

import click
from dotenv import load_dotenv

from trialfinder.cli.search import extract_cmd, profile_cmd, transcript_cmd
from trialfinder.config import load_settings
from trialfinder.logging_setup import configure_logging


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True), default=None)
@click.option("--log-level", default="WARNING", show_default=True)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines on stderr.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, log_level: str, json_logs: bool):
    """Match clinical transcripts to recruiting ClinicalTrials.gov studies."""
    load_dotenv()
    configure_logging(log_level, json_logs=json_logs)
    try:
        ctx.obj = load_settings(config_path)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


main.add_command(transcript_cmd)
main.add_command(profile_cmd)
main.add_command(extract_cmd)
