#!/usr/bin/env python3
"""CLI script to classify stored EDGAR matches and clean up false positives."""

from __future__ import annotations

import structlog
import typer

from edgarlens.audit import ErrorLog
from edgarlens.config import get_settings
from edgarlens.entity_resolution.rules import load_rules
from edgarlens.entity_resolution.validation import (
    ValidationOutcome,
    format_apply_summary,
    format_report,
    run_validation,
)
from edgarlens.store import Stores

logger = structlog.get_logger(__name__)
app = typer.Typer()


def _print_report(outcome: ValidationOutcome) -> None:
    typer.echo(format_report(outcome))


@app.command()
def main(
    apply: bool = typer.Option(
        False, "--apply", help="Revert bad dates, stamp matches, prune results and rebuild the review queue",
    ),
) -> None:
    """Print the validation report; with --apply, commit its consequences."""
    settings = get_settings()
    stores = Stores.from_settings(settings)
    error_log = ErrorLog(settings.error_log_path)

    _, summary = run_validation(
        stores,
        apply=apply,
        rules=load_rules(settings.rules_path),
        error_log=error_log,
        on_report=_print_report,
    )

    if summary is None:
        typer.echo("\nDry run. Re-run with --apply to commit these changes.")
        return

    typer.echo("")
    typer.echo(format_apply_summary(summary))
    logger.info("edgar_validate_script_complete", errors_logged=error_log.count)


if __name__ == "__main__":
    app()
