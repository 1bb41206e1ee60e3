#!/usr/bin/env python3
"""CLI script to write Form D filing months into the company directory."""

from __future__ import annotations

import structlog
import typer

from edgarlens.config import get_settings
from edgarlens.pipelines.dates import run_apply_dates
from edgarlens.store import Stores

logger = structlog.get_logger(__name__)
app = typer.Typer()


@app.command()
def main(
    apply: bool = typer.Option(False, "--apply", help="Write the proposed dates"),
) -> None:
    """Propose last_funding_date updates from high-confidence matches."""
    settings = get_settings()
    stores = Stores.from_settings(settings)

    outcome = run_apply_dates(stores, apply=apply)
    for update in outcome["updates"]:
        typer.echo(f"  {update.slug:<25} {update.old or '(none)'} -> {update.new}")
    typer.echo(f"\nProposed: {len(outcome['updates'])}  Skipped: {outcome['skipped']}  Applied: {outcome['applied']}")
    if not apply and outcome["updates"]:
        typer.echo("Dry run. Re-run with --apply to write these dates.")


if __name__ == "__main__":
    app()
