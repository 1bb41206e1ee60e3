#!/usr/bin/env python3
"""CLI script to fetch Form D filings for matched companies."""

from __future__ import annotations

import structlog
import typer

from edgarlens.audit import ErrorLog
from edgarlens.client import EdgarClient
from edgarlens.config import get_settings
from edgarlens.pipelines.form_d import run_fetch
from edgarlens.store import Stores

logger = structlog.get_logger(__name__)
app = typer.Typer()


@app.command()
def main(
    slug: str | None = typer.Option(None, "--slug", help="Fetch one matched company"),
) -> None:
    """Extract funding amounts from each match's most recent Form D."""
    settings = get_settings()
    stores = Stores.from_settings(settings)
    error_log = ErrorLog(settings.error_log_path)

    with EdgarClient(settings) as client:
        summary = run_fetch(client, stores, settings, slug=slug, error_log=error_log)

    logger.info("edgar_fetch_script_complete", errors_logged=error_log.count, **summary)


if __name__ == "__main__":
    app()
