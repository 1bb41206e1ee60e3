#!/usr/bin/env python3
"""CLI script to search SEC EDGAR for each directory company's Form D issuer."""

from __future__ import annotations

import structlog
import typer

from edgarlens.audit import ErrorLog
from edgarlens.client import EdgarClient
from edgarlens.config import get_settings
from edgarlens.pipelines.search import run_search
from edgarlens.store import Stores

logger = structlog.get_logger(__name__)
app = typer.Typer()


@app.command()
def main(
    slug: str | None = typer.Option(None, "--slug", help="Search one company regardless of prior state"),
) -> None:
    """Resolve directory companies to EDGAR issuers and store the matches."""
    settings = get_settings()
    stores = Stores.from_settings(settings)
    error_log = ErrorLog(settings.error_log_path)

    with EdgarClient(settings) as client:
        summary = run_search(client, stores, settings, slug=slug, error_log=error_log)

    logger.info("edgar_search_script_complete", errors_logged=error_log.count, **summary)
    if summary["aborted"]:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
