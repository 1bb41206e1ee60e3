#!/usr/bin/env python3
"""CLI script to print EDGAR pipeline progress."""

from __future__ import annotations

import typer

from edgarlens.config import get_settings
from edgarlens.pipelines.status import format_status, run_status
from edgarlens.store import Stores

app = typer.Typer()


@app.command()
def main() -> None:
    """Summarise coverage, search, fetch and validation state."""
    settings = get_settings()
    typer.echo(format_status(run_status(Stores.from_settings(settings))))


if __name__ == "__main__":
    app()
