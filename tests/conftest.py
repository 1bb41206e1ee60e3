"""Shared fixtures: isolated settings, stores on tmp_path and record builders."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from edgarlens.config import Settings
from edgarlens.models import Filing, Match, MatchesDocument, ResultsDocument
from edgarlens.store import Stores


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every store into tmp_path, with no request spacing."""
    return Settings(
        data_dir=tmp_path / "edgar",
        companies_path=tmp_path / "projects.json",
        min_request_interval=0.0,
        retry_backoff=5.0,
        max_retries=3,
        search_checkpoint_every=2,
        fetch_checkpoint_every=2,
    )


@pytest.fixture()
def stores(settings: Settings) -> Stores:
    return Stores.from_settings(settings)


@pytest.fixture()
def make_match() -> Callable[..., Match]:
    """Build a Match; filings are (accession, date) pairs, newest first."""

    def _make(
        entity_name: str,
        *,
        cik: str = "0001234567",
        confidence: str = "high",
        filings: tuple[tuple[str, str], ...] = (("0001234567-24-000001", "2024-03-15"),),
        validated: str | None = None,
    ) -> Match:
        return Match(
            entity_name=entity_name,
            cik=cik,
            confidence=confidence,
            filings=[Filing(accession=a, date=d) for a, d in filings],
            searched_at="2025-01-01T00:00:00.000Z",
            validated=validated,
        )

    return _make


@pytest.fixture()
def seed_stores(stores: Stores) -> Callable[..., None]:
    """Write companies, matches and results documents into the stores."""

    def _seed(
        companies: list[dict[str, Any]],
        matches: dict[str, Match] | None = None,
        results: ResultsDocument | None = None,
        unmatched: list[str] | None = None,
    ) -> None:
        stores.save_companies(companies)
        doc = MatchesDocument(matches=dict(matches or {}), unmatched=list(unmatched or []))
        doc.refresh_metadata("2025-01-01T00:00:00.000Z")
        stores.save_matches(doc)
        if results is not None:
            results.refresh_metadata()
            stores.save_results(results)

    return _seed
