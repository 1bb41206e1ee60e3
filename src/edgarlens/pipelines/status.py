"""Read-only progress report across the directory and EDGAR stores."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from edgarlens.models import FORM_D_SOURCE, CompanyRecord, MatchesDocument, ResultsDocument

if TYPE_CHECKING:
    from edgarlens.store import Stores


def collect_status(
    companies: list[dict[str, Any]],
    matches: MatchesDocument,
    results: ResultsDocument,
) -> dict[str, Any]:
    """Aggregate counts for the status report. Mutates nothing."""
    records = [CompanyRecord.from_dict(c) for c in companies if c.get("slug")]
    tiers = Counter(m.confidence for m in matches.matches.values())
    validation = Counter(m.validated or "unset" for m in matches.matches.values())
    form_d = [r for r in results.companies.values() if r.source == FORM_D_SOURCE]

    return {
        "companies": {
            "total": len(records),
            "us_or_unspecified": sum(1 for c in records if c.is_us),
            "international": sum(1 for c in records if not c.is_us),
            "with_funding": sum(1 for c in records if c.funding and c.funding > 0),
            "with_date": sum(1 for c in records if c.last_funding_date),
        },
        "search": {
            "searched": matches.metadata.get("searched", 0),
            "matched": matches.metadata.get("matched", 0),
            "high": tiers.get("high", 0),
            "medium": tiers.get("medium", 0),
            "low": tiers.get("low", 0),
            "unmatched": matches.metadata.get("unmatched", 0),
            "last_run": matches.metadata.get("last_run"),
        },
        "fetch": {
            "form_d_results": len(form_d),
            "with_funding": sum(1 for r in form_d if r.funding_found and r.funding_found > 0),
            "total_results": len(results.companies),
        },
        "validation": {
            status: validation.get(status, 0)
            for status in ("approved", "rejected", "needs_review", "unset")
        },
    }


def _pct(part: int, whole: int) -> str:
    return f"{(part / whole) * 100:.1f}%" if whole else "0.0%"


def format_status(status: dict[str, Any]) -> str:
    c, s, f, v = status["companies"], status["search"], status["fetch"], status["validation"]
    return "\n".join([
        "=== EDGAR Scraper Status ===",
        "",
        "Project Coverage:",
        f"  Total companies:       {c['total']}",
        f"  US / unspecified:      {c['us_or_unspecified']}",
        f"  International:         {c['international']}",
        f"  With funding amount:   {c['with_funding']} ({_pct(c['with_funding'], c['total'])})",
        f"  With funding date:     {c['with_date']} ({_pct(c['with_date'], c['total'])})",
        "",
        "EDGAR Search:",
        f"  Searched:              {s['searched']}",
        f"  Matched:               {s['matched']} (high: {s['high']}, medium: {s['medium']}, low: {s['low']})",
        f"  Unmatched:             {s['unmatched']}",
        f"  Last run:              {s['last_run'] or 'never'}",
        "",
        "EDGAR Fetch:",
        f"  Results in file:       {f['form_d_results']}",
        f"  With funding data:     {f['with_funding']}",
        f"  Total results.json:    {f['total_results']}",
        "",
        "Validation:",
        f"  Approved:              {v['approved']}",
        f"  Rejected:              {v['rejected']}",
        f"  Needs review:          {v['needs_review']}",
        f"  Not yet validated:     {v['unset']}",
    ])


def run_status(stores: Stores) -> dict[str, Any]:
    return collect_status(stores.load_companies(), stores.load_matches(), stores.load_results())
