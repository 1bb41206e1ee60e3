"""Write Form D filing months back to the company directory.

Only high-confidence, non-rejected matches contribute, and an existing
date is only replaced by a newer one. The validation pass can later revert
any date written here if its match turns out to be wrong.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from edgarlens.models import MatchesDocument

if TYPE_CHECKING:
    from edgarlens.store import Stores

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DateUpdate:
    slug: str
    name: str
    old: str | None
    new: str


def plan_date_updates(
    companies: list[dict[str, Any]],
    matches: MatchesDocument,
) -> tuple[list[DateUpdate], int]:
    """Return proposed ``last_funding_date`` updates and the number skipped.

    Skipped companies already hold an equal or newer date.
    """
    by_slug = {c["slug"]: c for c in companies if c.get("slug")}
    updates: list[DateUpdate] = []
    skipped = 0

    for slug, match in matches.matches.items():
        company = by_slug.get(slug)
        if company is None or match.confidence != "high" or match.validated == "rejected":
            continue
        filing = match.most_recent_filing
        if filing is None or not filing.date:
            continue

        new = filing.month
        existing = company.get("last_funding_date")
        if existing and existing >= new:
            skipped += 1
            continue
        updates.append(DateUpdate(slug=slug, name=company.get("name", slug), old=existing, new=new))

    return updates, skipped


def apply_date_updates(companies: list[dict[str, Any]], updates: list[DateUpdate]) -> int:
    """Write *updates* into the raw company dicts. Returns the count applied."""
    by_slug = {c["slug"]: c for c in companies if c.get("slug")}
    applied = 0
    for update in updates:
        company = by_slug.get(update.slug)
        if company is None:
            continue
        company["last_funding_date"] = update.new
        applied += 1
        logger.info("funding_date_applied", slug=update.slug, old=update.old, new=update.new)
    return applied


def run_apply_dates(stores: Stores, *, apply: bool = False) -> dict[str, Any]:
    """Plan date updates and, when *apply* is set, save them."""
    companies = stores.load_companies()
    matches = stores.load_matches()
    updates, skipped = plan_date_updates(companies, matches)

    applied = 0
    if apply and updates:
        applied = apply_date_updates(companies, updates)
        stores.save_companies(companies)

    logger.info("apply_dates_complete", proposed=len(updates), applied=applied, skipped=skipped)
    return {"updates": updates, "applied": applied, "skipped": skipped}
