"""Review queue generation.

The queue is derived data: it is rebuilt from scratch from the company
directory and the results store every time, never edited in place.
"""

from __future__ import annotations

from typing import Any

from edgarlens.models import (
    FORM_D_SOURCE,
    CompanyRecord,
    ResultsDocument,
    ReviewEntry,
    ReviewQueue,
    SuggestedAction,
)

# Relative difference above which a found amount is proposed as an update
_CHANGE_THRESHOLD = 0.1


def format_funding(amount: float | None) -> str:
    """Render an amount as ``$1.2B``, ``$35M``, ``$500K`` or ``N/A``."""
    if not amount:
        return "N/A"
    if amount >= 1_000_000_000:
        return f"${amount / 1_000_000_000:.1f}B"
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.0f}M"
    if amount >= 1_000:
        return f"${amount / 1_000:.0f}K"
    return f"${amount:.0f}"


def suggest_action(found: float | None, current: float | None) -> tuple[SuggestedAction, str]:
    """Compare a found amount with the directory's current one."""
    if found is None and current is None:
        return "skip", "No funding data found"
    if found is not None and current is None:
        return "add", "New funding data found"
    if found is not None and current is not None and abs(found - current) / current > _CHANGE_THRESHOLD:
        return "update", f"Difference: {format_funding(current)} → {format_funding(found)}"
    if found is None:
        return "keep", "No new funding figure; keeping current value"
    return "keep", "Values match or within 10%"


def build_review_queue(
    companies: list[dict[str, Any]],
    results: ResultsDocument,
    generated_at: str,
) -> ReviewQueue:
    """Build a fresh review queue for every result whose company still exists."""
    by_slug = {c["slug"]: CompanyRecord.from_dict(c) for c in companies if c.get("slug")}
    summary = {
        "total": 0,
        "updates_suggested": 0,
        "new_funding": 0,
        "changed_funding": 0,
        "no_change": 0,
    }
    entries: list[ReviewEntry] = []

    for slug, result in results.companies.items():
        company = by_slug.get(slug)
        if company is None:
            continue

        current = company.funding
        found = result.funding_found or None
        action, reason = suggest_action(found, current)

        if action == "add":
            summary["new_funding"] += 1
        elif action == "update":
            summary["changed_funding"] += 1
        elif action == "keep":
            summary["no_change"] += 1

        entries.append(ReviewEntry(
            slug=slug,
            name=company.name,
            current_funding=current,
            current_formatted=format_funding(current),
            found_funding=found,
            found_formatted=format_funding(found),
            source=result.source or FORM_D_SOURCE,
            confidence=result.confidence or "high",
            suggested_action=action,
            reason=reason,
            # keep/skip need no human decision
            approved=True if action in ("keep", "skip") else None,
        ))
        summary["total"] += 1
        if action in ("add", "update"):
            summary["updates_suggested"] += 1

    return ReviewQueue(generated=generated_at, summary=summary, companies=entries)


def same_queue(queue: ReviewQueue, stored: dict[str, Any]) -> bool:
    """True when *stored* holds the same summary and entries as *queue*."""
    current = queue.to_dict()
    return (
        stored.get("summary") == current["summary"]
        and stored.get("companies") == current["companies"]
    )
