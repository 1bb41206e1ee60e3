"""Validate stored EDGAR matches and undo what false positives produced.

:func:`evaluate_matches` classifies every stored match and works out which
derived funding dates came from matches that are no longer valid. It never
mutates anything. :func:`apply_validation` then, in order:

1. removes ``last_funding_date`` from companies whose date equals the filing
   month of a now-invalid match (dates from other months are left alone;
   they may have come from elsewhere),
2. stamps each match ``approved``, ``rejected`` or ``needs_review``,
3. deletes results for rejected matches,
4. regenerates the review queue.

Applying twice on unchanged inputs changes nothing the second time.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from edgarlens.audit import ErrorLog, utc_now_iso
from edgarlens.entity_resolution.classifier import (
    STATUSES,
    Classification,
    classify_match,
)
from edgarlens.entity_resolution.rules import DEFAULT_RULES, ClassificationRules
from edgarlens.models import (
    CompanyRecord,
    MatchesDocument,
    ResultsDocument,
    ReviewQueue,
    ValidationStatus,
)
from edgarlens.pipelines.review import build_review_queue, same_queue

if TYPE_CHECKING:
    from edgarlens.store import Stores

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ClassifiedMatch:
    slug: str
    name: str
    entity: str
    confidence: str
    classification: Classification
    filing_date: str | None

    @property
    def status(self) -> str:
        return self.classification.status

    @property
    def reason(self) -> str:
        return self.classification.reason


@dataclass(frozen=True)
class DateRevert:
    slug: str
    name: str
    bad_date: str
    entity: str


@dataclass
class ValidationOutcome:
    classified: list[ClassifiedMatch] = field(default_factory=list)
    dates_to_revert: list[DateRevert] = field(default_factory=list)
    # Matches whose company is no longer in the directory
    unclassified: list[str] = field(default_factory=list)

    def by_status(self, status: str) -> list[ClassifiedMatch]:
        return [c for c in self.classified if c.status == status]

    @property
    def counts(self) -> dict[str, int]:
        counts = {status: 0 for status in STATUSES}
        for c in self.classified:
            counts[c.status] += 1
        return counts


@dataclass
class ApplySummary:
    dates_reverted: int
    matches_downgraded: int
    results_removed: int
    valid_results: int
    review: ReviewQueue


def _target_status(classification: Classification) -> ValidationStatus:
    if classification.is_rejected:
        return "rejected"
    if classification.is_valid:
        return "approved"
    return "needs_review"


# ---------------------------------------------------------------------------
# Evaluate
# ---------------------------------------------------------------------------


def evaluate_matches(
    matches: MatchesDocument,
    companies: list[dict[str, Any]],
    rules: ClassificationRules = DEFAULT_RULES,
    *,
    error_log: ErrorLog | None = None,
) -> ValidationOutcome:
    """Classify every stored match. Read-only."""
    by_slug = {c["slug"]: CompanyRecord.from_dict(c) for c in companies if c.get("slug")}
    outcome = ValidationOutcome()

    for slug, match in matches.matches.items():
        company = by_slug.get(slug)
        if company is None:
            outcome.unclassified.append(slug)
            if error_log is not None:
                error_log.record("validate", slug, "Company not in directory; match left unclassified")
            else:
                logger.warning("validate_unclassified", slug=slug)
            continue

        classification = classify_match(slug, match, company, rules)
        filing = match.most_recent_filing
        outcome.classified.append(ClassifiedMatch(
            slug=slug,
            name=company.name,
            entity=match.entity_name,
            confidence=match.confidence,
            classification=classification,
            filing_date=filing.date if filing else None,
        ))

        # A date taken from this filing stands only while the match is valid
        if not classification.is_valid and company.last_funding_date and filing:
            if company.last_funding_date == filing.month:
                outcome.dates_to_revert.append(DateRevert(
                    slug=slug,
                    name=company.name,
                    bad_date=company.last_funding_date,
                    entity=match.entity_name,
                ))

    logger.info("matches_evaluated", **outcome.counts, dates_to_revert=len(outcome.dates_to_revert))
    return outcome


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------


def apply_validation(
    outcome: ValidationOutcome,
    matches: MatchesDocument,
    results: ResultsDocument,
    companies: list[dict[str, Any]],
    *,
    generated_at: str,
    previous_review: dict[str, Any] | None = None,
) -> ApplySummary:
    """Apply *outcome* to the in-memory documents. The caller persists them."""
    by_slug = {c["slug"]: c for c in companies if c.get("slug")}

    dates_reverted = 0
    for revert in outcome.dates_to_revert:
        company = by_slug.get(revert.slug)
        if company is not None and company.get("last_funding_date") == revert.bad_date:
            del company["last_funding_date"]
            dates_reverted += 1
            logger.info("reverted_funding_date", slug=revert.slug, removed=revert.bad_date)

    matches_downgraded = 0
    rejected: list[str] = []
    for classified in outcome.classified:
        match = matches.matches.get(classified.slug)
        if match is None:
            continue
        target = _target_status(classified.classification)
        if target == "rejected":
            rejected.append(classified.slug)
        if match.validated != target:
            if target == "rejected":
                matches_downgraded += 1
            match.validated = target

    results_removed = 0
    for slug in rejected:
        if results.companies.pop(slug, None) is not None:
            results_removed += 1
    results.refresh_metadata()

    review = build_review_queue(companies, results, generated_at)
    if previous_review and same_queue(review, previous_review):
        review.generated = previous_review.get("generated", generated_at)

    summary = ApplySummary(
        dates_reverted=dates_reverted,
        matches_downgraded=matches_downgraded,
        results_removed=results_removed,
        valid_results=len(results.companies),
        review=review,
    )
    logger.info(
        "validation_applied",
        dates_reverted=dates_reverted,
        matches_downgraded=matches_downgraded,
        results_removed=results_removed,
        valid_results=summary.valid_results,
    )
    return summary


def run_validation(
    stores: Stores,
    *,
    apply: bool = False,
    rules: ClassificationRules = DEFAULT_RULES,
    error_log: ErrorLog | None = None,
    now: datetime | None = None,
    on_report: Callable[[ValidationOutcome], None] | None = None,
) -> tuple[ValidationOutcome, ApplySummary | None]:
    """Classify all matches and, when *apply* is set, commit the consequences.

    The default is a dry run that reads the stores and writes nothing.
    *on_report* receives the outcome before anything is written.
    """
    matches = stores.load_matches()
    companies = stores.load_companies()
    outcome = evaluate_matches(matches, companies, rules, error_log=error_log)
    if on_report is not None:
        on_report(outcome)

    if not apply:
        return outcome, None

    results = stores.load_results()
    previous_review = stores.review.load() if stores.review.exists() else None
    generated_at = (
        now.isoformat(timespec="milliseconds").replace("+00:00", "Z") if now else utc_now_iso()
    )
    summary = apply_validation(
        outcome,
        matches,
        results,
        companies,
        generated_at=generated_at,
        previous_review=previous_review,
    )

    if summary.dates_reverted:
        stores.save_companies(companies)
    stores.save_matches(matches)
    stores.save_results(results)
    stores.review.save(summary.review.to_dict())
    return outcome, summary


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

_SECTIONS = (
    ("valid", "VALID MATCHES", "✓"),
    ("false_positive", "FALSE POSITIVES", "✗"),
    ("fund_aum", "FUND AUM (trading companies, not venture funding)", "$"),
    ("needs_review", "NEEDS REVIEW", "?"),
)


def format_report(outcome: ValidationOutcome) -> str:
    """Render the categorised classification report."""
    counts = outcome.counts
    lines = [
        "=== EDGAR Validation Report ===",
        "",
        f"Valid matches:      {counts['valid']}",
        f"False positives:    {counts['false_positive']}",
        f"Fund AUM (skip):    {counts['fund_aum']}",
        f"Needs review:       {counts['needs_review']}",
        f"Dates to revert:    {len(outcome.dates_to_revert)}",
    ]
    if outcome.unclassified:
        lines.append(f"Unclassified:       {len(outcome.unclassified)}")

    for status, title, mark in _SECTIONS:
        entries = outcome.by_status(status)
        if not entries and status == "needs_review":
            continue
        lines += ["", f"--- {title} ---"]
        for e in entries:
            detail = e.entity if status == "valid" else e.reason
            lines.append(f"  {mark} {e.slug:<25} {detail}")

    if outcome.dates_to_revert:
        lines += ["", "--- DATES TO REVERT ---"]
        for d in outcome.dates_to_revert:
            lines.append(f"  ← {d.slug:<25} {d.bad_date} (from {d.entity})")

    return "\n".join(lines)


def format_apply_summary(summary: ApplySummary) -> str:
    review = summary.review.summary
    return "\n".join([
        f"Dates reverted:     {summary.dates_reverted}",
        f"Matches downgraded: {summary.matches_downgraded}",
        f"Results removed:    {summary.results_removed}",
        f"Valid results:      {summary.valid_results}",
        "",
        "Clean review generated:",
        f"  Total:      {review['total']}",
        f"  New:        {review['new_funding']}",
        f"  Changed:    {review['changed_funding']}",
        f"  No change:  {review['no_change']}",
        f"  Suggested:  {review['updates_suggested']}",
    ])
