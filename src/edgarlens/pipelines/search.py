"""EDGAR full-text search: find the issuer behind each directory company.

For every company not yet resolved, query the EFTS index for Form D filings
mentioning the quoted company name, group the hits by CIK (one CIK is one
real-world issuer), score each issuer's display name against the company
name and keep the best-scoring issuer together with its most recent filings.

Rate limit: SEC requests 10 req/s max and a descriptive User-Agent header;
the shared :class:`~edgarlens.client.EdgarClient` spaces requests.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

import structlog

from edgarlens.audit import ErrorLog, utc_now_iso
from edgarlens.entity_resolution.matching import match_score, outranks
from edgarlens.errors import EdgarError, Forbidden
from edgarlens.models import (
    MAX_FILINGS_PER_MATCH,
    CompanyRecord,
    ConfidenceTier,
    Filing,
    Match,
    MatchesDocument,
)

if TYPE_CHECKING:
    from edgarlens.client import EdgarClient
    from edgarlens.config import Settings
    from edgarlens.store import Stores

logger = structlog.get_logger(__name__)

# EDGAR full-text search endpoint
_EFTS_SEARCH_URL = "https://efts.sec.gov/LATEST/search-index"

# "BREX INC  (CIK 0002083653)" / "Stripe, Inc.  (STRIPE)  (CIK 0001234567)"
_CIK_SUFFIX = re.compile(r"\s*\(CIK\s+\d+\)\s*$")
_TICKER_SUFFIX = re.compile(r"\s*\([A-Z0-9, -]+\)\s*$")


def extract_entity_name(display_name: str) -> str:
    """Strip the CIK marker and any ticker group from an EFTS display name."""
    name = _CIK_SUFFIX.sub("", display_name or "")
    name = _TICKER_SUFFIX.sub("", name)
    return name.strip()


# ---------------------------------------------------------------------------
# Hit grouping
# ---------------------------------------------------------------------------


@dataclass
class IssuerGroup:
    """All hits for one CIK in a single search response."""

    cik: str
    names: Counter = field(default_factory=Counter)
    filings: list[Filing] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        """Most frequent spelling; ties go to the spelling seen first."""
        return self.names.most_common(1)[0][0]


def group_hits_by_issuer(hits: list[dict[str, Any]]) -> dict[str, IssuerGroup]:
    """Group EFTS hits by issuer CIK, preserving first-seen order.

    Each hit's ``_source`` carries ``display_names``, ``ciks``, ``file_date``
    and ``root_forms``; the accession number is the ``_id`` prefix
    (``"0002083653-25-000003:primary_doc.xml"``) or ``adsh``. Hits without a
    CIK or a usable name are skipped.
    """
    groups: dict[str, IssuerGroup] = {}
    for hit in hits:
        source = hit.get("_source") or {}
        ciks = source.get("ciks") or []
        display_names = source.get("display_names") or []
        root_forms = source.get("root_forms") or ["D"]

        cik = ciks[0] if ciks else ""
        entity_name = extract_entity_name(display_names[0]) if display_names else ""
        if not cik or not entity_name:
            continue

        accession = (hit.get("_id") or "").split(":")[0] or source.get("adsh", "")
        group = groups.setdefault(cik, IssuerGroup(cik=cik))
        group.names[entity_name] += 1
        group.filings.append(Filing(
            accession=accession,
            date=source.get("file_date") or "",
            form=root_forms[0] or "D",
        ))
    return groups


def select_best_match(
    company_name: str,
    groups: dict[str, IssuerGroup],
    *,
    searched_at: str,
) -> Match | None:
    """Pick the issuer group whose display name scores best against *company_name*.

    Only a strictly higher tier replaces the current best, so between two
    issuers at the same tier the one EFTS returned first wins.
    """
    best: IssuerGroup | None = None
    best_confidence: ConfidenceTier = "none"

    for group in groups.values():
        score = match_score(company_name, group.display_name)
        if score.is_match and outranks(score.confidence, best_confidence):
            best = group
            best_confidence = score.confidence

    if best is None:
        return None

    filings = sorted(best.filings, key=lambda f: f.date, reverse=True)
    return Match(
        entity_name=best.display_name,
        cik=best.cik,
        confidence=best_confidence,
        filings=filings[:MAX_FILINGS_PER_MATCH],
        searched_at=searched_at,
    )


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def build_search_params(name: str, settings: Settings, *, today: date | None = None) -> dict[str, Any]:
    """Query parameters for an exact-phrase Form D search.

    Only ``forms=D``: the slash in ``D/A`` makes EFTS return HTTP 500.
    """
    return {
        "q": f'"{name}"',
        "forms": "D",
        "dateRange": "custom",
        "startdt": settings.search_start_date,
        "enddt": (today or date.today()).isoformat(),
        "from": 0,
        "size": settings.search_page_size,
    }


def search_company(client: EdgarClient, company: CompanyRecord, settings: Settings) -> Match | None:
    """Search EFTS for one company and return its best issuer match, if any."""
    data = client.fetch_json(_EFTS_SEARCH_URL, params=build_search_params(company.name, settings))
    hits = ((data or {}).get("hits") or {}).get("hits") or []
    if not hits:
        return None
    groups = group_hits_by_issuer(hits)
    return select_best_match(company.name, groups, searched_at=utc_now_iso())


def select_search_targets(
    companies: list[CompanyRecord],
    matches: MatchesDocument,
    slug: str | None = None,
) -> list[CompanyRecord]:
    """Companies to search: one slug regardless of state, or every unresolved US company."""
    if slug is not None:
        return [c for c in companies if c.slug == slug]
    return [c for c in companies if c.is_us and not matches.is_resolved(c.slug)]


def run_search(
    client: EdgarClient,
    stores: Stores,
    settings: Settings,
    *,
    slug: str | None = None,
    error_log: ErrorLog | None = None,
) -> dict[str, Any]:
    """Search EDGAR for every unresolved company, checkpointing as it goes.

    Progress is saved every ``search_checkpoint_every`` companies, so an
    interrupted run resumes where it stopped. A 403 stops the batch at once;
    work already done is still saved.
    """
    error_log = error_log or ErrorLog(None)
    matches = stores.load_matches()
    companies = [CompanyRecord.from_dict(c) for c in stores.load_companies() if c.get("slug")]
    targets = select_search_targets(companies, matches, slug)

    summary: dict[str, Any] = {
        "to_search": len(targets),
        "searched": 0,
        "matched": 0,
        "unmatched": 0,
        "failed": 0,
        "aborted": False,
    }
    if slug is not None and not targets:
        logger.warning("company_not_found", slug=slug)
        return summary

    logger.info(
        "edgar_search_started",
        to_search=len(targets),
        already_matched=len(matches.matches),
        already_unmatched=len(matches.unmatched),
    )

    try:
        for company in targets:
            summary["searched"] += 1
            try:
                result = search_company(client, company, settings)
            except Forbidden as e:
                summary["failed"] += 1
                summary["aborted"] = True
                error_log.record("search", company.slug, e)
                logger.error("edgar_search_aborted", slug=company.slug, reason="403 Forbidden; check User-Agent")
                break
            except EdgarError as e:
                summary["failed"] += 1
                error_log.record("search", company.slug, e)
            else:
                if result is not None:
                    matches.matches[company.slug] = result
                    if company.slug in matches.unmatched:
                        matches.unmatched.remove(company.slug)
                    summary["matched"] += 1
                    logger.info(
                        "edgar_match",
                        slug=company.slug,
                        entity=result.entity_name,
                        confidence=result.confidence,
                        filings=len(result.filings),
                    )
                else:
                    if company.slug not in matches.unmatched and company.slug not in matches.matches:
                        matches.unmatched.append(company.slug)
                    summary["unmatched"] += 1
                    logger.info("edgar_no_match", slug=company.slug)

            if summary["searched"] % settings.search_checkpoint_every == 0:
                matches.refresh_metadata(utc_now_iso())
                stores.save_matches(matches)
    finally:
        matches.refresh_metadata(utc_now_iso())
        stores.save_matches(matches)

    summary["total_matched"] = matches.metadata["matched"]
    summary["total_unmatched"] = matches.metadata["unmatched"]
    logger.info("edgar_search_complete", **summary)
    return summary
