"""Form D filing fetch and field extraction.

For each matched company, fetch the most recent Form D and pull out the
offering figures. The funding figure reported downstream is
``totalAmountSold``: ``totalOfferingAmount`` is the authorised ceiling of the
offering, not capital raised.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from xml.etree import ElementTree as ET

import structlog

from edgarlens.audit import ErrorLog, utc_now_iso
from edgarlens.errors import EdgarError, Forbidden, NotFound, ParseFailure
from edgarlens.models import (
    FORM_D_SOURCE,
    Filing,
    FormDExtraction,
    FundingResult,
    Match,
    MatchesDocument,
    ResultsDocument,
)

if TYPE_CHECKING:
    from edgarlens.client import EdgarClient
    from edgarlens.config import Settings
    from edgarlens.store import Stores

logger = structlog.get_logger(__name__)

_ARCHIVES_URL = "https://www.sec.gov/Archives/edgar/data/{cik}/{accession_clean}/"

# Full-submission .txt files wrap each document in <XML>...</XML>
_XML_BLOCK = re.compile(r"<XML>\s*(.*?)\s*</XML>", re.DOTALL | re.IGNORECASE)


def candidate_document_urls(cik: str, accession: str) -> list[str]:
    """URLs to try for a filing, in order: primary XML, then full submission."""
    cik_clean = str(cik).strip().lstrip("0") or "0"
    base = _ARCHIVES_URL.format(cik=cik_clean, accession_clean=accession.replace("-", ""))
    return [
        f"{base}primary_doc.xml",
        f"{base}{accession}.txt",
    ]


# ---------------------------------------------------------------------------
# Parse
# ---------------------------------------------------------------------------


def _to_amount(value: str) -> float | None:
    """Coerce a Form D amount; "Indefinite" and other text give None."""
    cleaned = value.replace("$", "").replace(",", "").strip()
    try:
        return float(cleaned) if cleaned else None
    except ValueError:
        return None


def _to_text(value: str) -> str | None:
    return value.strip() or None


# attribute -> (element paths tried in order, converter)
_SCHEMA: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "total_offering": ((".//offeringSalesAmounts/totalOfferingAmount", ".//totalOfferingAmount"), _to_amount),
    "total_sold": ((".//offeringSalesAmounts/totalAmountSold", ".//totalAmountSold"), _to_amount),
    "total_remaining": ((".//offeringSalesAmounts/totalRemaining", ".//totalRemaining"), _to_amount),
    "date_first_sale": ((".//dateOfFirstSale/value", ".//dateOfFirstSale"), _to_text),
    "issuer_name": ((".//primaryIssuer/entityName", ".//entityName", ".//nameOfIssuer"), _to_text),
}


def _xml_payload(text: str) -> str:
    stripped = text.lstrip()
    if stripped.startswith("<?xml") or stripped.startswith("<edgarSubmission"):
        return stripped
    block = _XML_BLOCK.search(text)
    if block:
        return block.group(1)
    msg = "No XML document found in filing"
    raise ParseFailure(msg)


def _strip_namespaces(root: ET.Element) -> None:
    for el in root.iter():
        if isinstance(el.tag, str) and "}" in el.tag:
            el.tag = el.tag.split("}", 1)[1]


def parse_form_d(text: str) -> FormDExtraction:
    """Extract the Form D fields we use from a primary doc or full submission.

    Missing elements are normal and come back as None.

    Raises:
        ParseFailure: The document holds no XML or the XML is malformed.
    """
    payload = _xml_payload(text)
    try:
        root = ET.fromstring(payload.encode("utf-8"))
    except ET.ParseError as e:
        raise ParseFailure(f"Malformed Form D XML: {e!s}") from e
    _strip_namespaces(root)

    values: dict[str, Any] = {}
    for attr, (paths, convert) in _SCHEMA.items():
        for path in paths:
            el = root.find(path)
            if el is not None and el.text and el.text.strip():
                values[attr] = convert(el.text)
                break
    return FormDExtraction(**values)


# ---------------------------------------------------------------------------
# Fetch
# ---------------------------------------------------------------------------


def fetch_form_d(client: EdgarClient, cik: str, accession: str) -> tuple[FormDExtraction, str] | None:
    """Fetch and parse one filing, trying each candidate URL.

    A 404 or 403 on a candidate moves on to the next. Returns None when no
    candidate could be fetched, so the caller records nothing and a later run
    retries the filing.

    Raises:
        ParseFailure: A document was fetched but could not be parsed.
    """
    for url in candidate_document_urls(cik, accession):
        try:
            text = client.fetch_text(url)
        except (NotFound, Forbidden) as e:
            logger.debug("form_d_candidate_unavailable", url=url, error=e.code)
            continue
        try:
            return parse_form_d(text), url
        except ParseFailure as e:
            e.url = url
            raise
    return None


def _edgar_data(match: Match, filing: Filing, extraction: FormDExtraction | None, url: str | None) -> dict[str, Any]:
    extraction = extraction or FormDExtraction()
    return {
        "cik": match.cik,
        "accession": filing.accession,
        "filing_date": filing.date,
        "total_offering": extraction.total_offering,
        "total_sold": extraction.funding,
        "total_remaining": extraction.total_remaining,
        "date_first_sale": extraction.date_first_sale,
        "issuer_name": extraction.issuer_name,
        "url": url,
    }


def build_funding_result(
    match: Match,
    filing: Filing,
    extraction: FormDExtraction,
    url: str,
    *,
    searched_at: str,
) -> FundingResult:
    """Turn a parsed filing into a results-store entry."""
    funding = extraction.funding
    if funding is not None:
        return FundingResult(
            funding_found=funding,
            source=FORM_D_SOURCE,
            confidence=match.confidence,
            edgar_data=_edgar_data(match, filing, extraction, url),
            searched_at=searched_at,
        )
    return FundingResult(
        funding_found=None,
        source=FORM_D_SOURCE,
        confidence="none",
        edgar_data=_edgar_data(match, filing, extraction, url),
        notes="Form D found but no dollar amounts",
        searched_at=searched_at,
    )


def select_fetch_targets(
    matches: MatchesDocument,
    results: ResultsDocument,
    slug: str | None = None,
) -> list[str]:
    """Slugs to fetch: one slug, or every usable match without filing data yet."""
    if slug is not None:
        return [slug] if slug in matches.matches else []
    targets = []
    for s, m in matches.matches.items():
        if m.confidence == "low" or not m.filings or m.validated == "rejected":
            continue
        existing = results.companies.get(s)
        if existing is not None and existing.edgar_data:
            continue
        targets.append(s)
    return targets


def run_fetch(
    client: EdgarClient,
    stores: Stores,
    settings: Settings,
    *,
    slug: str | None = None,
    error_log: ErrorLog | None = None,
) -> dict[str, Any]:
    """Fetch Form D data for matched companies and record funding results.

    A filing that cannot be fetched at all records nothing, so a later run
    retries it. A filing that was fetched but is unparseable, or has no
    amount sold, records a result with a null figure and a note.
    """
    error_log = error_log or ErrorLog(None)
    matches = stores.load_matches()
    results = stores.load_results()
    targets = select_fetch_targets(matches, results, slug)

    summary: dict[str, Any] = {
        "to_fetch": len(targets),
        "fetched": 0,
        "with_funding": 0,
        "without_amounts": 0,
        "not_found": 0,
        "failed": 0,
    }
    if slug is not None and not targets:
        logger.warning("no_edgar_match_for_slug", slug=slug)
        return summary

    logger.info("edgar_fetch_started", to_fetch=len(targets))

    try:
        for s in targets:
            match = matches.matches[s]
            filing = match.most_recent_filing
            summary["fetched"] += 1
            if filing is None:
                summary["not_found"] += 1
                continue

            try:
                fetched = fetch_form_d(client, match.cik, filing.accession)
            except ParseFailure as e:
                summary["failed"] += 1
                error_log.record("fetch", s, e)
                results.companies[s] = FundingResult(
                    funding_found=None,
                    source=FORM_D_SOURCE,
                    confidence="none",
                    edgar_data=_edgar_data(match, filing, None, e.url),
                    notes=f"Form D could not be parsed: {e!s}",
                    searched_at=utc_now_iso(),
                )
            except EdgarError as e:
                summary["failed"] += 1
                error_log.record("fetch", s, e)
            else:
                if fetched is None:
                    summary["not_found"] += 1
                    logger.info("form_d_not_fetched", slug=s, accession=filing.accession)
                else:
                    extraction, url = fetched
                    result = build_funding_result(match, filing, extraction, url, searched_at=utc_now_iso())
                    results.companies[s] = result
                    if result.funding_found is not None:
                        summary["with_funding"] += 1
                        logger.info(
                            "form_d_funding_found",
                            slug=s,
                            funding=result.funding_found,
                            filing_date=filing.date,
                        )
                    else:
                        summary["without_amounts"] += 1
                        logger.info("form_d_no_amounts", slug=s, filing_date=filing.date)

            if summary["fetched"] % settings.fetch_checkpoint_every == 0:
                results.refresh_metadata()
                stores.save_results(results)
    finally:
        results.refresh_metadata()
        stores.save_results(results)

    summary["total_results"] = results.metadata["searched"]
    logger.info("edgar_fetch_complete", **summary)
    return summary
