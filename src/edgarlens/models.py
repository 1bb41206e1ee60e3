"""Typed views over the JSON documents the pipeline reads and writes.

The stores themselves stay plain JSON so they remain readable and
hand-auditable; these dataclasses are the in-memory shape. ``from_dict`` is
tolerant of missing keys, ``to_dict`` emits the on-disk layout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ConfidenceTier = Literal["high", "medium", "low", "none"]
ValidationStatus = Literal["approved", "rejected", "needs_review"]
SuggestedAction = Literal["keep", "skip", "add", "update"]

FORM_D_SOURCE = "sec-edgar-form-d"
US_COUNTRIES = frozenset({"US", "USA"})

# Most recent filings retained per match
MAX_FILINGS_PER_MATCH = 10


# ---------------------------------------------------------------------------
# Company directory
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompanyRecord:
    """Read-only view of one company directory entry."""

    slug: str
    name: str
    country: str | None = None
    segment: str | None = None
    funding: float | None = None
    last_funding_date: str | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> CompanyRecord:
        return cls(
            slug=raw["slug"],
            name=raw.get("name") or "",
            country=raw.get("hq_country") or None,
            segment=raw.get("segment") or None,
            funding=raw.get("funding") or None,
            last_funding_date=raw.get("last_funding_date") or None,
        )

    @property
    def is_us(self) -> bool:
        """US-headquartered, or country unknown (EDGAR is still worth a look)."""
        return self.country is None or self.country in US_COUNTRIES


# ---------------------------------------------------------------------------
# Matches store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Filing:
    accession: str
    date: str
    form: str = "D"

    @property
    def month(self) -> str:
        """Filing month as ``YYYY-MM``."""
        return self.date[:7]

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Filing:
        return cls(
            accession=raw.get("accession", ""),
            date=raw.get("date", ""),
            form=raw.get("form") or "D",
        )

    def to_dict(self) -> dict[str, Any]:
        return {"accession": self.accession, "date": self.date, "form": self.form}


@dataclass
class Match:
    """Best EDGAR issuer found for one company."""

    entity_name: str
    cik: str
    confidence: ConfidenceTier
    filings: list[Filing]
    searched_at: str
    validated: ValidationStatus | None = None

    @property
    def most_recent_filing(self) -> Filing | None:
        return self.filings[0] if self.filings else None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Match:
        return cls(
            entity_name=raw.get("entity_name", ""),
            cik=str(raw.get("cik", "")),
            confidence=raw.get("confidence", "none"),
            filings=[Filing.from_dict(f) for f in raw.get("filings") or []],
            searched_at=raw.get("searched_at", ""),
            validated=raw.get("validated"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "entity_name": self.entity_name,
            "cik": self.cik,
            "confidence": self.confidence,
            "filings": [f.to_dict() for f in self.filings],
            "searched_at": self.searched_at,
        }
        if self.validated is not None:
            out["validated"] = self.validated
        return out


@dataclass
class MatchesDocument:
    matches: dict[str, Match] = field(default_factory=dict)
    unmatched: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(
        default_factory=lambda: {"searched": 0, "matched": 0, "unmatched": 0, "last_run": None},
    )

    def is_resolved(self, slug: str) -> bool:
        """True once a company has been either matched or recorded as unmatched."""
        return slug in self.matches or slug in self.unmatched

    def refresh_metadata(self, last_run: str) -> None:
        self.metadata = {
            "searched": len(self.matches) + len(self.unmatched),
            "matched": len(self.matches),
            "unmatched": len(self.unmatched),
            "last_run": last_run,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> MatchesDocument:
        doc = cls(
            matches={slug: Match.from_dict(m) for slug, m in (raw.get("matches") or {}).items()},
            unmatched=list(raw.get("unmatched") or []),
        )
        if raw.get("metadata"):
            doc.metadata = dict(raw["metadata"])
        return doc

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata,
            "matches": {slug: m.to_dict() for slug, m in self.matches.items()},
            "unmatched": self.unmatched,
        }


# ---------------------------------------------------------------------------
# Filing extraction and results store
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FormDExtraction:
    """The handful of Form D fields we consume. Every field may be absent."""

    total_offering: float | None = None
    total_sold: float | None = None
    total_remaining: float | None = None
    date_first_sale: str | None = None
    issuer_name: str | None = None

    @property
    def funding(self) -> float | None:
        """Capital actually raised. Never the offering ceiling."""
        if self.total_sold is not None and self.total_sold > 0:
            return self.total_sold
        return None


_RESULT_KEYS = ("funding_found", "source", "confidence", "edgar_data", "notes", "searched_at")


@dataclass
class FundingResult:
    funding_found: float | None
    source: str
    confidence: ConfidenceTier
    searched_at: str
    edgar_data: dict[str, Any] | None = None
    notes: str | None = None
    # Keys written by other enrichment sources sharing the results file
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> FundingResult:
        return cls(
            funding_found=raw.get("funding_found"),
            source=raw.get("source", ""),
            confidence=raw.get("confidence", "none"),
            searched_at=raw.get("searched_at", ""),
            edgar_data=raw.get("edgar_data"),
            notes=raw.get("notes"),
            extra={k: v for k, v in raw.items() if k not in _RESULT_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "funding_found": self.funding_found,
            "source": self.source,
            "confidence": self.confidence,
        }
        if self.edgar_data is not None:
            out["edgar_data"] = self.edgar_data
        if self.notes is not None:
            out["notes"] = self.notes
        out.update(self.extra)
        out["searched_at"] = self.searched_at
        return out


@dataclass
class ResultsDocument:
    companies: dict[str, FundingResult] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=lambda: {"searched": 0, "found": 0})

    def refresh_metadata(self) -> None:
        self.metadata = {
            **self.metadata,
            "searched": len(self.companies),
            "found": sum(1 for r in self.companies.values() if r.funding_found),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ResultsDocument:
        doc = cls(
            companies={
                slug: FundingResult.from_dict(r) for slug, r in (raw.get("companies") or {}).items()
            },
        )
        if raw.get("metadata"):
            doc.metadata = dict(raw["metadata"])
        return doc

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": self.metadata,
            "companies": {slug: r.to_dict() for slug, r in self.companies.items()},
        }


# ---------------------------------------------------------------------------
# Review queue
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReviewEntry:
    slug: str
    name: str
    current_funding: float | None
    current_formatted: str
    found_funding: float | None
    found_formatted: str
    source: str
    confidence: str
    suggested_action: SuggestedAction
    reason: str
    approved: bool | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "current_funding": self.current_funding,
            "current_formatted": self.current_formatted,
            "found_funding": self.found_funding,
            "found_formatted": self.found_formatted,
            "source": self.source,
            "confidence": self.confidence,
            "suggested_action": self.suggested_action,
            "reason": self.reason,
            "approved": self.approved,
        }


@dataclass
class ReviewQueue:
    generated: str
    summary: dict[str, int]
    companies: list[ReviewEntry]

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated": self.generated,
            "summary": self.summary,
            "companies": [e.to_dict() for e in self.companies],
        }
