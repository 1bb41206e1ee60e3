"""Second-pass classification of EDGAR matches.

Search accepts any issuer whose name scores well against the company name,
which lets through biotech namesakes, syndicate SPVs and investment funds.
:func:`classify_match` re-evaluates a stored match against an ordered chain
of rules; the first rule that fires decides the outcome.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from edgarlens.entity_resolution.rules import DEFAULT_RULES, ClassificationRules
from edgarlens.models import CompanyRecord, Match

Status = Literal["valid", "false_positive", "fund_aum", "needs_review"]
STATUSES: tuple[Status, ...] = ("valid", "false_positive", "fund_aum", "needs_review")

# Outcomes that invalidate a match and everything derived from it
REJECTED_STATUSES: frozenset[str] = frozenset({"false_positive", "fund_aum"})


@dataclass(frozen=True)
class Classification:
    status: Status
    reason: str

    @property
    def is_valid(self) -> bool:
        return self.status == "valid"

    @property
    def is_rejected(self) -> bool:
        return self.status in REJECTED_STATUSES


@dataclass(frozen=True)
class _Subject:
    slug: str
    match: Match
    company: CompanyRecord
    rules: ClassificationRules

    @property
    def entity(self) -> str:
        return self.match.entity_name or ""


def _any(patterns: tuple[re.Pattern[str], ...], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def _letters(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def is_company_holding_entity(company_name: str, entity_name: str, rules: ClassificationRules) -> bool:
    """True when a fund-shaped entity name is really the company's own vehicle.

    "Betterment Holdings Capital LLC" starts with "betterment"; "Acme Capital
    Partners" reduces to "acme" at the fund keyword, which "Acme Corp" starts
    with. "Ridgeline Capital Partners" for a company called "Acme" does
    neither.
    """
    ours = _letters(company_name)
    theirs = _letters(entity_name)
    if not ours or not theirs:
        return False
    if theirs.startswith(ours):
        return True
    own_prefix = rules.fund_keyword_boundary.split(theirs, maxsplit=1)[0]
    return bool(own_prefix) and ours.startswith(own_prefix)


# ---------------------------------------------------------------------------
# Rule chain
# ---------------------------------------------------------------------------

Predicate = Callable[[_Subject], bool]
Outcome = Callable[[_Subject], Classification]


def _wrong_industry(s: _Subject) -> bool:
    return _any(s.rules.wrong_industry, s.entity)


def _third_party_spv(s: _Subject) -> bool:
    return _any(s.rules.spv, s.entity)


def _fund_entity(s: _Subject) -> bool:
    return _any(s.rules.fund_entity, s.entity)


def _aum_segment_fund(s: _Subject) -> bool:
    return (s.company.segment or "") in s.rules.aum_segments and _fund_entity(s)


def _low_confidence(s: _Subject) -> bool:
    return s.match.confidence == "low"


def _medium_confidence(s: _Subject) -> bool:
    return s.match.confidence == "medium"


def _fund_outcome(s: _Subject) -> Classification:
    if is_company_holding_entity(s.company.name, s.entity, s.rules):
        return Classification("valid", f"Company holding entity: {s.entity}")
    return Classification("false_positive", f"Fund/capital entity: {s.entity}")


_RULE_CHAIN: tuple[tuple[Predicate, Outcome], ...] = (
    (_wrong_industry, lambda s: Classification("false_positive", f"Industry mismatch: {s.entity}")),
    (_third_party_spv, lambda s: Classification("false_positive", f"Third-party SPV: {s.entity}")),
    (_aum_segment_fund, lambda s: Classification("fund_aum", f"Fund AUM (not venture funding): {s.entity}")),
    (_low_confidence, lambda s: Classification("false_positive", f"Low confidence match: {s.entity}")),
    (_medium_confidence, lambda s: Classification("needs_review", f"Medium confidence: {s.entity}")),
    (_fund_entity, _fund_outcome),
)


def classify_match(
    slug: str,
    match: Match,
    company: CompanyRecord,
    rules: ClassificationRules = DEFAULT_RULES,
) -> Classification:
    """Classify one stored match.

    Order: manual override table, wrong industry, third-party SPV, fund AUM
    for trading/wealth companies, low confidence, medium confidence, fund
    entity name disambiguation, then valid. Pure: the result depends only on
    the arguments.
    """
    override = rules.known_false_positives.get(slug)
    if override is not None:
        return Classification("false_positive", override)

    subject = _Subject(slug=slug, match=match, company=company, rules=rules)
    for predicate, outcome in _RULE_CHAIN:
        if predicate(subject):
            return outcome(subject)
    return Classification("valid", f"Matched: {subject.entity}")
