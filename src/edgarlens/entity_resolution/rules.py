"""Vocabulary for the match classifier.

The built-in lists live in :data:`DEFAULT_RULES`. Additional overrides and
patterns can be supplied in a JSON file and merged with :func:`load_rules`;
the result is immutable and is passed explicitly to the classifier.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

# Slug -> reason. Known bad matches no heuristic reliably catches.
_KNOWN_FALSE_POSITIVES: dict[str, str] = {
    "alloy": "Alloy Therapeutics (biotech, not identity platform)",
    "upstart": "Upstart Power Holdings (energy, not lending)",
    "stripe": "Stripe Milton LLC (unknown, not Stripe Inc)",
    "ramp": "RAMp Sports LLC (sports, not corporate cards)",
    "natural": "Natural Systems Utilities (not Natural AI)",
    "goldfinch": "Goldfinch BioPharma (pharma, not DeFi lending)",
    "titan": "TITAN INTERNATIONAL INC (industrial wheels, not investing app)",
    "salient": "SALIENT SURGICAL TECHNOLOGIES (medical, not analytics)",
    "january": "January Therapeutics (pharma, not debt collection)",
    "entera": "Entera Bio Ltd. (biotech, not real estate)",
    "kin": "KINETIC TECHNOLOGIES (electronics, not insurance)",
    "ridley": "Ridley Apartments (real estate, not AI)",
    "vero": "Vero Biotech (biotech, not mortgage)",
    "slate": "Slate Pharmaceuticals (pharma, not trading agent)",
    "grass": "Grass Queen (unrelated, not crypto)",
    "allora": "Allora Health (health, not crypto AI)",
    "mx": "MX Orthopedics (medical, not financial data)",
    "brex": "BREX Briggs MF DST (real estate trust, not Brex fintech)",
    "affirm": "Affirm Logic Corp (logic/security, not Affirm BNPL)",
    "coalition": "Coalition POW LLC (not Coalition Insurance)",
    "harvey": "Harvey SPV1 LLC (unrelated SPV from 2011)",
    "vicarious": "Vicarious FPC Inc (different company)",
    "lulo": "Lulo Ventures Inc. (VC firm, not Lulo lending)",
    "anthropic": "Anthropic Capital Fund LP (investment fund, not Anthropic AI venture raise)",
    "vana": "Vana & Sons LLC (family business, not Vana data company)",
    "pilot": "Pilot Parent Holdings LP (PE acquisition vehicle, not venture funding)",
    "openspace": "Openspace Ventures IV LP (VC firm, not construction tech)",
    "watershed": "Watershed Capital Partners (fund, not ESG platform)",
    "wayfinder": "Wayfinder Ventures LP (VC firm, not crypto agent)",
    "orbit": "Orbit Fund LP (fund, not DeFi agent)",
    "ritual": "Ritual Capital I LP (fund, not crypto infrastructure)",
    "albert": "Albert Investment Associates LP (different company)",
    "jerry": "JERRY JERRY Ltd LIABILITY Co (not Jerry insurance app)",
    "together-ai": "Get Together AI Inc (not Together Computer / Together AI)",
    "axal": "CC Axal Ltd (unclear entity, likely different company)",
    "campfire": "Campfire Fund LLC (fund entity, not the company)",
    "pond": "Center Pond Partners LP (different fund)",
    "truenorth": "TrueNorth Lifesciences SPV (lifesciences, not trading)",
    "sphera": "Sphera Small Cap Fund (fund, not ESG platform)",
}

# Entity names from a clearly different industry
_WRONG_INDUSTRY = (
    r"\btherapeutic", r"\bpharma", r"\bbiotech", r"\bbio\b", r"\bbioph",
    r"\bsurgical", r"\bsport", r"\bapartment", r"\borthoped",
    r"\breal estate", r"\bqueen\b", r"\butilities\b", r"\blifescience",
    r"\bhealth\b",
)

# Third-party SPVs and syndicate vehicles investing *in* the company
_SPV = (
    r"\bgaingels\b", r"\bparty round\b", r"\bscop spv\b", r"\bseries of .+ llc",
    r"\batomizer spv\b", r"\bcoinvestors?\b", r"\bfifth era\b",
    r"\bcap table coalition\b", r"\blinqto\b",
)

# Fund / partnership shaped entity names
_FUND_ENTITY = (
    r"\bfund\b", r"\bcapital\b", r"\bpartners?\b", r"\bventures?\b",
    r"\bl\.?p\.?(?!\w)", r"\bspv\b", r"\bdst\b", r"\bportfolio\b",
    r"\bswap dealer\b",
)

# Segments whose Form D filings are usually fund AUM, not venture capital
_AUM_SEGMENTS = ("trading", "wealth")

# Words at which a fund entity's own name ends ("Acme Capital Partners" -> "acme")
_FUND_KEYWORD_BOUNDARY = r"capital|fund|partner|venture"


def _compile(patterns: tuple[str, ...] | list[str]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


@dataclass(frozen=True)
class ClassificationRules:
    known_false_positives: Mapping[str, str]
    wrong_industry: tuple[re.Pattern[str], ...]
    spv: tuple[re.Pattern[str], ...]
    fund_entity: tuple[re.Pattern[str], ...]
    aum_segments: frozenset[str]
    fund_keyword_boundary: re.Pattern[str]

    def extended(self, overrides: dict[str, Any]) -> ClassificationRules:
        """Return a copy with extra overrides and patterns appended."""
        known = dict(self.known_false_positives)
        known.update(overrides.get("known_false_positives") or {})
        return replace(
            self,
            known_false_positives=MappingProxyType(known),
            wrong_industry=self.wrong_industry + _compile(overrides.get("wrong_industry") or []),
            spv=self.spv + _compile(overrides.get("spv") or []),
            fund_entity=self.fund_entity + _compile(overrides.get("fund_entity") or []),
            aum_segments=self.aum_segments | frozenset(overrides.get("aum_segments") or []),
        )


DEFAULT_RULES = ClassificationRules(
    known_false_positives=MappingProxyType(dict(_KNOWN_FALSE_POSITIVES)),
    wrong_industry=_compile(_WRONG_INDUSTRY),
    spv=_compile(_SPV),
    fund_entity=_compile(_FUND_ENTITY),
    aum_segments=frozenset(_AUM_SEGMENTS),
    fund_keyword_boundary=re.compile(_FUND_KEYWORD_BOUNDARY),
)


def load_rules(path: Path | None = None) -> ClassificationRules:
    """Return the default rules, extended from a JSON file when *path* is given.

    The file may contain any of ``known_false_positives`` (object),
    ``wrong_industry``, ``spv``, ``fund_entity`` and ``aum_segments``
    (arrays of strings).
    """
    if path is None:
        return DEFAULT_RULES
    with open(path, encoding="utf-8") as f:
        overrides = json.load(f)
    rules = DEFAULT_RULES.extended(overrides)
    logger.info(
        "classification_rules_loaded",
        path=str(path),
        overrides=len(rules.known_false_positives),
    )
    return rules
