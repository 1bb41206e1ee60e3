"""Tests for the match classifier and its rule vocabulary."""

from __future__ import annotations

import json

import pytest

from edgarlens.entity_resolution.classifier import classify_match, is_company_holding_entity
from edgarlens.entity_resolution.rules import DEFAULT_RULES, load_rules
from edgarlens.models import CompanyRecord


def _company(name: str, slug: str = "subject", segment: str | None = "infra") -> CompanyRecord:
    return CompanyRecord(slug=slug, name=name, segment=segment)


# =========================================================================
# classify_match
# =========================================================================


class TestClassifyMatch:
    """Tests for the ordered rule chain."""

    def test_override_table_wins_over_everything(self, make_match):
        result = classify_match("ramp", make_match("RAMP INC"), _company("Ramp", "ramp"))
        assert result.status == "false_positive"
        assert result.reason == DEFAULT_RULES.known_false_positives["ramp"]

    def test_industry_mismatch(self, make_match):
        match = make_match("RAMp Sports LLC", confidence="medium")
        result = classify_match("ramp-cards", match, _company("Ramp", "ramp-cards"))
        assert result.status == "false_positive"
        assert result.reason == "Industry mismatch: RAMp Sports LLC"

    def test_industry_mismatch_beats_high_confidence(self, make_match):
        match = make_match("Alloy Therapeutics Inc")
        result = classify_match("alloy-id", match, _company("Alloy", "alloy-id"))
        assert result.reason.startswith("Industry mismatch")

    def test_third_party_spv(self, make_match):
        result = classify_match("brexco", make_match("Gaingels Brex LLC"), _company("Brex"))
        assert result.status == "false_positive"
        assert result.reason == "Third-party SPV: Gaingels Brex LLC"

    def test_trading_company_with_capital_partners_is_fund_aum(self, make_match):
        company = _company("Acme Trading", segment="trading")
        result = classify_match("acme-trading", make_match("Acme Capital Partners LP"), company)
        assert result.status == "fund_aum"
        assert result.reason == "Fund AUM (not venture funding): Acme Capital Partners LP"

    def test_wealth_segment_is_fund_aum(self, make_match):
        company = _company("Ridge Wealth", segment="wealth")
        result = classify_match("ridge", make_match("Ridge Wealth Fund I"), company)
        assert result.status == "fund_aum"

    def test_low_confidence_is_false_positive(self, make_match):
        result = classify_match("acme", make_match("ACME WIDGET CO", confidence="low"), _company("Acme"))
        assert result.status == "false_positive"
        assert result.reason == "Low confidence match: ACME WIDGET CO"

    def test_medium_confidence_is_needs_review(self, make_match):
        match = make_match("Widgetco Robotics Inc", confidence="medium")
        result = classify_match("widgetco", match, _company("Widgetco"))
        assert result.status == "needs_review"
        assert result.reason == "Medium confidence: Widgetco Robotics Inc"

    def test_company_holding_entity_is_valid(self, make_match):
        match = make_match("Betterment Holdings Capital LLC")
        result = classify_match("betterment", match, _company("Betterment", segment="consumer"))
        assert result.status == "valid"
        assert result.reason == "Company holding entity: Betterment Holdings Capital LLC"

    def test_unrelated_fund_is_false_positive(self, make_match):
        match = make_match("Ridgeline Capital Partners LP")
        result = classify_match("acme", match, _company("Acme"))
        assert result.status == "false_positive"
        assert result.reason == "Fund/capital entity: Ridgeline Capital Partners LP"

    def test_clean_high_match_is_valid(self, make_match):
        result = classify_match("brex-fintech", make_match("BREX INC"), _company("Brex"))
        assert result.status == "valid"
        assert result.reason == "Matched: BREX INC"

    def test_pure(self, make_match):
        match = make_match("Widgetco Robotics Inc", confidence="medium")
        company = _company("Widgetco")
        before = match.to_dict()
        first = classify_match("widgetco", match, company)
        second = classify_match("widgetco", match, company)
        assert first == second
        assert match.to_dict() == before


class TestIsCompanyHoldingEntity:
    @pytest.mark.parametrize(("company", "entity", "expected"), [
        ("Betterment", "Betterment Holdings, Inc.", True),
        ("Acme Corp", "Acme Capital Partners", True),
        ("Acme", "Ridgeline Capital Partners", False),
        ("", "Acme Capital", False),
    ])
    def test_cases(self, company, entity, expected):
        assert is_company_holding_entity(company, entity, DEFAULT_RULES) is expected


# =========================================================================
# Rules
# =========================================================================


class TestLoadRules:
    def test_default_without_path(self):
        assert load_rules(None) is DEFAULT_RULES

    def test_extends_from_json(self, tmp_path, make_match):
        path = tmp_path / "rules.json"
        path.write_text(json.dumps({
            "known_false_positives": {"widgetco": "Widgetco Robotics (different company)"},
            "wrong_industry": [r"\bmining\b"],
        }))
        rules = load_rules(path)

        override = classify_match(
            "widgetco", make_match("Widgetco Robotics Inc"), _company("Widgetco"), rules,
        )
        assert override.reason == "Widgetco Robotics (different company)"
        industry = classify_match("gold", make_match("Gold Mining Co"), _company("Gold"), rules)
        assert industry.reason == "Industry mismatch: Gold Mining Co"
        # Built-in entries survive and the defaults are untouched
        assert "ramp" in rules.known_false_positives
        assert "widgetco" not in DEFAULT_RULES.known_false_positives
