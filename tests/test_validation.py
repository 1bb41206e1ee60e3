"""Tests for match validation: evaluate, apply and report.

Stores live under tmp_path; nothing touches the network.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from edgarlens.audit import ErrorLog
from edgarlens.entity_resolution.validation import (
    evaluate_matches,
    format_apply_summary,
    format_report,
    run_validation,
)
from edgarlens.models import FORM_D_SOURCE, FundingResult, MatchesDocument, ResultsDocument

JAN = datetime(2025, 1, 1, tzinfo=timezone.utc)
FEB = datetime(2025, 2, 1, tzinfo=timezone.utc)


def _result(amount: float | None, confidence: str = "high") -> FundingResult:
    return FundingResult(
        funding_found=amount,
        source=FORM_D_SOURCE,
        confidence=confidence,
        searched_at="2025-01-01T00:00:00.000Z",
        edgar_data={"cik": "1", "accession": "a"},
    )


# =========================================================================
# evaluate_matches
# =========================================================================


class TestEvaluateMatches:
    """Classification and revert planning; never mutates."""

    def test_plans_revert_when_date_equals_invalid_filing_month(self, make_match):
        companies = [{"slug": "acme", "name": "Acme", "last_funding_date": "2024-03"}]
        matches = MatchesDocument(matches={"acme": make_match("ACME WIDGET CO", confidence="low")})

        outcome = evaluate_matches(matches, companies)

        assert [d.slug for d in outcome.dates_to_revert] == ["acme"]
        assert outcome.dates_to_revert[0].bad_date == "2024-03"
        assert companies[0]["last_funding_date"] == "2024-03"

    def test_no_revert_for_date_from_another_month(self, make_match):
        companies = [{"slug": "acme", "name": "Acme", "last_funding_date": "2023-11"}]
        matches = MatchesDocument(matches={"acme": make_match("ACME WIDGET CO", confidence="low")})
        assert evaluate_matches(matches, companies).dates_to_revert == []

    def test_no_revert_for_valid_match(self, make_match):
        companies = [{"slug": "brex-fintech", "name": "Brex", "last_funding_date": "2024-03"}]
        matches = MatchesDocument(matches={"brex-fintech": make_match("BREX INC")})
        outcome = evaluate_matches(matches, companies)
        assert outcome.counts["valid"] == 1
        assert outcome.dates_to_revert == []

    def test_missing_company_is_unclassified_and_logged(self, tmp_path, make_match):
        matches = MatchesDocument(matches={"ghost": make_match("GHOST INC")})
        log = ErrorLog(tmp_path / "errors.log")

        outcome = evaluate_matches(matches, [], error_log=log)

        assert outcome.unclassified == ["ghost"]
        assert outcome.classified == []
        assert "validate ghost:" in (tmp_path / "errors.log").read_text()


# =========================================================================
# run_validation
# =========================================================================


class TestRunValidation:
    """End-to-end apply behaviour against tmp_path stores."""

    @pytest.fixture()
    def seeded(self, seed_stores, make_match):
        companies = [
            {"slug": "acme", "name": "Acme", "funding": 2_000_000, "last_funding_date": "2024-03"},
            {"slug": "brex-fintech", "name": "Brex", "last_funding_date": "2024-03"},
            {"slug": "widgetco", "name": "Widgetco", "funding": 1_000_000, "last_funding_date": "2022-01"},
        ]
        matches = {
            "acme": make_match("ACME WIDGET CO", confidence="low"),
            "brex-fintech": make_match("BREX INC"),
            "widgetco": make_match("Widgetco Robotics Inc", confidence="medium"),
        }
        results = ResultsDocument(companies={
            "acme": _result(5_000_000),
            "brex-fintech": _result(300_000_000),
            "widgetco": _result(1_050_000, "medium"),
        })
        seed_stores(companies, matches, results)

    def test_dry_run_writes_nothing(self, stores, seeded):
        paths = [stores.companies.path, stores.matches.path, stores.results.path]
        before = [p.read_bytes() for p in paths]

        outcome, summary = run_validation(stores)

        assert summary is None
        assert outcome.counts == {"valid": 1, "false_positive": 1, "fund_aum": 0, "needs_review": 1}
        assert [p.read_bytes() for p in paths] == before
        assert not stores.review.exists()

    def test_low_confidence_acme_is_rejected_and_removed(self, stores, seeded):
        _, summary = run_validation(stores, apply=True, now=JAN)

        matches = stores.load_matches().matches
        results = stores.load_results().companies
        assert matches["acme"].validated == "rejected"
        assert "acme" not in results
        assert summary.results_removed == 1
        assert summary.matches_downgraded == 1

    def test_statuses_stamped_and_surviving_results_kept(self, stores, seeded):
        run_validation(stores, apply=True, now=JAN)

        matches = stores.load_matches().matches
        assert matches["brex-fintech"].validated == "approved"
        assert matches["widgetco"].validated == "needs_review"
        assert set(stores.load_results().companies) == {"brex-fintech", "widgetco"}

    def test_reverts_only_the_invalid_match_date(self, stores, seeded):
        _, summary = run_validation(stores, apply=True, now=JAN)

        companies = {c["slug"]: c for c in stores.load_companies()}
        assert "last_funding_date" not in companies["acme"]
        assert companies["brex-fintech"]["last_funding_date"] == "2024-03"
        # needs_review match, but the date came from a different month
        assert companies["widgetco"]["last_funding_date"] == "2022-01"
        assert summary.dates_reverted == 1

    def test_apply_twice_is_idempotent(self, stores, seeded):
        _, first = run_validation(stores, apply=True, now=JAN)
        review_first = stores.review.path.read_bytes()
        matches_first = stores.matches.path.read_bytes()

        _, second = run_validation(stores, apply=True, now=FEB)

        assert second.dates_reverted == 0
        assert second.matches_downgraded == 0
        assert second.results_removed == 0
        assert stores.review.path.read_bytes() == review_first
        assert stores.matches.path.read_bytes() == matches_first
        assert first.review.generated == second.review.generated == "2025-01-01T00:00:00.000Z"

    def test_review_queue_regenerated(self, stores, seeded):
        run_validation(stores, apply=True, now=JAN)

        review = stores.review.load()
        assert review["generated"] == "2025-01-01T00:00:00.000Z"
        entries = {e["slug"]: e for e in review["companies"]}
        assert set(entries) == {"brex-fintech", "widgetco"}
        assert entries["brex-fintech"]["suggested_action"] == "add"
        assert entries["brex-fintech"]["approved"] is None
        assert entries["widgetco"]["suggested_action"] == "keep"
        assert entries["widgetco"]["approved"] is True
        assert review["summary"] == {
            "total": 2,
            "updates_suggested": 1,
            "new_funding": 1,
            "changed_funding": 0,
            "no_change": 1,
        }

    def test_report_callback_runs_before_writes(self, stores, seeded):
        matches_before = stores.matches.path.read_bytes()
        seen = []

        def on_report(outcome):
            seen.append(stores.matches.path.read_bytes() == matches_before)

        run_validation(stores, apply=True, now=JAN, on_report=on_report)
        assert seen == [True]

    def test_unchanged_companies_file_not_rewritten(self, stores, seed_stores, make_match):
        seed_stores(
            [{"slug": "brex-fintech", "name": "Brex"}],
            {"brex-fintech": make_match("BREX INC")},
            ResultsDocument(),
        )
        stores.save_companies = MagicMock()
        _, summary = run_validation(stores, apply=True, now=JAN)
        assert summary.dates_reverted == 0
        stores.save_companies.assert_not_called()


# =========================================================================
# Reports
# =========================================================================


class TestFormatReport:
    def test_lists_every_category(self, make_match):
        companies = [
            {"slug": "acme", "name": "Acme", "last_funding_date": "2024-03"},
            {"slug": "brex-fintech", "name": "Brex"},
        ]
        matches = MatchesDocument(matches={
            "acme": make_match("ACME WIDGET CO", confidence="low"),
            "brex-fintech": make_match("BREX INC"),
        })

        report = format_report(evaluate_matches(matches, companies))

        assert "Valid matches:      1" in report
        assert "False positives:    1" in report
        assert "Dates to revert:    1" in report
        assert "--- VALID MATCHES ---" in report
        assert "Low confidence match: ACME WIDGET CO" in report
        assert "2024-03 (from ACME WIDGET CO)" in report
        assert "NEEDS REVIEW" not in report

    def test_apply_summary(self, stores, seed_stores, make_match):
        seed_stores(
            [{"slug": "acme", "name": "Acme"}],
            {"acme": make_match("ACME WIDGET CO", confidence="low")},
            ResultsDocument(companies={"acme": _result(1_000.0)}),
        )
        _, summary = run_validation(stores, apply=True, now=JAN)
        text = format_apply_summary(summary)
        assert "Results removed:    1" in text
        assert "Matches downgraded: 1" in text
        assert "Total:      0" in text
