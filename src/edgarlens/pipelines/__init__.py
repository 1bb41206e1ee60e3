"""EDGAR pipelines: search, Form D fetch, date application, review and status."""

from __future__ import annotations

from edgarlens.pipelines.dates import (
    apply_date_updates,
    plan_date_updates,
    run_apply_dates,
)
from edgarlens.pipelines.form_d import (
    candidate_document_urls,
    fetch_form_d,
    parse_form_d,
    run_fetch,
)
from edgarlens.pipelines.review import (
    build_review_queue,
    format_funding,
)
from edgarlens.pipelines.search import (
    extract_entity_name,
    group_hits_by_issuer,
    run_search,
    search_company,
    select_best_match,
)
from edgarlens.pipelines.status import (
    collect_status,
    format_status,
    run_status,
)

__all__ = [
    # Search
    "extract_entity_name",
    "group_hits_by_issuer",
    "run_search",
    "search_company",
    "select_best_match",
    # Form D
    "candidate_document_urls",
    "fetch_form_d",
    "parse_form_d",
    "run_fetch",
    # Dates
    "apply_date_updates",
    "plan_date_updates",
    "run_apply_dates",
    # Review
    "build_review_queue",
    "format_funding",
    # Status
    "collect_status",
    "format_status",
    "run_status",
]
