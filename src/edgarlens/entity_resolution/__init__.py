"""Entity resolution: name matching, match classification and validation."""

from __future__ import annotations

from edgarlens.entity_resolution.classifier import (
    Classification,
    classify_match,
    is_company_holding_entity,
)
from edgarlens.entity_resolution.matching import (
    MatchScore,
    jaccard_similarity,
    match_score,
    normalize_name,
)
from edgarlens.entity_resolution.rules import (
    DEFAULT_RULES,
    ClassificationRules,
    load_rules,
)
from edgarlens.entity_resolution.validation import (
    apply_validation,
    evaluate_matches,
    format_report,
    run_validation,
)

__all__ = [
    "DEFAULT_RULES",
    "Classification",
    "ClassificationRules",
    "MatchScore",
    "apply_validation",
    "classify_match",
    "evaluate_matches",
    "format_report",
    "is_company_holding_entity",
    "jaccard_similarity",
    "load_rules",
    "match_score",
    "normalize_name",
    "run_validation",
]
