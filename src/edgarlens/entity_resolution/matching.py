"""Company-name normalisation and tiered similarity scoring.

Pure functions: no I/O, no module state read at call time beyond the
compiled suffix vocabulary, which callers may replace.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from unidecode import unidecode

from edgarlens.models import ConfidenceTier

# ---------------------------------------------------------------------------
# Suffix vocabulary
# ---------------------------------------------------------------------------

# Corporate-form and generic descriptor words that say nothing about which
# company a name refers to. Applied after punctuation removal, so dotted forms
# (L.L.C., Inc.) arrive here already collapsed.
DEFAULT_SUFFIXES: tuple[str, ...] = (
    "inc", "incorporated", "llc", "llp", "corp", "corporation", "ltd",
    "limited", "co", "company", "lp", "plc", "group", "holding", "holdings",
    "technologies", "technology", "tech", "lab", "labs", "ai", "software",
    "solutions", "services", "financial", "finance", "capital", "venture",
    "ventures", "partner", "partners", "system", "systems",
)


def compile_suffix_pattern(suffixes: tuple[str, ...] | list[str]) -> re.Pattern[str]:
    """Build a whole-word pattern for *suffixes*, longest first."""
    ordered = sorted({s.lower() for s in suffixes}, key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(re.escape(s) for s in ordered) + r")\b")


_SUFFIX_PATTERN = compile_suffix_pattern(DEFAULT_SUFFIXES)

CONFIDENCE_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1, "none": 0}

# Minimum word-count ratio for containment matches to keep their tier
_WORD_RATIO_GATE = 0.5


def normalize_name(name: str, suffix_pattern: re.Pattern[str] | None = None) -> str:
    """Normalise a company name for matching.

    Steps:
      1. Transliterate Unicode to ASCII and lowercase.
      2. Delete every character that is not a letter, digit or space.
         Hyphens and slashes join words rather than split them, so
         ``Lend-Up`` and ``LENDUP INC`` both give ``lendup``.
      3. Remove whole-word corporate suffixes.
      4. Collapse whitespace and trim.

    The output contains no punctuation and no suffix words, so normalising
    it again is a no-op.
    """
    pattern = suffix_pattern or _SUFFIX_PATTERN
    text = unidecode(name or "").lower()
    text = re.sub(r"[^a-z0-9\s]", "", text)
    text = pattern.sub(" ", text)
    return re.sub(r"\s+", " ", text).strip()


def jaccard_similarity(a: str, b: str) -> float:
    """Intersection-over-union of the whitespace token sets of *a* and *b*."""
    set_a = set(a.split())
    set_b = set(b.split())
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


@dataclass(frozen=True)
class MatchScore:
    is_match: bool
    confidence: ConfidenceTier


_NO_MATCH = MatchScore(is_match=False, confidence="none")


def match_score(
    our_name: str,
    candidate_name: str,
    suffix_pattern: re.Pattern[str] | None = None,
) -> MatchScore:
    """Score how likely *candidate_name* refers to the company *our_name*.

    Tiers, first rule that applies wins:
      1. Either side normalises to nothing: ``none``.
      2. Exact normalised equality: ``high``.
      3. One side is a prefix of the other: ``high`` when the shorter name
         has more than half the longer name's words, else ``medium``. This is
         stricter than an at-least-half gate: exactly half is ``medium``.
      4. One side contains the other: ``medium`` when the word-count ratio
         is at least 0.5, else ``low``.
      5. Token Jaccard: >= 0.6 ``high``, > 0.4 ``medium``, > 0.25 ``low``.

    A single-word name prefixing a two-word name ("Ramp" / "RAMp Sports")
    stays ``medium``: that shape is where most wrong-company matches come
    from.
    """
    norm_ours = normalize_name(our_name, suffix_pattern)
    norm_theirs = normalize_name(candidate_name, suffix_pattern)

    if not norm_ours or not norm_theirs:
        return _NO_MATCH

    if norm_ours == norm_theirs:
        return MatchScore(is_match=True, confidence="high")

    words_ours = len(norm_ours.split())
    words_theirs = len(norm_theirs.split())
    word_ratio = min(words_ours, words_theirs) / max(words_ours, words_theirs)

    if len(norm_ours) > 2 and len(norm_theirs) > 2:
        if norm_theirs.startswith(norm_ours) or norm_ours.startswith(norm_theirs):
            if word_ratio > _WORD_RATIO_GATE:
                return MatchScore(is_match=True, confidence="high")
            return MatchScore(is_match=True, confidence="medium")

        if norm_ours in norm_theirs or norm_theirs in norm_ours:
            if word_ratio >= _WORD_RATIO_GATE:
                return MatchScore(is_match=True, confidence="medium")
            return MatchScore(is_match=True, confidence="low")

    similarity = jaccard_similarity(norm_ours, norm_theirs)
    if similarity >= 0.6:
        return MatchScore(is_match=True, confidence="high")
    if similarity > 0.4:
        return MatchScore(is_match=True, confidence="medium")
    if similarity > 0.25:
        return MatchScore(is_match=True, confidence="low")
    return _NO_MATCH


def outranks(candidate: str, incumbent: str) -> bool:
    """True when tier *candidate* is strictly better than *incumbent*."""
    return CONFIDENCE_RANK[candidate] > CONFIDENCE_RANK[incumbent]
