"""JSON document stores with atomic snapshot-then-rewrite semantics.

Each store is one JSON file read in full at phase start and rewritten in
full at checkpoints. Writes go to a temporary file in the same directory
that is then renamed over the target, so an interrupted process leaves
either the previous snapshot or the new one, never a partial file.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from edgarlens.models import MatchesDocument, ResultsDocument

if TYPE_CHECKING:
    from edgarlens.config import Settings

logger = structlog.get_logger(__name__)


def dump_document(document: Any) -> str:
    """Serialise a document the way every store writes it."""
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


class JsonDocument:
    """One JSON file treated as a keyed document."""

    def __init__(self, path: Path, default: Callable[[], Any]) -> None:
        self.path = Path(path)
        self._default = default

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Any:
        """Return the parsed document, or a fresh default if the file is absent."""
        if not self.path.exists():
            return self._default()
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def save(self, document: Any) -> None:
        """Atomically replace the file with *document*."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = dump_document(document)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("saved_document", path=str(self.path), bytes=len(payload))


@dataclass
class Stores:
    """The documents one pipeline run works against."""

    matches: JsonDocument
    results: JsonDocument
    companies: JsonDocument
    review: JsonDocument

    @classmethod
    def from_settings(cls, settings: Settings) -> Stores:
        return cls(
            matches=JsonDocument(settings.matches_path, lambda: MatchesDocument().to_dict()),
            results=JsonDocument(settings.results_path, lambda: ResultsDocument().to_dict()),
            companies=JsonDocument(settings.companies_path, list),
            review=JsonDocument(settings.review_path, dict),
        )

    # -- typed helpers -----------------------------------------------------

    def load_matches(self) -> MatchesDocument:
        return MatchesDocument.from_dict(self.matches.load())

    def save_matches(self, doc: MatchesDocument) -> None:
        self.matches.save(doc.to_dict())

    def load_results(self) -> ResultsDocument:
        return ResultsDocument.from_dict(self.results.load())

    def save_results(self, doc: ResultsDocument) -> None:
        self.results.save(doc.to_dict())

    def load_companies(self) -> list[dict[str, Any]]:
        return self.companies.load()

    def save_companies(self, companies: list[dict[str, Any]]) -> None:
        self.companies.save(companies)
