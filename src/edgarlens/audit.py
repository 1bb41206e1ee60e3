"""Append-only error log for per-item failures.

Entries are plain text, one per line, so a failed slug can be found with
grep and retried by hand with ``--slug``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ErrorLog:
    """Record failures to structlog and to a text file."""

    def __init__(self, path: Path | None) -> None:
        self.path = Path(path) if path is not None else None
        self.count = 0

    def record(self, operation: str, slug: str, error: BaseException | str) -> None:
        message = str(error)
        code = getattr(error, "code", None)
        self.count += 1
        logger.warning(f"{operation}_failed", slug=slug, error=message, code=code)
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(f"[{utc_now_iso()}] {operation} {slug}: {message}\n")
