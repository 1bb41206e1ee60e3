"""Application settings loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables prefixed with EL_."""

    # SEC access policy: every request carries a contact string
    sec_user_agent: str = "EdgarLens admin@example.com"

    # Stores
    data_dir: Path = Path("data/edgar")
    companies_path: Path = Path("data/projects.json")
    rules_path: Path | None = None

    # HTTP
    min_request_interval: float = 0.2
    request_timeout: float = 30.0
    max_retries: int = 3
    retry_backoff: float = 5.0
    max_redirects: int = 5

    # Batch behaviour
    search_checkpoint_every: int = 20
    fetch_checkpoint_every: int = 10
    search_page_size: int = 40
    search_start_date: str = "2010-01-01"

    model_config = {"env_file": ".env", "env_prefix": "EL_"}

    @property
    def matches_path(self) -> Path:
        return self.data_dir / "edgar-matches.json"

    @property
    def results_path(self) -> Path:
        return self.data_dir / "results.json"

    @property
    def review_path(self) -> Path:
        return self.data_dir / "review.json"

    @property
    def error_log_path(self) -> Path:
        return self.data_dir / "edgar-errors.log"


def get_settings() -> Settings:
    """Return a Settings instance."""
    return Settings()
