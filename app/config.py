"""
Environment-driven settings.

All configuration is read once from environment variables. Invalid values
fail fast with ValueError instead of surfacing later as odd behaviour.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

BACKENDS = ("sqlite", "postgrest")


@dataclass(frozen=True)
class Settings:
    """Application settings."""

    catalog_backend: str = "sqlite"
    """Which CatalogStore adapter to use: 'sqlite' or 'postgrest'."""

    db_path: Path = Path("data/bookswap.db")
    """SQLite file used by the sqlite backend."""

    postgrest_url: Optional[str] = None
    """Base URL of the hosted backend, e.g. https://xyz.supabase.co/rest/v1"""

    postgrest_api_key: Optional[str] = None

    recommendation_limit: int = 6
    """Default number of recommendations returned."""

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.catalog_backend not in BACKENDS:
            raise ValueError(
                f"CATALOG_BACKEND must be one of {BACKENDS}, got '{self.catalog_backend}'"
            )
        if self.catalog_backend == "postgrest" and not self.postgrest_url:
            raise ValueError("POSTGREST_URL is required when CATALOG_BACKEND=postgrest")
        if self.recommendation_limit < 0:
            raise ValueError("RECOMMENDATION_LIMIT cannot be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ValueError: If a variable holds an invalid value
        """
        env = os.environ if environ is None else environ

        raw_limit = env.get("RECOMMENDATION_LIMIT", "6")
        try:
            limit = int(raw_limit)
        except ValueError as e:
            raise ValueError(f"RECOMMENDATION_LIMIT must be an integer, got '{raw_limit}'") from e

        return cls(
            catalog_backend=env.get("CATALOG_BACKEND", "sqlite").strip().lower(),
            db_path=Path(env.get("DB_PATH", "data/bookswap.db")),
            postgrest_url=env.get("POSTGREST_URL") or None,
            postgrest_api_key=env.get("POSTGREST_API_KEY") or None,
            recommendation_limit=limit,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
