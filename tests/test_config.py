"""
Tests for environment-driven settings.
"""

import pytest
from pathlib import Path

from app.config import Settings


class TestSettingsFromEnv:
    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.catalog_backend == "sqlite"
        assert settings.db_path == Path("data/bookswap.db")
        assert settings.postgrest_url is None
        assert settings.recommendation_limit == 6
        assert settings.log_level == "INFO"

    def test_postgrest_backend(self):
        settings = Settings.from_env({
            "CATALOG_BACKEND": "PostgREST",
            "POSTGREST_URL": "https://example.supabase.co/rest/v1",
            "POSTGREST_API_KEY": "secret",
            "LOG_LEVEL": "debug",
        })

        assert settings.catalog_backend == "postgrest"
        assert settings.postgrest_api_key == "secret"
        assert settings.log_level == "DEBUG"

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError, match="CATALOG_BACKEND"):
            Settings.from_env({"CATALOG_BACKEND": "mongo"})

    def test_postgrest_requires_url(self):
        with pytest.raises(ValueError, match="POSTGREST_URL"):
            Settings.from_env({"CATALOG_BACKEND": "postgrest"})

    @pytest.mark.parametrize("raw", ["six", "-1"])
    def test_invalid_limit_rejected(self, raw):
        with pytest.raises(ValueError, match="RECOMMENDATION_LIMIT"):
            Settings.from_env({"RECOMMENDATION_LIMIT": raw})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("DB_PATH", "/tmp/other.db")
        assert Settings.from_env().db_path == Path("/tmp/other.db")
