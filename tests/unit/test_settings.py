"""
Settings loading and validation
"""

import pytest

from id_tracker.config.settings import Settings, get_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "MASTER_KEY", "DATABASE_URL", "STORE_PATH", "API_KEYS_FILE", "API_KEYS",
        "KEYS_POLL_INTERVAL", "CONFLICT_POLICY", "REQUIRE_KNOWN_API_KEY", "SEARCH_LIMIT",
        "DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE", "MAX_IMPORT_BYTES", "ALLOWED_ORIGINS", "PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env()

    assert settings.port == 10000
    assert settings.conflict_policy == "ignore"
    assert settings.require_known_api_key is True
    assert settings.backend == "json"
    assert settings.allowed_origins == ["*"]


def test_master_key_required(clean_env):
    with pytest.raises(ValueError, match="MASTER_KEY"):
        get_settings()


def test_environment_overrides(clean_env):
    clean_env.setenv("MASTER_KEY", "s3cret")
    clean_env.setenv("DATABASE_URL", "postgresql://u:p@localhost/db")
    clean_env.setenv("CONFLICT_POLICY", "Update")
    clean_env.setenv("REQUIRE_KNOWN_API_KEY", "false")
    clean_env.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example")
    clean_env.setenv("PORT", "8080")

    settings = get_settings()

    assert settings.backend == "postgres"
    assert settings.conflict_policy == "update"
    assert settings.require_known_api_key is False
    assert settings.allowed_origins == ["https://a.example", "https://b.example"]
    assert settings.port == 8080


def test_invalid_values_reported(clean_env):
    errors = Settings(master_key="x", conflict_policy="duplicate", default_page_size=900).validate()

    assert any("CONFLICT_POLICY" in error for error in errors)
    assert any("DEFAULT_PAGE_SIZE" in error for error in errors)


def test_non_numeric_port_rejected(clean_env):
    clean_env.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT"):
        Settings.from_env()
