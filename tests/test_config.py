"""Tests for configuration validation."""

import pytest

from health_export.config import (
    VALID_LOG_LEVELS,
    AppSettings,
    ExportSettings,
    GitHubSettings,
    Settings,
)


def test_github_defaults():
    """GitHub settings default to the health repository and Hadge author."""
    settings = GitHubSettings()

    assert settings.repository == "health"
    assert settings.api_url == "https://api.github.com"
    assert settings.author_name == "Hadge"
    assert settings.author_email == "hadge@entire.io"
    assert settings.max_retries == 3


def test_github_api_url_validation():
    """API URL must be http(s) and loses trailing slashes."""
    assert GitHubSettings(api_url="https://ghe.example.com/api/v3/").api_url == (
        "https://ghe.example.com/api/v3"
    )

    with pytest.raises(ValueError, match="API URL must start with"):
        GitHubSettings(api_url="ftp://example.com")


def test_github_repository_validation():
    """Repository name must be non-empty."""
    with pytest.raises(ValueError, match="Repository name cannot be empty"):
        GitHubSettings(repository="  ")


def test_github_retry_and_timeout_validation():
    """Retries and timeout enforce valid ranges."""
    with pytest.raises(ValueError, match="Max retries must be at least 1"):
        GitHubSettings(max_retries=0)

    with pytest.raises(ValueError, match="Timeout must be positive"):
        GitHubSettings(timeout_seconds=0)


def test_export_epoch_year_validation():
    """Epoch year defaults to 2014 and must have four digits."""
    assert ExportSettings().epoch_year == 2014

    with pytest.raises(ValueError, match="Epoch year must have four digits"):
        ExportSettings(epoch_year=999)


def test_app_settings_normalize_log_fields():
    """App settings normalize log format and log level."""
    settings = AppSettings(log_level="debug", log_format="Console")

    assert settings.log_level == "DEBUG"
    assert settings.log_format == "console"
    assert settings.log_level in VALID_LOG_LEVELS


def test_app_settings_reject_unknown_format():
    with pytest.raises(ValueError, match="Invalid log format"):
        AppSettings(log_format="xml")


def test_settings_load_reads_environment(monkeypatch):
    """Settings.load picks up prefixed environment variables."""
    monkeypatch.setenv("GITHUB_USERNAME", "alice")
    monkeypatch.setenv("GITHUB_REPOSITORY", "my-health")
    monkeypatch.setenv("EXPORT_EPOCH_YEAR", "2016")
    monkeypatch.setenv("STATE_DB_PATH", "/tmp/state.db")

    settings = Settings.load()

    assert settings.github.username == "alice"
    assert settings.github.repository == "my-health"
    assert settings.export.epoch_year == 2016
    assert settings.state.db_path == "/tmp/state.db"
