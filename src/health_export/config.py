"""Configuration management using pydantic-settings."""

import threading

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Valid log levels
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class GitHubSettings(BaseSettings):
    """GitHub repository and credential settings."""

    model_config = SettingsConfigDict(env_prefix="GITHUB_")

    token: str | None = Field(default=None, description="Personal access or OAuth token")
    username: str | None = Field(default=None, description="Repository owner login")
    repository: str = Field(default="health", description="Repository receiving the export")
    api_url: str = Field(default="https://api.github.com", description="GitHub API base URL")
    author_name: str = Field(default="Hadge", description="Commit author name")
    author_email: str = Field(default="hadge@entire.io", description="Commit author email")
    timeout_seconds: float = Field(default=30.0, description="HTTP request timeout")
    max_retries: int = Field(default=3, description="Attempts per request on transport errors")
    retry_delay_seconds: float = Field(default=1.0, description="Base delay between retries")

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Strip trailing slashes from the API URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"API URL must start with http:// or https://, got {v}")
        return v.rstrip("/")

    @field_validator("repository")
    @classmethod
    def validate_repository(cls, v: str) -> str:
        """Validate repository name is not empty."""
        if not v or not v.strip():
            raise ValueError("Repository name cannot be empty")
        return v.strip()

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate at least one attempt is made."""
        if v < 1:
            raise ValueError(f"Max retries must be at least 1, got {v}")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class ExportSettings(BaseSettings):
    """Export window and input settings."""

    model_config = SettingsConfigDict(env_prefix="EXPORT_")

    epoch_year: int = Field(default=2014, description="First year fetched for activity data")
    data_dir: str = Field(default="/data/export", description="Directory with exported JSON")
    readme_path: str | None = Field(
        default=None, description="Optional README template written on setup"
    )

    @field_validator("epoch_year")
    @classmethod
    def validate_epoch_year(cls, v: int) -> int:
        """Validate the epoch renders as a four-digit year."""
        if not 1000 <= v <= 9999:
            raise ValueError(f"Epoch year must have four digits, got {v}")
        return v


class StateSettings(BaseSettings):
    """Persisted sync state settings."""

    model_config = SettingsConfigDict(env_prefix="STATE_")

    db_path: str = Field(default="/data/state/sync_state.db", description="SQLite state path")


class TracingSettings(BaseSettings):
    """OpenTelemetry tracing settings."""

    model_config = SettingsConfigDict(env_prefix="TRACING_")

    enabled: bool = Field(default=False, description="Enable OpenTelemetry tracing")
    service_name: str = Field(default="health-export", description="Service name for traces")


class AppSettings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_prefix="APP_")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or console")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        normalized = v.upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )
        return normalized

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is valid."""
        normalized = v.lower()
        if normalized not in ("json", "console"):
            raise ValueError(f"Invalid log format '{v}'. Must be 'json' or 'console'")
        return normalized


class Settings(BaseSettings):
    """Combined application settings."""

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    state: StateSettings = Field(default_factory=StateSettings)
    tracing: TracingSettings = Field(default_factory=TracingSettings)
    app: AppSettings = Field(default_factory=AppSettings)

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            github=GitHubSettings(),
            export=ExportSettings(),
            state=StateSettings(),
            tracing=TracingSettings(),
            app=AppSettings(),
        )


# Global settings instance with thread-safe initialization
_settings: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get or create the global settings instance.

    Thread-safe singleton pattern using double-checked locking.
    """
    global _settings
    if _settings is None:
        with _settings_lock:
            # Double-check after acquiring lock
            if _settings is None:
                _settings = Settings.load()
    return _settings
