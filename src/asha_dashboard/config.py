"""Application configuration."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BackendSettings(BaseModel):
    """Backend REST API configuration."""

    # "http" talks to the real backend, "mock" uses the in-memory stores
    provider: str = "mock"
    base_url: str = "http://localhost:8000/api"
    timeout_seconds: float = 15.0
    api_token: str = ""


class IVRSettings(BaseModel):
    """IVR dispatch configuration."""

    # Seconds to wait for a single call's outcome (None or 0 = wait forever)
    call_timeout_seconds: float | None = 120.0

    # Cap on simultaneously ringing calls (None = dial everyone at once)
    max_concurrent_calls: int | None = None


class DashboardSettings(BaseModel):
    """Dashboard display configuration."""

    recent_call_logs: int = 10


class ExportSettings(BaseModel):
    """CSV export configuration."""

    directory: str = "."


class Settings(BaseSettings):
    """Application settings.

    Loaded from:
    1. Environment variables (ASHA_*)
    2. configs/{environment}.yaml
    3. configs/default.yaml
    """

    model_config = SettingsConfigDict(
        env_prefix="ASHA_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # JWT Authentication
    jwt_secret_key: str = ""  # MUST be set in production!
    jwt_expiry_minutes: int = 480
    jwt_algorithm: str = "HS256"

    # Subsystems
    backend: BackendSettings = Field(default_factory=BackendSettings)
    ivr: IVRSettings = Field(default_factory=IVRSettings)
    dashboard: DashboardSettings = Field(default_factory=DashboardSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)

    @property
    def call_timeout(self) -> float | None:
        """Per-call outcome timeout, None when disabled."""
        return self.ivr.call_timeout_seconds or None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings object loaded from config files and environment.
    """
    import os
    from dynaconf import Dynaconf

    # Determine paths
    config_dir = Path("configs")
    env = os.getenv("ASHA_ENV", "development")

    # Build settings file list
    settings_files = []
    if (config_dir / "default.yaml").exists():
        settings_files.append(str(config_dir / "default.yaml"))
    if (config_dir / f"{env}.yaml").exists():
        settings_files.append(str(config_dir / f"{env}.yaml"))

    # Load with Dynaconf
    dynaconf = Dynaconf(
        envvar_prefix="ASHA",
        settings_files=settings_files,
        load_dotenv=True,
    )

    # Convert to dict
    config_dict: dict[str, Any] = {}
    for key in dynaconf.keys():
        if not key.startswith("_"):
            value = dynaconf[key]
            config_dict[key.lower()] = value

    config_dict["environment"] = env

    return Settings(**config_dict)


def validate_production_settings(settings: Settings) -> list[str]:
    """Validate settings for production readiness.

    Args:
        settings: Application settings to validate.

    Returns:
        List of validation error messages (empty if all valid).
    """
    errors: list[str] = []

    # Only enforce strict validation in production
    if settings.environment not in ("production", "staging", "prod"):
        return errors

    if not settings.jwt_secret_key:
        errors.append("ASHA_JWT_SECRET_KEY must be set in production")

    if settings.backend.provider != "http":
        errors.append(
            "ASHA_BACKEND__PROVIDER must be 'http' in production "
            f"(got '{settings.backend.provider}')"
        )
    elif not settings.backend.base_url:
        errors.append("ASHA_BACKEND__BASE_URL must be set in production")

    return errors


def require_valid_settings() -> Settings:
    """Get settings and raise if production validation fails.

    Raises:
        ValueError: If production settings are invalid.

    Returns:
        Validated settings.
    """
    settings = get_settings()
    errors = validate_production_settings(settings)

    if errors:
        error_list = "\n  - ".join(errors)
        raise ValueError(
            f"Production configuration errors:\n  - {error_list}"
        )

    return settings
