"""Application configuration settings."""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Environnements où create_all() et l'absence de secret webhook sont tolérés
DEV_ENVS = {"dev", "local", "test"}



class Settings(BaseSettings):
    """Environment configuration, loaded once and frozen for the process lifetime."""

    app_env: str = "dev"
    database_url: str = "sqlite:///payrecon.db"
    ALLOW_DB_CREATE_ALL: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Kkiapay ---------------------------------------------------------
    kkia_public_key: str | None = None
    kkia_private_key: str | None = None
    kkia_secret_key: str | None = None
    kkia_sandbox: bool = False
    kkia_webhook_secret: str | None = None
    kkia_timeout_seconds: float = 10.0

    # Clé de l'application cliente (appel "callable")
    client_api_key: str | None = None
    preserve_success_status: bool = True

    CORS_ALLOW_ORIGINS: list[str] = ["http://localhost:3000"]
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = False

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8", frozen=True
    )

    @field_validator(
        "kkia_public_key",
        "kkia_private_key",
        "kkia_secret_key",
        "kkia_webhook_secret",
        "client_api_key",
    )
    @classmethod
    def _strip_empty_secret(cls, value: str | None) -> str | None:
        """Normalise empty secrets to ``None`` for easier validation."""

        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("kkia_sandbox", mode="before")
    @classmethod
    def _parse_sandbox(cls, value: Any) -> bool:
        """Sandbox mode is on only for the literal string ``"true"`` (any case)."""

        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().lower() == "true"

    @property
    def kkiapay_configured(self) -> bool:
        return bool(self.kkia_public_key and self.kkia_private_key and self.kkia_secret_key)

    @property
    def is_dev(self) -> bool:
        return self.app_env.lower() in DEV_ENVS


class AppInfo(BaseModel):
    name: str = "payrecon"
    version: str = "0.1.0"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()


__all__ = ["DEV_ENVS", "Settings", "AppInfo", "get_settings"]
