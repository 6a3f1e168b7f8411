"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

# Environment variable → (section, field). Applied on top of the YAML file.
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PORT": ("server", "port"),
    "KISI_SIGNATURE_KEY": ("kisi", "signature_key"),
    "KISI_API_KEY": ("kisi", "api_key"),
    "TWILIO_ACCOUNT_SID": ("twilio", "account_sid"),
    "TWILIO_AUTH_TOKEN": ("twilio", "auth_token"),
    "TWILIO_FROM_NUMBER": ("twilio", "from_number"),
}


class ServerConfig(BaseModel):
    """HTTP listener configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    webhook_path: str = "/api/kisi/webhook"
    signature_header: str = "X-Signature"


class KisiConfig(BaseModel):
    """Access-control provider configuration (webhooks + lock REST API)."""

    signature_key: SecretStr = SecretStr("")
    api_key: SecretStr = SecretStr("")
    base_url: str = "https://api.kisi.com"
    main_door_ids: list[int | str] = []
    unlock_window_secs: float = 5.0
    timeout_secs: float = 10.0


class TwilioConfig(BaseModel):
    """Twilio SMS delivery configuration."""

    account_sid: str = ""
    auth_token: SecretStr = SecretStr("")
    from_number: str = ""
    base_url: str = "https://api.twilio.com"
    timeout_secs: float = 10.0


class StorageConfig(BaseModel):
    """File locations for recipients and the event log."""

    recipients_path: Path = Path("config/recipients.json")
    events_path: Path = Path("logs/events.json")


class DashboardConfig(BaseModel):
    """Dashboard access — Basic auth is enforced when both are set."""

    username: str = ""
    password: SecretStr = SecretStr("")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    server: ServerConfig = ServerConfig()
    kisi: KisiConfig = KisiConfig()
    twilio: TwilioConfig = TwilioConfig()
    storage: StorageConfig = StorageConfig()
    dashboard: DashboardConfig = DashboardConfig()
    logging: LoggingConfig = LoggingConfig()


def _apply_env_overrides(data: dict[str, Any], environ: dict[str, str]) -> None:
    for var, (section, field) in _ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        target = data.get(section)
        if not isinstance(target, dict):
            target = {}
            data[section] = target
        target[field] = value


def load_settings(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.
        environ: Environment mapping for overrides. Defaults to os.environ.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _apply_env_overrides(data, dict(os.environ) if environ is None else environ)

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
