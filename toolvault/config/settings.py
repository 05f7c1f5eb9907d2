"""
Configuration using pydantic-settings.

Settings come from, highest priority first:

1. Command-line options (applied by the CLI on top of loaded settings)
2. ``TOOLVAULT_*`` environment variables
3. The JSON config file (``<config dir>/config.json``)
4. Defaults

Example config file::

    {
        "credsStore": "secretservice",
        "credentialContext": "work",
        "providerTimeout": 120,
        "providers": {
            "github-token": ["/usr/local/bin/github-token-provider"]
        }
    }
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from toolvault.exceptions import ConfigurationError

APP_NAME = "toolvault"
CONFIG_FILE_NAME = "config.json"

# JSON config keys are camelCase; fields are snake_case
_FILE_KEYS = {
    "credsStore": "creds_store",
    "credentialContext": "credential_context",
    "credentialOverride": "credential_override",
    "providerTimeout": "provider_timeout",
    "providers": "providers",
    "configDir": "config_dir",
}


def default_config_dir() -> Path:
    """Per-user configuration directory.

    ``$TOOLVAULT_CONFIG_DIR`` wins, then ``$XDG_CONFIG_HOME/toolvault``, then
    ``%APPDATA%\\toolvault`` on Windows or ``~/.config/toolvault`` elsewhere.
    """
    explicit = os.environ.get("TOOLVAULT_CONFIG_DIR")
    if explicit:
        return Path(explicit).expanduser()

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME

    if sys.platform == "win32" and os.environ.get("APPDATA"):
        return Path(os.environ["APPDATA"]) / APP_NAME

    return Path.home() / ".config" / APP_NAME


def default_config_path() -> Path:
    return default_config_dir() / CONFIG_FILE_NAME


class ToolvaultSettings(BaseSettings):
    """Credential subsystem settings."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLVAULT_",
        case_sensitive=False,
        extra="ignore",
    )

    creds_store: str = Field(default="file", description="Backend name: 'file' or a helper name")
    credential_context: str = Field(default="default", description="Credential context")
    credential_override: str | None = Field(
        default=None, description="Override expression, see toolvault.credentials.overrides"
    )
    provider_timeout: float | None = Field(
        default=None, gt=0, description="Seconds before a provider tool is killed"
    )
    providers: dict[str, list[str]] = Field(
        default_factory=dict, description="Provider tool name -> command argv"
    )
    config_dir: Path | None = Field(default=None, description="Directory holding credential files")

    @field_validator("creds_store")
    @classmethod
    def _creds_store_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("credsStore must not be empty")
        return value

    @field_validator("credential_context")
    @classmethod
    def _context_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("credential context must not be empty")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive as init kwargs; the environment overrides them
        return env_settings, init_settings

    @property
    def resolved_config_dir(self) -> Path:
        return (self.config_dir or default_config_dir()).expanduser()

    @classmethod
    def from_json(cls, config_path: str | Path) -> ToolvaultSettings:
        """Load settings from a JSON config file.

        A missing file is not an error; defaults (plus environment) apply and
        credential files live next to where the config would be.

        Raises:
            ConfigurationError: If the file is unreadable, not a JSON object,
                or fails validation
        """
        config_file = Path(config_path).expanduser()
        values: dict[str, Any] = {}

        if config_file.exists():
            try:
                content = config_file.read_text(encoding="utf-8")
            except OSError as e:
                raise ConfigurationError(f"Cannot read configuration file: {config_file}") from e

            if content.strip():
                try:
                    document = json.loads(content)
                except json.JSONDecodeError as e:
                    raise ConfigurationError(f"Invalid JSON in {config_file}: {e}") from e

                if not isinstance(document, dict):
                    raise ConfigurationError(
                        "Configuration must be a JSON object, not a list or scalar"
                    )

                values = {_FILE_KEYS.get(k, k): v for k, v in document.items()}

        values.setdefault("config_dir", config_file.parent)

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {config_file}: {e}") from e


def load_settings(config_path: str | Path | None = None) -> ToolvaultSettings:
    """Load settings from ``config_path`` or the default per-user location."""
    return ToolvaultSettings.from_json(config_path or default_config_path())
