"""
Configuration constants and Pydantic models for ollama-relay.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from ollama_relay.errors import ConfigurationError

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_PORT: int = 11434
DEFAULT_BASE_URL: str = f"http://localhost:{DEFAULT_PORT}"
DEFAULT_CONNECTION_NAME: str = "local"
DEFAULT_CONFIG_FILE: str = "appsettings.json"

# Local hardware can take a long time on large prompts.
REQUEST_TIMEOUT_SECONDS: float = 3600.0

DATA_PLACEHOLDER: str = "{{data}}"
PROMPT_PREVIEW_LENGTH: int = 400
DEFAULT_FILE_MASK: str = "*"
REDACTED_PASSWORD: str = "******"


# ─────────────────────────────────────────────────────────────────────
# DATA MODELS
# ─────────────────────────────────────────────────────────────────────

class ServerConnection(BaseModel):
    """One named Ollama endpoint. Immutable once loaded."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(validation_alias=AliasChoices("name", "Name"))
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        validation_alias=AliasChoices("base_url", "baseUrl", "BaseUrl"),
    )
    user: Optional[str] = Field(default=None, validation_alias=AliasChoices("user", "User"))
    password: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("password", "Password")
    )
    ignore_ssl: bool = Field(
        default=False, validation_alias=AliasChoices("ignore_ssl", "ignoreSsl", "IgnoreSsl")
    )

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("connection name must not be empty")
        return value

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str) -> str:
        value = normalize_base_url(value)
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"base_url must be an absolute http(s) URL, got '{value}'")
        try:
            parsed.port
        except ValueError as e:
            raise ValueError(f"base_url has an invalid port, got '{value}'") from e
        return value

    @property
    def has_credentials(self) -> bool:
        return bool(self.user) and bool(self.password)

    def redacted(self) -> dict:
        """Public view for list_connections; password never leaves in clear text."""
        return {
            "name": self.name,
            "base_url": self.base_url,
            "user": self.user,
            "password": REDACTED_PASSWORD if self.password else None,
            "ignore_ssl": self.ignore_ssl,
        }


class AppConfig(BaseModel):
    """Connection list plus the optional default connection name."""
    model_config = ConfigDict(populate_by_name=True)

    servers: list[ServerConnection] = Field(
        default_factory=list, validation_alias=AliasChoices("servers", "Servers")
    )
    default_server_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "default_server_name", "defaultServerName", "DefaultServerName"
        ),
    )


def normalize_base_url(value: str) -> str:
    """
    Strip whitespace and trailing slashes.

    A bare host gets http:// and, without a port, the Ollama default port
    (OLLAMA_HOST=0.0.0.0 means http://0.0.0.0:11434). A URL with an explicit
    scheme keeps that scheme's default port.
    """
    value = value.strip().rstrip("/")
    if value and "://" not in value:
        parsed = urlparse(f"http://{value}")
        try:
            port = parsed.port
        except ValueError:
            # invalid port; rejected by the caller's URL check
            return f"http://{value}"
        if parsed.hostname and port is None:
            parsed = parsed._replace(netloc=f"{parsed.netloc}:{DEFAULT_PORT}")
        value = parsed.geturl()
    return value


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_config_path() -> Path:
    """
    Get configuration file path from environment or default.

    Set OLLAMA_RELAY_CONFIG to point at a JSON file (default: ./appsettings.json).
    """
    return Path(os.environ.get("OLLAMA_RELAY_CONFIG", DEFAULT_CONFIG_FILE))


def get_default_base_url() -> str:
    """
    Get the loopback default, overridable with OLLAMA_HOST.

    Only used when no connection is configured at all.
    """
    value = os.environ.get("OLLAMA_HOST", "").strip()
    if value:
        return normalize_base_url(value)
    return DEFAULT_BASE_URL


def get_default_connection_name() -> Optional[str]:
    """Get OLLAMA_DEFAULT_CONNECTION, or None if unset/blank."""
    value = os.environ.get("OLLAMA_DEFAULT_CONNECTION", "").strip()
    return value or None


def get_log_level() -> str:
    """Get server log level from OLLAMA_RELAY_LOG_LEVEL (default: INFO)."""
    return os.environ.get("OLLAMA_RELAY_LOG_LEVEL", "INFO").strip().upper() or "INFO"


def load_servers_from_env() -> list[ServerConnection]:
    """
    Load URL-only connections from environment variables.

    Looks for variables matching pattern: OLLAMA_SERVER_1, OLLAMA_SERVER_2, etc.
    Each becomes a connection named server1, server2, ...
    """
    servers = []
    i = 1
    while True:
        key = f"OLLAMA_SERVER_{i}"
        value = os.environ.get(key)
        if value is None:
            break
        if value.strip():
            try:
                servers.append(ServerConnection(name=f"server{i}", base_url=value))
            except PydanticValidationError as e:
                raise ConfigurationError(f"Invalid {key}: {e.errors()[0]['msg']}") from e
        i += 1
    return servers


def load_app_config(path: Optional[Path] = None) -> AppConfig:
    """
    Build the effective AppConfig from the JSON file and the environment.

    The file may hold the settings at top level or under an "Ollama" section.
    A missing file yields an empty configuration.
    """
    config_path = Path(path) if path is not None else get_config_path()
    data: dict = {}
    if config_path.is_file():
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")
        section = raw.get("Ollama", raw)
        data = section if isinstance(section, dict) else {}
        logger.debug(f"Loaded configuration from {config_path}")

    try:
        config = AppConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e

    env_servers = load_servers_from_env()
    if env_servers:
        config.servers = [*config.servers, *env_servers]

    default_name = get_default_connection_name()
    if default_name:
        config.default_server_name = default_name

    return config
