"""
Application configuration using Pydantic Settings.

Settings come from a YAML/JSON config file loaded once at startup, with
environment variables (and .env) filling any fields the file omits.
Never use os.getenv() directly in business logic.
"""

import logging
import re
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "image-relay.yaml"

# Line starting with a JSON5 comment; YAML may otherwise read it as a plain scalar
_JSON5_COMMENT = re.compile(r"^\s*(//|/\*)", re.MULTILINE)


class ConfigError(Exception):
    """Raised when the configuration file is missing, unparsable or invalid."""


class Settings(BaseSettings):
    """Application settings loaded from the config file and environment"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # Telegram Configuration
    TELEGRAM_BOT_TOKEN: SecretStr = Field(
        ...,
        description="Bot token used for every Bot API call and in public file URLs",
    )
    CHAT_ID: int = Field(
        ...,
        description="Chat that receives uploaded photos",
    )
    TELEGRAM_API_BASE: str = Field(
        default="https://api.telegram.org",
        description="Telegram Bot API base URL",
    )
    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Timeout applied to each call to the Bot API",
    )

    # Upload Configuration
    MAX_CONCURRENT_UPLOADS: int = Field(
        default=4,
        ge=1,
        description="Maximum number of simultaneous forwards to Telegram",
    )
    STAGING_DIR: str = Field(
        default=str(Path(tempfile.gettempdir()) / "image-relay"),
        description="Directory holding uploads while they are forwarded",
    )
    STALE_FILE_TTL_MINUTES: int = Field(
        default=60,
        ge=1,
        description="Age after which an orphaned staged file is swept",
    )
    SWEEP_INTERVAL_MINUTES: int = Field(
        default=15,
        ge=1,
        description="Interval between stale file sweeps",
    )

    # Server Configuration
    HOST: str = Field(
        default="127.0.0.1",
        description="Bind address",
    )
    PORT: int = Field(
        default=8080,
        description="Bind port",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level",
    )

    @property
    def bind_address(self) -> str:
        return f"{self.HOST}:{self.PORT}"

    def public_summary(self) -> dict[str, Any]:
        """Settings safe to log: no token, no chat id."""
        return {
            "max_concurrent_uploads": self.MAX_CONCURRENT_UPLOADS,
            "staging_dir": self.STAGING_DIR,
            "upstream_timeout_seconds": self.UPSTREAM_TIMEOUT_SECONDS,
            "bind_address": self.bind_address,
        }


def load_settings(config_file: str | Path = DEFAULT_CONFIG_FILE) -> Settings:
    """
    Load settings from a YAML or JSON config file.

    Keys may use the lower-case spelling (``telegram_bot_token``,
    ``chat_id``, ``max_concurrent_uploads``, ``host``, ``port``); they are
    upper-cased before validation. Fields missing from the file fall back
    to environment variables.

    JSON5 is not accepted: a file with ``//`` or ``/*`` comments is rejected
    with a ConfigError. Rewrite such files as YAML or strip the comments.

    Args:
        config_file: Path to the config file

    Returns:
        Settings: Validated, immutable settings

    Raises:
        ConfigError: If the file is missing, unparsable or fails validation
    """
    path = Path(config_file)

    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}")

    if _JSON5_COMMENT.search(text):
        raise ConfigError(
            f"Failed to parse config file {path}: JSON5 comments are not supported, "
            "use YAML (# comments) or plain JSON"
        )

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    values = {str(key).upper(): value for key, value in data.items()}

    try:
        settings = Settings(**values)
    except ValidationError as e:
        # Only field locations and messages; input values may include the token
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid config file {path}: {problems}")

    logger.debug(f"Configuration loaded: {settings.public_summary()}")
    return settings
