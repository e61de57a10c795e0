"""Process configuration.

Hides where configuration comes from (environment, .env file) and
centralizes the defaults. Settings are loaded once and never mutated.
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Character budget for automatically derived tab titles
TITLE_MAX_CHARS = 30
UNTITLED = "New Chat"


def default_data_dir() -> Path:
    """Directory holding saved conversations."""
    base = os.getenv("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / "tabchat" / "conversations"


class Settings(BaseModel):
    """Read-only process-wide configuration."""

    model_config = ConfigDict(frozen=True)

    api_key: str | None = Field(default=None, description="Anthropic API key", repr=False)
    model: str = Field(default=DEFAULT_MODEL, min_length=1, description="Default model identifier")
    base_url: str | None = Field(default=None, description="Custom API base URL")
    max_tokens: int = Field(default=4096, ge=1, description="Maximum output tokens per reply")
    connect_timeout: float = Field(default=10.0, gt=0, description="Connect timeout in seconds")
    read_timeout: float = Field(default=120.0, gt=0, description="Read timeout in seconds")
    max_retries: int = Field(default=0, ge=0, description="Transport retries per exchange")
    channel_capacity: int = Field(default=32, ge=1, description="Per-session channel bound")
    poll_interval: float = Field(default=0.05, gt=0, description="Event loop wait bound in seconds")
    title_max_chars: int = Field(default=TITLE_MAX_CHARS, ge=1)
    data_dir: Path = Field(default_factory=default_data_dir)
    autosave: bool = Field(default=True, description="Save conversations after each completed turn")
    restore_limit: int = Field(default=5, ge=0, description="Conversations restored at startup")

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    def require_api_key(self) -> str:
        """Return the API key or raise ConfigurationError."""
        if not self.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not set")
        return self.api_key


_ENV_FIELDS = {
    "ANTHROPIC_API_KEY": "api_key",
    "CLAUDE_MODEL": "model",
    "ANTHROPIC_BASE_URL": "base_url",
    "TABCHAT_MAX_TOKENS": "max_tokens",
    "TABCHAT_CONNECT_TIMEOUT": "connect_timeout",
    "TABCHAT_READ_TIMEOUT": "read_timeout",
    "TABCHAT_CHANNEL_CAPACITY": "channel_capacity",
    "TABCHAT_DATA_DIR": "data_dir",
    "TABCHAT_AUTOSAVE": "autosave",
    "TABCHAT_RESTORE_LIMIT": "restore_limit",
}


def load_settings(use_dotenv: bool = True, **overrides: Any) -> Settings:
    """Load settings from the environment.

    Args:
        use_dotenv: Read a .env file into the environment first
        **overrides: Explicit values that win over the environment (None is ignored)

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If a configured value is invalid
    """
    if use_dotenv:
        load_dotenv()

    values: dict[str, Any] = {}
    for env_name, field_name in _ENV_FIELDS.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip() != "":
            values[field_name] = raw.strip()

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
