"""Runtime settings read from the environment (and a `.env` file, if present)."""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

DEFAULT_VISION_MODEL = "google/gemini-2.0-flash-001"

# Environment variable -> Settings field
ENV_VARS = {
    "NOTION_TOKEN": "notion_token",
    "NOTION_DATABASE_ID": "notion_database_id",
    "OPENROUTER_API_KEY": "openrouter_api_key",
    "PARSELY_VISION_MODEL": "vision_model",
    "PARSELY_BATCH_SIZE": "batch_size",
    "PARSELY_BATCH_DELAY": "batch_delay",
    "PARSELY_FETCH_TIMEOUT": "fetch_timeout",
    "PARSELY_RENDER_TIMEOUT": "render_timeout",
    "PARSELY_RETRY_ATTEMPTS": "retry_attempts",
    "PARSELY_RETRY_BASE_DELAY": "retry_base_delay",
}


class Settings(BaseModel):
    notion_token: Optional[str] = None
    notion_database_id: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    vision_model: str = DEFAULT_VISION_MODEL
    batch_size: int = Field(default=5, ge=1)
    batch_delay: float = Field(default=1.0, ge=0)
    fetch_timeout: float = Field(default=30.0, gt=0)
    render_timeout: float = Field(default=10.0, gt=0)
    retry_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        When no mapping is given, `.env` is loaded first and `os.environ` is read.
        Empty values count as unset.

        Raises:
            ConfigError: If a value cannot be converted or is out of range
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        values = {
            field: environ[name].strip()
            for name, field in ENV_VARS.items()
            if environ.get(name, "").strip()
        }
        try:
            return cls(**values)
        except ValidationError as e:
            fields = [".".join(str(part) for part in error["loc"]) for error in e.errors()]
            raise ConfigError(
                f"Invalid settings: {', '.join(fields)}",
                details={"errors": e.errors()},
            ) from e

    def require_store(self) -> None:
        """Check that the Notion credentials are present."""
        missing = [
            name for name, field in ENV_VARS.items()
            if field in ("notion_token", "notion_database_id") and not getattr(self, field)
        ]
        if missing:
            raise ConfigError(
                f"Missing store settings: {', '.join(missing)}",
                details={"missing": missing},
            )
