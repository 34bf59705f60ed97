"""
config.py - Environment Configuration for the CLI

The engines take explicit parameters; only the command line layer reads
these settings, and its flags override them.

    TEXTMARK_CHUNK_SIZE      words per chunk             (default 5)
    TEXTMARK_THRESHOLD       flag scores above this      (default 0.1)
    TEXTMARK_EVIDENCE_LIMIT  shared chunks per match     (default 5)
    TEXTMARK_WORKERS         scoring threads             (default 1)
    TEXTMARK_LOG_LEVEL       logging level name          (default WARNING)
    TEXTMARK_REGISTRY        marker registry JSON path   (default unset)

Dependencies: pydantic_settings
"""

from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "TEXTMARK_"


class Settings(BaseSettings):
    """Settings read from TEXTMARK_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    chunk_size: int = Field(default=5, ge=1, description="Words per chunk")
    threshold: float = Field(default=0.1, ge=0.0, le=1.0, description="Flag scores above this")
    evidence_limit: int = Field(default=5, ge=0, description="Shared chunks kept per match")
    workers: int = Field(default=1, ge=1, description="Scoring threads")
    log_level: str = Field(default="WARNING", description="Logging level name")
    registry: Optional[str] = Field(default=None, description="Marker registry JSON path")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()


def describe_errors(exc: ValidationError) -> List[str]:
    """Render validation errors against the environment variable names."""
    messages = []
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "?"
        messages.append(f"{ENV_PREFIX}{field.upper()}: {error['msg']} (got {error.get('input')!r})")
    return messages
