"""Journey map settings.

Explicit values win over environment variables, which win over defaults.

Environment variables:
    JOURNEY_MAP_BASE_PATH     directory holding map.yml
    JOURNEY_MAP_INQUIRY_PATH  path of the diagnostic endpoint (default /journey-map)
    JOURNEY_MAP_LOG_LEVEL     logging level name for the CLI (default WARNING)

Usage:
    from journey_map.config.settings import load_settings

    settings = load_settings(base_path="app/journey")
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_INQUIRY_PATH = "/journey-map"

_ENV_VARS = {
    "base_path": "JOURNEY_MAP_BASE_PATH",
    "inquiry_path": "JOURNEY_MAP_INQUIRY_PATH",
    "log_level": "JOURNEY_MAP_LOG_LEVEL",
}


class JourneySettings(BaseModel):
    """Resolved journey map settings."""

    base_path: Optional[Path] = Field(None, description="Directory holding map.yml")
    inquiry_path: str = Field(DEFAULT_INQUIRY_PATH, description="Diagnostic endpoint path")
    log_level: str = Field("WARNING", description="Logging level name")

    @field_validator("inquiry_path")
    @classmethod
    def _inquiry_path_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("inquiry_path must start with '/'")
        return value

    @field_validator("log_level")
    @classmethod
    def _log_level_is_known(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level


def load_settings(**overrides: Any) -> JourneySettings:
    """Build settings from overrides and the environment.

    Overrides set to None are ignored, so callers can pass optional
    arguments straight through.

    Raises:
        pydantic.ValidationError: If a value is invalid.
    """
    values: Dict[str, Any] = {}
    for name, env_var in _ENV_VARS.items():
        env_value = os.environ.get(env_var)
        if env_value:
            values[name] = env_value
    for name, value in overrides.items():
        if value is not None:
            values[name] = value
    settings = JourneySettings(**values)
    logger.debug("Journey settings: %s", settings.model_dump())
    return settings
