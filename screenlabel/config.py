"""AI settings and how they are loaded.

Resolution order per field: explicit settings file value > environment
variable > default. Invalid values in the settings file fall back to the
default for that field instead of rejecting the whole file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from screenlabel.consts import (
    DEFAULT_CLOUD_MODEL,
    DEFAULT_DATA_DIR,
    DEFAULT_LOCAL_BASE_URL,
    DEFAULT_LOCAL_MODEL,
    ENV_API_KEY,
    ENV_CLOUD_MODEL,
    ENV_LOCAL_BASE_URL,
    ENV_LOCAL_MODEL,
)

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"


class AiSettings(BaseModel):
    """User-facing AI settings."""

    llm_enabled: bool = True
    allow_vision_uploads: bool = True
    cloud_llm_model: str = Field(default=DEFAULT_CLOUD_MODEL, max_length=500)
    local_llm_enabled: bool = False
    local_llm_base_url: str = Field(default=DEFAULT_LOCAL_BASE_URL, max_length=2000)
    local_llm_model: str = Field(default=DEFAULT_LOCAL_MODEL, max_length=500)
    api_key: str | None = None


_ENV_OVERRIDES: dict[str, str] = {
    "api_key": ENV_API_KEY,
    "cloud_llm_model": ENV_CLOUD_MODEL,
    "local_llm_base_url": ENV_LOCAL_BASE_URL,
    "local_llm_model": ENV_LOCAL_MODEL,
}


def _valid_fields(raw: dict[str, Any]) -> dict[str, Any]:
    """Keep only the fields of raw that validate on their own."""
    valid: dict[str, Any] = {}
    for name, value in raw.items():
        if name not in AiSettings.model_fields:
            logger.debug(f"Ignoring unknown setting: {name}")
            continue
        try:
            AiSettings.model_validate({name: value})
        except ValidationError:
            logger.warning(f"Invalid value for setting {name}, using default")
            continue
        valid[name] = value
    return valid


def load_settings(path: Path | str | None = None) -> AiSettings:
    """Load settings from a JSON file, environment variables and defaults.

    Args:
        path: Settings file. Defaults to data/settings.json. A missing file
            yields defaults.

    Returns:
        The resolved settings.
    """
    settings_path = Path(path) if path is not None else DEFAULT_DATA_DIR / SETTINGS_FILE

    values: dict[str, Any] = {}
    for field_name, env_name in _ENV_OVERRIDES.items():
        env_value = os.getenv(env_name, "").strip()
        if env_value:
            values[field_name] = env_value

    if settings_path.exists():
        with open(settings_path) as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise ValueError(f"{settings_path} must contain a JSON object")
        values.update(_valid_fields(raw))
    else:
        logger.debug(f"No settings file at {settings_path}, using defaults")

    return AiSettings.model_validate(values)
