"""Configuration loading for tapeback.

Settings live in ``.tapeback.json`` at the repository root. A missing or
malformed file never blocks a command: anything that cannot be used falls
back to its default.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".tapeback.json"

DEFAULT_REC_TAG = "[REC]"
DEFAULT_BASE_REF = "main"
DEFAULT_IGNORE = ["*.env", "*.log", CONFIG_FILENAME]


class TapebackConfig(BaseModel):
    """Per-invocation settings, passed explicitly to every component."""

    rec_tag: str = Field(DEFAULT_REC_TAG, alias="recTag")
    base_ref: str = Field(DEFAULT_BASE_REF, alias="squashBaseRef")
    message_style: str = Field("deterministic", alias="messageStyle")
    ai_timeout_ms: int = Field(5000, alias="aiTimeoutMs", gt=0)
    session_tag: bool = Field(True, alias="sessionTag")
    ignore: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE))

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("rec_tag", "base_ref")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("message_style")
    @classmethod
    def _known_style(cls, value: str) -> str:
        if value not in ("deterministic", "ai"):
            raise ValueError(f"unknown message style {value!r}")
        return value

    def to_file_dict(self) -> Dict[str, Any]:
        """Serialize using the camelCase keys of the config file."""
        return self.model_dump(by_alias=True)


def parse_config(data: Any) -> TapebackConfig:
    """Build a config from decoded JSON, dropping any invalid fields."""
    if not isinstance(data, dict):
        logger.warning("Ignoring config: expected a JSON object, got %s", type(data).__name__)
        return TapebackConfig()

    fields = dict(data)
    while True:
        try:
            return TapebackConfig.model_validate(fields)
        except ValidationError as e:
            bad_keys = {err["loc"][0] for err in e.errors() if err["loc"]}
            bad_keys &= set(fields)
            if not bad_keys:
                return TapebackConfig()
            for key in bad_keys:
                logger.warning("Ignoring invalid config value for %r: %r", key, fields[key])
                del fields[key]


def load_config(project_root: Path) -> TapebackConfig:
    """Read ``.tapeback.json`` from ``project_root``; never raises."""
    config_file = Path(project_root) / CONFIG_FILENAME
    if not config_file.exists():
        return TapebackConfig()

    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Could not read %s, using defaults: %s", config_file, e)
        return TapebackConfig()

    return parse_config(data)
