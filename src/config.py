"""Unified configuration loaded from .mindful.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".mindful.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
    Path.home() / ".config" / "mindful",
]

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class AnalysisSectionConfig(BaseModel):
    """[analysis] section."""

    model: str | None = None
    timeout: float = 30.0
    min_words_for_analysis: int = 10
    theme_context_entries: int = 4


class CalendarSectionConfig(BaseModel):
    """[calendar] section: how instants map onto days and weeks."""

    timezone: str = "UTC"
    first_weekday: str = "sunday"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown time zone: {value}") from exc
        return value

    @field_validator("first_weekday")
    @classmethod
    def _known_weekday(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in WEEKDAYS:
            raise ValueError(f"first_weekday must be one of {', '.join(WEEKDAYS)}")
        return value

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def first_weekday_index(self) -> int:
        """Weekday index in ``date.weekday()`` numbering (Monday is 0)."""
        return WEEKDAYS.index(self.first_weekday)


class StorageSectionConfig(BaseModel):
    """[storage] section."""

    path: str = "~/.local/share/mindful/journal.json"


class UserSectionConfig(BaseModel):
    """[user] section: the local identity the CLI acts as."""

    id: str = "local"


class MindfulConfig(BaseModel):
    """Top-level configuration model."""

    analysis: AnalysisSectionConfig = Field(default_factory=AnalysisSectionConfig)
    calendar: CalendarSectionConfig = Field(default_factory=CalendarSectionConfig)
    storage: StorageSectionConfig = Field(default_factory=StorageSectionConfig)
    user: UserSectionConfig = Field(default_factory=UserSectionConfig)

    @property
    def store_path(self) -> Path:
        return Path(self.storage.path).expanduser()


def load_config(path: str | Path | None = None) -> MindfulConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .mindful.toml in CWD
    3. ~/.config/mindful/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged MindfulConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        global_config = Path.home() / ".config" / "mindful" / "config.toml"
        if not data and global_config.exists():
            data = _load_toml(global_config)
            logger.info("Loaded config from %s", global_config)

    config = MindfulConfig.model_validate(data) if data else MindfulConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: MindfulConfig, **cli_kwargs: object) -> MindfulConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "model": ("analysis", "model"),
        "timeout": ("analysis", "timeout"),
        "timezone": ("calendar", "timezone"),
        "first_weekday": ("calendar", "first_weekday"),
        "store_path": ("storage", "path"),
        "user_id": ("user", "id"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = value

    return MindfulConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: MindfulConfig) -> MindfulConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "MINDFUL_MODEL": ("analysis", "model"),
        "MINDFUL_TIMEZONE": ("calendar", "timezone"),
        "MINDFUL_FIRST_WEEKDAY": ("calendar", "first_weekday"),
        "MINDFUL_STORE_PATH": ("storage", "path"),
        "MINDFUL_USER_ID": ("user", "id"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    timeout_raw = os.environ.get("MINDFUL_PROVIDER_TIMEOUT")
    if timeout_raw is not None:
        data["analysis"]["timeout"] = float(timeout_raw)

    return MindfulConfig.model_validate(data)
