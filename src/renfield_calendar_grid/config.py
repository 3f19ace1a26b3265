"""YAML configuration loading for display settings and calendar accounts."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any

import yaml
from dateutil import tz

from .errors import ConfigError

logger = logging.getLogger("renfield-calendar-grid")

CONFIG_PATH = os.environ.get("CALENDAR_CONFIG", "/config/calendar_grid.yaml")

APP_TIMEZONE = "America/New_York"

VALID_TYPES = {"google", "caldav", "ews"}
VALID_TIME_FORMATS = {"12h", "24h"}
VALID_WEEK_STARTS = {"Sunday", "Monday"}


@dataclass(frozen=True)
class DisplayConfig:
    """How events are normalized and laid out."""

    timezone: str = APP_TIMEZONE
    time_format: str = "12h"  # 12h | 24h
    max_visible_per_day: int = 3
    week_starts_on: str = "Sunday"  # Sunday | Monday
    cache_size_limit: int = 1000
    min_event_minutes: int = 20


@dataclass
class CalendarAccount:
    """A single calendar account configuration."""

    name: str
    label: str
    type: str  # google, caldav, ews
    config: dict[str, Any] = field(default_factory=dict)


@dataclass
class AppConfig:
    display: DisplayConfig = field(default_factory=DisplayConfig)
    accounts: dict[str, CalendarAccount] = field(default_factory=dict)


def _positive_int(section: dict[str, Any], key: str, default: int) -> int:
    raw = section.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"display.{key}: expected an integer, got '{raw}'") from None
    if value < 1:
        raise ConfigError(f"display.{key}: must be >= 1, got {value}")
    return value


def parse_display(raw: dict[str, Any] | None) -> DisplayConfig:
    """Validate the ``display`` section. Missing keys fall back to defaults."""
    section = raw or {}
    defaults = DisplayConfig()

    timezone = str(section.get("timezone", defaults.timezone)).strip()
    if tz.gettz(timezone) is None:
        raise ConfigError(f"display.timezone: unknown timezone '{timezone}'")

    time_format = str(section.get("time_format", defaults.time_format)).strip().lower()
    if time_format not in VALID_TIME_FORMATS:
        raise ConfigError(
            f"display.time_format: invalid value '{time_format}'. Must be one of: {VALID_TIME_FORMATS}"
        )

    week_starts_on = str(section.get("week_starts_on", defaults.week_starts_on)).strip().capitalize()
    if week_starts_on not in VALID_WEEK_STARTS:
        raise ConfigError(
            f"display.week_starts_on: invalid value '{week_starts_on}'. Must be one of: {VALID_WEEK_STARTS}"
        )

    return DisplayConfig(
        timezone=timezone,
        time_format=time_format,
        max_visible_per_day=_positive_int(section, "max_visible_per_day", defaults.max_visible_per_day),
        week_starts_on=week_starts_on,
        cache_size_limit=_positive_int(section, "cache_size_limit", defaults.cache_size_limit),
        min_event_minutes=_positive_int(section, "min_event_minutes", defaults.min_event_minutes),
    )


def _require_env_keys(name: str, cal_type: str, config: dict[str, Any]) -> None:
    if "username_env" not in config or "password_env" not in config:
        raise ConfigError(f"Calendar '{name}' ({cal_type}): 'username_env' and 'password_env' are required")
    for env_key in ("username_env", "password_env"):
        env_var = config[env_key]
        if not os.environ.get(env_var):
            logger.warning("Calendar '%s': env var '%s' not set", name, env_var)


def parse_accounts(entries: list[dict[str, Any]] | None) -> dict[str, CalendarAccount]:
    """Validate the ``calendars`` list. Returns dict of name -> CalendarAccount."""
    accounts: dict[str, CalendarAccount] = {}

    for entry in entries or []:
        name = str(entry.get("name", "")).strip()
        if not name:
            raise ConfigError("Calendar missing 'name' field")
        if name in accounts:
            raise ConfigError(f"Duplicate calendar name: '{name}'")

        cal_type = str(entry.get("type", "")).strip().lower()
        if cal_type not in VALID_TYPES:
            raise ConfigError(f"Calendar '{name}': unknown type '{cal_type}'. Must be one of: {VALID_TYPES}")

        label = entry.get("label", name)

        # Everything except metadata fields is backend config
        config = {k: v for k, v in entry.items() if k not in ("name", "label", "type")}

        if cal_type == "google":
            if "calendar_id" not in config:
                raise ConfigError(f"Calendar '{name}' (google): 'calendar_id' is required")
            if "api_key_env" not in config and "token_file" not in config:
                raise ConfigError(f"Calendar '{name}' (google): 'api_key_env' or 'token_file' is required")
            if "api_key_env" in config and not os.environ.get(config["api_key_env"]):
                logger.warning("Calendar '%s': env var '%s' not set", name, config["api_key_env"])

        elif cal_type == "caldav":
            if "url" not in config:
                raise ConfigError(f"Calendar '{name}' (caldav): 'url' is required")
            _require_env_keys(name, cal_type, config)

        elif cal_type == "ews":
            if "ews_url" not in config:
                raise ConfigError(f"Calendar '{name}' (ews): 'ews_url' is required")
            _require_env_keys(name, cal_type, config)

        accounts[name] = CalendarAccount(name=name, label=label, type=cal_type, config=config)

    return accounts


def load_config() -> AppConfig:
    """Load and validate the calendar grid YAML file."""
    path = CONFIG_PATH
    if not os.path.isfile(path):
        logger.warning("Config file not found: %s", path)
        return AppConfig()

    with open(path, "r") as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not raw:
        logger.warning("Config file is empty: %s", path)
        return AppConfig()
    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")

    if "calendars" not in raw:
        logger.warning("No 'calendars' key in config file")

    return AppConfig(
        display=parse_display(raw.get("display")),
        accounts=parse_accounts(raw.get("calendars")),
    )
