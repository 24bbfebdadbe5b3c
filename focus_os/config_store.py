#!/usr/bin/env python3
"""
Focus Time OS: Configuration Store

Persistent configuration with every tunable used by the core:
- Timezone for calendar dates and streaks
- Timer defaults (tick interval, default method)
- Blocking defaults and reminder cadence per level
- Free-slot search window, minimum duration and suggestion tiers
- Stats window
"""

import copy
import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from focus_os import paths

logger = logging.getLogger(__name__)

CONFIG_NAME = "config.json"
HISTORY_NAME = "config_history.json"
MAX_HISTORY = 500

BLOCKING_LEVELS = ("standard", "strict", "screen_time")


def _default_config() -> dict:
    """Defaults. Values mirror the mobile app's shipped behaviour."""
    return {
        "version": 1,
        "timezone": "local",
        # ===== Timer =====
        "timer": {
            "tick_interval_seconds": 1.0,
            "default_method": "pomodoro",
        },
        # ===== Blocking =====
        "blocking": {
            "enabled": True,
            "level": "standard",
            "reminder_interval_seconds": {
                "standard": 30,
                "strict": 15,
                "screen_time": 30,
            },
        },
        # ===== Free slots =====
        "calendar": {
            "min_duration_minutes": 25,
            "earliest_time": "08:00",
            "latest_time": "22:00",
            "preferred_durations": [25, 45, 90],
            "max_suggestions": 3,
            "suggestion_tiers": [
                {"min_minutes": 90, "method": "deepwork"},
                {"min_minutes": 45, "method": "focus"},
                {"min_minutes": 25, "method": "pomodoro"},
            ],
        },
        # ===== Stats =====
        "stats": {
            "weekly_window_days": 7,
        },
        # ===== Logging =====
        "logging": {
            "level": "INFO",
            "json": None,
            "file": None,
        },
    }


class ConfigStore:
    """
    JSON-backed configuration with dot-path access and change history.

    Args:
        path: Config file. Defaults to <config_dir>/config.json.
        persist: When False nothing touches disk (tests, one-off runs).
    """

    def __init__(self, path: str | Path | None = None, persist: bool = True):
        self.persist = persist
        self.path = Path(path) if path else paths.config_dir() / CONFIG_NAME
        self.history_path = self.path.parent / HISTORY_NAME
        self._config = self._load()

    def _load(self) -> dict:
        if not self.persist:
            return _default_config()

        if self.path.exists():
            try:
                stored = json.loads(self.path.read_text())
                return _merge(_default_config(), stored)
            except json.JSONDecodeError as e:
                logger.warning(f"Config file {self.path} unreadable, using defaults: {e}")
                return _default_config()

        config = _default_config()
        self._save(config, "Initial config creation")
        return config

    def _save(self, config: dict, reason: str | None = None) -> None:
        config["updated_at"] = datetime.now(UTC).isoformat()
        if not self.persist:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._log_change(config, reason)
        self.path.write_text(json.dumps(config, indent=2))

    def all(self) -> dict:
        return copy.deepcopy(self._config)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-separated path.

        Example: get("blocking.reminder_interval_seconds.strict")
        """
        value = self._config
        for part in path.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return copy.deepcopy(value)

    def set(self, path: str, value: Any, reason: str | None = None) -> dict:
        """
        Set a config value by dot-separated path.

        Example: set("blocking.level", "strict")
        """
        parts = path.split(".")
        current = self._config
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[parts[-1]] = value

        self._save(self._config, reason or f"Set {path}")
        return self.all()

    def validate(self) -> tuple[bool, list[str]]:
        """Validate configuration structure and values."""
        errors = []

        for key in ("timer", "blocking", "calendar", "stats"):
            if key not in self._config:
                errors.append(f"Missing required key: {key}")

        tick = self.get("timer.tick_interval_seconds")
        if not isinstance(tick, int | float) or tick <= 0 or tick > 1:
            errors.append(f"timer.tick_interval_seconds must be in (0, 1], got {tick}")

        level = self.get("blocking.level")
        if level not in BLOCKING_LEVELS:
            errors.append(f"Unknown blocking level: {level}")

        for name, seconds in self.get("blocking.reminder_interval_seconds", {}).items():
            if not isinstance(seconds, int | float) or seconds <= 0:
                errors.append(f"Reminder interval for {name} must be positive")

        min_minutes = self.get("calendar.min_duration_minutes")
        if not isinstance(min_minutes, int | float) or min_minutes <= 0:
            errors.append("calendar.min_duration_minutes must be positive")

        days = self.get("stats.weekly_window_days")
        if not isinstance(days, int) or days <= 0:
            errors.append("stats.weekly_window_days must be a positive integer")

        return len(errors) == 0, errors

    def _log_change(self, config: dict, reason: str | None = None) -> None:
        """Append to the change history for audit."""
        history = []
        if self.history_path.exists():
            try:
                history = json.loads(self.history_path.read_text())
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Could not load config history: {e}")
                history = []

        history.append(
            {
                "timestamp": datetime.now(UTC).isoformat(),
                "reason": reason,
                "config_hash": hash(json.dumps(config, sort_keys=True)),
            }
        )
        history = history[-MAX_HISTORY:]
        self.history_path.write_text(json.dumps(history, indent=2))


def _merge(base: dict, override: dict) -> dict:
    """Recursive merge so new default keys appear in old config files."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
