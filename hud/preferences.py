"""Persisted display preferences for the event log panel."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

PREFS_FILENAME = ".gh-hud-prefs.json"

MIN_PANEL_HEIGHT = 3
MAX_PANEL_HEIGHT = 15
DEFAULT_PANEL_HEIGHT = 5


class LogFilter(str, Enum):
    """Event log verbosity. Each step shows everything the previous one does."""

    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"

    def next(self) -> "LogFilter":
        members = list(LogFilter)
        return members[(members.index(self) + 1) % len(members)]


@dataclass(frozen=True)
class Preferences:
    log_panel_height: int = DEFAULT_PANEL_HEIGHT
    auto_show_log: bool = False
    log_level: LogFilter = LogFilter.INFO
    saved_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "logPanelHeight": self.log_panel_height,
            "autoShowLog": self.auto_show_log,
            "logLevel": self.log_level.value,
            "savedAt": self.saved_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Preferences":
        """Build preferences from a saved dict, ignoring invalid fields."""
        defaults = cls()

        height = data.get("logPanelHeight", defaults.log_panel_height)
        if isinstance(height, bool) or not isinstance(height, int):
            height = defaults.log_panel_height
        height = max(MIN_PANEL_HEIGHT, min(MAX_PANEL_HEIGHT, height))

        auto_show = data.get("autoShowLog", defaults.auto_show_log)
        if not isinstance(auto_show, bool):
            auto_show = defaults.auto_show_log

        try:
            level = LogFilter(data.get("logLevel", defaults.log_level.value))
        except ValueError:
            level = defaults.log_level

        saved_at = data.get("savedAt")
        return cls(
            log_panel_height=height,
            auto_show_log=auto_show,
            log_level=level,
            saved_at=saved_at if isinstance(saved_at, str) else None,
        )


def default_prefs_path() -> Path:
    return Path.home() / PREFS_FILENAME


class PreferencesStore:
    """Loads and saves Preferences as JSON. Never raises on I/O problems."""

    def __init__(self, path: Path | None = None):
        self.path = path or default_prefs_path()

    def load(self) -> Preferences:
        """Read preferences, falling back to defaults if absent or corrupt."""
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return Preferences()
        except OSError as e:
            logger.error("Could not read preferences from %s: %s", self.path, e)
            return Preferences()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Ignoring corrupt preferences file %s: %s", self.path, e)
            return Preferences()
        if not isinstance(data, dict):
            logger.error("Ignoring preferences file %s: expected a JSON object", self.path)
            return Preferences()
        return Preferences.from_dict(data)

    def save(self, prefs: Preferences) -> bool:
        """Write preferences with a fresh savedAt stamp. Returns False on failure."""
        data = prefs.to_dict()
        data["savedAt"] = datetime.now(timezone.utc).isoformat()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2) + "\n")
        except OSError as e:
            logger.error("Could not save preferences to %s: %s", self.path, e)
            return False
        logger.debug("Saved preferences to %s", self.path)
        return True
