"""In-app event log: a leveled ring buffer with debounced redraws.

Diagnostics reach the log through the standard logging module. The app
attaches an EventLogHandler to the "hud" logger, so any module logging via
logging.getLogger(__name__) shows up in the panel.
"""

import asyncio
import itertools
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .preferences import (
    MAX_PANEL_HEIGHT,
    MIN_PANEL_HEIGHT,
    LogFilter,
    Preferences,
)

logger = logging.getLogger(__name__)

# Custom logging levels: TRACE sits below DEBUG, EVENT between INFO and WARNING
TRACE = 5
EVENT = 25
logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(EVENT, "EVENT")

DEFAULT_CAPACITY = 100
REDRAW_DELAY = 0.1


class LogLevel(str, Enum):
    INFO = "info"
    EVENT = "event"
    DEBUG = "debug"
    TRACE = "trace"
    ERROR = "error"


# Minimum filter rank at which each level becomes visible
_LEVEL_RANK = {
    LogLevel.INFO: 0,
    LogLevel.EVENT: 0,
    LogLevel.ERROR: 0,
    LogLevel.DEBUG: 1,
    LogLevel.TRACE: 2,
}
_FILTER_RANK = {LogFilter.INFO: 0, LogFilter.DEBUG: 1, LogFilter.TRACE: 2}


def passes_filter(level: LogLevel, level_filter: LogFilter) -> bool:
    """True if an entry at level is shown under level_filter."""
    return _LEVEL_RANK[level] <= _FILTER_RANK[level_filter]


def level_for_record(levelno: int) -> LogLevel:
    """Map a stdlib logging level number onto an event log level."""
    if levelno >= logging.WARNING:
        return LogLevel.ERROR
    if levelno >= EVENT:
        return LogLevel.EVENT
    if levelno >= logging.INFO:
        return LogLevel.INFO
    if levelno >= logging.DEBUG:
        return LogLevel.DEBUG
    return LogLevel.TRACE


@dataclass(frozen=True)
class LogEntry:
    seq: int
    timestamp: datetime
    level: LogLevel
    text: str


def _schedule_on_loop(delay: float, callback: Callable[[], None]) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        callback()
        return
    loop.call_later(delay, callback)


class EventLog:
    """Append-only ring of log entries plus the panel's display settings.

    Args:
        capacity: Maximum entries kept; the oldest is evicted first.
        preferences: Initial panel settings (height, filter, auto-show).
        schedule: Callable(delay, callback) used to debounce redraws.
            Defaults to the running asyncio loop's call_later.
        clock: Returns the timestamp for new entries.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        preferences: Preferences | None = None,
        schedule: Callable[[float, Callable[[], None]], None] | None = None,
        clock: Callable[[], datetime] = datetime.now,
        redraw_delay: float = REDRAW_DELAY,
    ):
        prefs = preferences or Preferences()
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._seq = itertools.count()
        self._schedule = schedule or _schedule_on_loop
        self._clock = clock
        self._redraw_delay = redraw_delay
        self._redraw_pending = False

        self.level_filter = prefs.log_level
        self.panel_height = prefs.log_panel_height
        self.auto_show = prefs.auto_show_log
        self.visible = prefs.auto_show_log

        self.on_redraw: Callable[[], None] | None = None
        self.on_settings_changed: Callable[[Preferences], None] | None = None

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, text: str, level: LogLevel = LogLevel.INFO) -> LogEntry:
        """Record a message. Requests a redraw only if the entry would be shown."""
        entry = LogEntry(next(self._seq), self._clock(), level, text)
        self._entries.append(entry)
        if self.auto_show and level is LogLevel.ERROR and not self.visible:
            self.visible = True
        if self.visible and passes_filter(level, self.level_filter):
            self._request_redraw()
        return entry

    def entries(self, level_filter: LogFilter | None = None) -> list[LogEntry]:
        """Entries visible under level_filter (default: the current filter), oldest first."""
        active = level_filter or self.level_filter
        return [e for e in self._entries if passes_filter(e.level, active)]

    def all_entries(self) -> list[LogEntry]:
        return list(self._entries)

    # -- display settings -------------------------------------------------

    def toggle_visible(self) -> bool:
        self.visible = not self.visible
        self._request_redraw()
        return self.visible

    def cycle_level(self) -> LogFilter:
        """Advance the filter info -> debug -> trace -> info."""
        self.level_filter = self.level_filter.next()
        self._settings_changed()
        return self.level_filter

    def set_level(self, level_filter: LogFilter) -> None:
        if level_filter != self.level_filter:
            self.level_filter = level_filter
            self._settings_changed()

    def resize(self, delta: int) -> bool:
        """Grow or shrink the panel. Returns False when already at the bound."""
        height = max(MIN_PANEL_HEIGHT, min(MAX_PANEL_HEIGHT, self.panel_height + delta))
        if height == self.panel_height:
            return False
        self.panel_height = height
        self._settings_changed()
        return True

    def toggle_auto_show(self) -> bool:
        self.auto_show = not self.auto_show
        self._settings_changed()
        return self.auto_show

    def preferences(self) -> Preferences:
        return Preferences(
            log_panel_height=self.panel_height,
            auto_show_log=self.auto_show,
            log_level=self.level_filter,
        )

    # -- redraw debounce --------------------------------------------------

    def _settings_changed(self) -> None:
        if self.on_settings_changed is not None:
            self.on_settings_changed(self.preferences())
        self._request_redraw()

    def _request_redraw(self) -> None:
        if self._redraw_pending:
            return
        self._redraw_pending = True
        self._schedule(self._redraw_delay, self._flush)

    def _flush(self) -> None:
        self._redraw_pending = False
        if self.on_redraw is not None:
            self.on_redraw()


class EventLogHandler(logging.Handler):
    """logging.Handler that appends formatted records to an EventLog."""

    def __init__(self, event_log: EventLog, level: int = TRACE):
        super().__init__(level)
        self.event_log = event_log
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            text = self.format(record)
            self.event_log.append(text, level_for_record(record.levelno))
        except Exception:
            self.handleError(record)
