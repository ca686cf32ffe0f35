"""Bottom panel showing the tail of the event log."""

from __future__ import annotations

from textual.widgets import Static

from ...event_log import EventLog
from ..utils import render_log_lines


class EventLogPanel(Static):
    DEFAULT_CSS = """
    EventLogPanel {
        border: round $secondary;
        padding: 0 1;
    }
    """

    def __init__(self, event_log: EventLog, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.event_log = event_log

    def on_mount(self) -> None:
        self.redraw()

    def redraw(self) -> None:
        log = self.event_log
        self.display = log.visible
        if not log.visible:
            return
        self.styles.height = log.panel_height + 2
        auto = " · auto-show" if log.auto_show else ""
        self.border_title = f"Log [{log.level_filter.value}]{auto}"
        self.update(render_log_lines(log.entries(), log.panel_height))
