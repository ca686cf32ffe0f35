"""One-line status bar: refresh state, counts and key hints."""

from __future__ import annotations

from collections.abc import Callable

from rich.text import Text
from textual.widgets import Static

from ...refresh import Snapshot
from ..utils import SPINNER_FRAMES

HINTS = "r refresh · d dismiss · u older · F9 log · ? help · q quit"


class StatusBar(Static):
    """Shows when data was last refreshed; spins while a cycle is in flight."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        background: $panel;
        padding: 0 1;
    }
    """

    def __init__(self, is_refreshing: Callable[[], bool] = lambda: False, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self._is_refreshing = is_refreshing
        self._was_refreshing = False
        self._snapshot = Snapshot()
        self._spinner_index = 0
        self._repo_count = 0

    def on_mount(self) -> None:
        self._render_status()
        self.set_interval(0.1, self._tick_spinner)

    def show_snapshot(self, snapshot: Snapshot, repo_count: int) -> None:
        self._snapshot = snapshot
        self._repo_count = repo_count
        self._render_status()

    def _tick_spinner(self) -> None:
        refreshing = self._is_refreshing()
        if not refreshing and not self._was_refreshing:
            return
        self._was_refreshing = refreshing
        self._spinner_index = (self._spinner_index + 1) % len(SPINNER_FRAMES)
        self._render_status()

    def _render_status(self) -> None:
        snapshot = self._snapshot
        text = Text()
        if self._was_refreshing:
            text.append(f"{SPINNER_FRAMES[self._spinner_index]} refreshing  ", style="yellow")
        if snapshot.refreshed_at is not None:
            stamp = snapshot.refreshed_at.astimezone().strftime("%H:%M:%S")
            text.append(f"Last refresh {stamp}", style="bright_black")
        else:
            text.append("Waiting for first refresh", style="bright_black")
        active = sum(1 for run in snapshot.runs if not run.is_completed)
        text.append(f"  {self._repo_count} repos · {active} active · {len(snapshot.pending_ids)} done  ")
        text.append(HINTS, style="bright_black")
        self.update(text)
