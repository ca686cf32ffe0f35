"""Modal screens: confirmation prompts and the key help."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Label, Static

HELP_TEXT = """\
Navigation
  ←↑↓→ / h j k l   move between cards and strips
  enter            open run / PR in browser, restart service

Workflows
  d                dismiss completed run
  D                dismiss all completed runs
  u                show the next older run
  c                cancel run

Pull requests
  m                merge PR

Services
  s                stop service
  e                recreate service

Log
  F9               show / hide log
  F10              cycle level (info → debug → trace)
  a                toggle auto-show on errors
  ctrl+k / ctrl+d  grow / shrink log

  r                refresh now
  q                quit
"""


class ConfirmModal(ModalScreen[bool]):
    """Yes/no prompt. Dismisses with True on confirm."""

    DEFAULT_CSS = """
    ConfirmModal {
        align: center middle;
    }
    ConfirmModal > Vertical {
        width: 60;
        height: auto;
        border: thick $warning;
        background: $surface;
        padding: 1 2;
    }
    ConfirmModal .hint {
        color: $text-muted;
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("y", "confirm", "Yes"),
        Binding("n", "cancel", "No"),
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, message: str, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.message = message

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Label(self.message)
            yield Label("y confirm · n / esc cancel", classes="hint")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class HelpModal(ModalScreen[None]):
    DEFAULT_CSS = """
    HelpModal {
        align: center middle;
    }
    HelpModal > Static {
        width: 64;
        height: auto;
        border: thick $primary;
        background: $surface;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("question_mark", "close", "Close"),
        Binding("q", "close", "Close"),
    ]

    def compose(self) -> ComposeResult:
        yield Static(HELP_TEXT)

    def action_close(self) -> None:
        self.dismiss(None)
