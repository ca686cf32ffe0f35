"""Single-line strips for container services and pull requests."""

from __future__ import annotations

from textual.widgets import Static

from ...models import ContainerService, ContainerServiceStatus, PullRequest
from ..utils import render_pr_strip, render_service_strip


class StripBar(Static):
    """Bordered one-line strip."""

    DEFAULT_CSS = """
    StripBar {
        height: 3;
        border: round $primary-darken-3;
        padding: 0 1;
    }
    StripBar.-active {
        border: round $accent;
    }
    """


class ServiceStrip(StripBar):
    def on_mount(self) -> None:
        self.border_title = "Services"

    def show_services(
        self,
        services: list[tuple[ContainerServiceStatus, ContainerService]],
        errors: list[ContainerServiceStatus],
        selected: int | None,
    ) -> None:
        self.set_class(selected is not None, "-active")
        self.update(render_service_strip(services, errors, selected, width=max(20, self.size.width - 4)))


class PullRequestStrip(StripBar):
    def on_mount(self) -> None:
        self.border_title = "Pull requests"

    def show_pull_requests(self, prs: list[PullRequest], selected: int | None) -> None:
        self.set_class(selected is not None, "-active")
        self.update(render_pr_strip(prs, selected, width=max(20, self.size.width - 4)))
