"""gh-hud dashboard: the Textual TUI app.

Launch with: gh-hud owner/repo [owner/repo ...]
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.css.query import NoMatches
from textual.screen import ModalScreen
from textual.widgets import Static

from ..navigation import Direction, Region
from ..refresh import RefreshTrigger, Snapshot
from ..state import DashboardState
from .widgets.event_log_panel import EventLogPanel
from .widgets.modals import ConfirmModal, HelpModal
from .widgets.status_bar import StatusBar
from .widgets.strips import PullRequestStrip, ServiceStrip
from .widgets.workflow_grid import WorkflowGrid

logger = logging.getLogger(__name__)


def render_error(snapshot: Snapshot) -> Text:
    """Full-screen message shown in place of the grid."""
    text = Text()
    title = "Rate limited" if snapshot.error_kind == "rate_limit" else "Could not load workflows"
    text.append(f"⚠ {title}\n\n", style="bold red")
    text.append(f"{snapshot.error}\n\n")
    text.append("Press r to retry or q to quit.", style="bright_black")
    return text


class HudApp(App):
    """Live dashboard of workflow runs, pull requests and compose services.

    All state lives in the DashboardState passed in; the app only renders it
    and turns key presses into commands.
    """

    TITLE = "gh-hud"

    CSS = """
    Screen {
        layout: vertical;
    }
    #error {
        height: 1fr;
        content-align: center middle;
        border: heavy $error;
        display: none;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("up,k", "move('up')", "Up", show=False),
        Binding("down,j", "move('down')", "Down", show=False),
        Binding("left,h", "move('left')", "Left", show=False),
        Binding("right,l", "move('right')", "Right", show=False),
        Binding("enter", "activate", "Open", show=False),
        Binding("d", "dismiss_run", "Dismiss", show=False),
        Binding("D", "dismiss_all", "Dismiss all", show=False),
        Binding("u", "resurrect", "Older run", show=False),
        Binding("c", "cancel_run", "Cancel run", show=False),
        Binding("m", "merge_pull_request", "Merge PR", show=False),
        Binding("s", "stop_service", "Stop service", show=False),
        Binding("e", "recreate_service", "Recreate service", show=False),
        Binding("f9", "toggle_log", "Log", show=False),
        Binding("f10", "cycle_log_level", "Log level", show=False),
        Binding("a", "toggle_auto_show", "Auto-show log", show=False),
        Binding("ctrl+k", "resize_log(1)", "Grow log", show=False),
        Binding("ctrl+d", "resize_log(-1)", "Shrink log", show=False),
        Binding("question_mark", "help", "Help", show=False),
    ]

    def __init__(self, state: DashboardState, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.state = state

    def compose(self) -> ComposeResult:
        yield ServiceStrip(id="services")
        yield PullRequestStrip(id="pull-requests")
        yield Static(id="error")
        yield WorkflowGrid(id="workflows")
        yield EventLogPanel(self.state.event_log, id="event-log")
        yield StatusBar(is_refreshing=lambda: self.state.coordinator.in_flight, id="status")

    def on_mount(self) -> None:
        state = self.state
        state.attach_logging()
        state.coordinator.on_snapshot = self._apply_snapshot
        state.coordinator.is_modal_open = self._modal_open
        state.event_log.on_redraw = self._redraw_log

        self.query_one(ServiceStrip).display = state.config.show_docker
        self.query_one(PullRequestStrip).display = state.config.show_pull_requests
        self._install_signal_handlers()

        logger.info("Watching %d repositories", len(state.config.repositories))
        self._refresh(RefreshTrigger.MANUAL)
        self.set_interval(state.config.refresh_interval, self._auto_refresh)

    def _install_signal_handlers(self) -> None:
        try:
            asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, self._terminate)
        except (NotImplementedError, RuntimeError):
            logger.debug("SIGTERM handler not available on this platform")

    def _terminate(self) -> None:
        logger.info("Received SIGTERM, shutting down")
        self.state.shutdown()
        self.exit()

    def _modal_open(self) -> bool:
        return isinstance(self.screen, ModalScreen)

    # -- refresh ------------------------------------------------------------

    def _auto_refresh(self) -> None:
        self._refresh(RefreshTrigger.AUTOMATIC)

    @work(group="refresh", exit_on_error=False)
    async def _refresh(self, trigger: RefreshTrigger, force: bool = False) -> None:
        await self.state.coordinator.refresh(trigger, force=force)

    async def _apply_snapshot(self, snapshot: Snapshot) -> None:
        """Relayout for a new snapshot. Key presses arriving meanwhile are replayed after."""
        with self.state.input_queue.mutating():
            self.state.apply_snapshot(snapshot)
            await self._render_snapshot(snapshot)

    async def _render_snapshot(self, snapshot: Snapshot) -> None:
        error_panel = self.query_one("#error", Static)
        grid = self.query_one(WorkflowGrid)
        if snapshot.error:
            error_panel.update(render_error(snapshot))
            error_panel.display = True
            grid.display = False
        else:
            error_panel.display = False
            grid.display = True
            await grid.show_runs(
                snapshot.runs,
                snapshot.jobs,
                snapshot.pending_ids,
                snapshot.resurrected_ids,
                self.state.navigation.layout,
            )
        self.query_one(ServiceStrip).display = snapshot.services is not None
        self.query_one(PullRequestStrip).display = snapshot.pull_requests is not None
        self._render_selection()
        self.query_one(StatusBar).show_snapshot(snapshot, len(self.state.config.repositories))

    def _render_selection(self) -> None:
        snapshot = self.state.snapshot
        selection = self.state.navigation.selection
        region = selection.region

        self.query_one(WorkflowGrid).highlight(
            selection.workflows if region is Region.WORKFLOWS else None
        )
        if snapshot.services is not None:
            self.query_one(ServiceStrip).show_services(
                snapshot.flat_services,
                [status for status in snapshot.services if status.error],
                selection.container_services if region is Region.CONTAINER_SERVICES else None,
            )
        if snapshot.pull_requests is not None:
            self.query_one(PullRequestStrip).show_pull_requests(
                list(snapshot.pull_requests),
                selection.pull_requests if region is Region.PULL_REQUESTS else None,
            )

    def _redraw_log(self) -> None:
        try:
            self.query_one(EventLogPanel).redraw()
        except NoMatches:
            pass

    # -- key handling ---------------------------------------------------------

    def _submit(self, handler: Callable[[], None]) -> None:
        self.state.input_queue.submit(handler)

    def action_move(self, direction: str) -> None:
        self._submit(lambda: self._move(Direction(direction)))

    def _move(self, direction: Direction) -> None:
        if self.state.navigation.move(direction):
            self._render_selection()

    def action_refresh(self) -> None:
        self._refresh(RefreshTrigger.MANUAL, force=True)

    def action_activate(self) -> None:
        self._submit(self._activate)

    def _activate(self) -> None:
        region = self.state.navigation.region
        if region is Region.WORKFLOWS:
            run = self.state.selected_run()
            if run is not None:
                self._run_action("open_url", {"url": run.url})
        elif region is Region.PULL_REQUESTS:
            pr = self.state.selected_pull_request()
            if pr is not None:
                self._run_action("open_url", {"url": pr.url})
        else:
            selected = self.state.selected_service()
            if selected is not None:
                status, service = selected
                self._run_action(
                    "restart_service", {"compose_file": status.compose_file, "service": service.name}
                )

    def action_dismiss_run(self) -> None:
        self._submit(self._dismiss_selected)

    def _dismiss_selected(self) -> None:
        run = self.state.selected_run()
        if run is not None:
            self._dismiss(run.id)

    @work(group="lifecycle", exit_on_error=False)
    async def _dismiss(self, run_id: int) -> None:
        if not await self.state.coordinator.dismiss(run_id):
            self.notify("Only completed runs can be dismissed", timeout=3)

    @work(group="lifecycle", exit_on_error=False)
    async def action_dismiss_all(self) -> None:
        dismissed = await self.state.coordinator.dismiss_all()
        if not dismissed:
            self.notify("No completed runs to dismiss", timeout=3)

    @work(group="lifecycle", exclusive=True, exit_on_error=False)
    async def action_resurrect(self) -> None:
        run = await self.state.coordinator.resurrect()
        if run is None:
            self.notify("No older runs to show", timeout=3)

    def action_cancel_run(self) -> None:
        self._submit(self._cancel_selected_run)

    def _cancel_selected_run(self) -> None:
        run = self.state.selected_run()
        if run is None or run.is_completed:
            return
        self._confirm(
            f"Cancel {run.workflow_name} #{run.run_number} in {run.repository.full_name}?",
            "cancel_run",
            {"repo": run.repository.full_name, "run_id": run.id},
        )

    def action_merge_pull_request(self) -> None:
        self._submit(self._merge_selected_pull_request)

    def _merge_selected_pull_request(self) -> None:
        pr = self.state.selected_pull_request()
        if pr is None:
            return
        self._confirm(
            f"Merge #{pr.number} {pr.title!r} into {pr.base_branch}?",
            "merge_pull_request",
            {"repo": pr.repository.full_name, "number": pr.number},
        )

    def action_stop_service(self) -> None:
        self._submit(lambda: self._confirm_service_action("stop_service", "Stop"))

    def action_recreate_service(self) -> None:
        self._submit(lambda: self._confirm_service_action("recreate_service", "Recreate"))

    def _confirm_service_action(self, action_type: str, verb: str) -> None:
        selected = self.state.selected_service()
        if selected is None:
            return
        status, service = selected
        self._confirm(
            f"{verb} {service.name} ({status.repository})?",
            action_type,
            {"compose_file": status.compose_file, "service": service.name},
        )

    def _confirm(self, message: str, action_type: str, payload: dict) -> None:
        def on_result(confirmed: bool | None) -> None:
            if confirmed:
                self._run_action(action_type, payload)

        self.push_screen(ConfirmModal(message), on_result)

    @work(group="actions", exit_on_error=False)
    async def _run_action(self, action_type: str, payload: dict) -> None:
        result = await self.state.run_action(action_type, payload)
        self.notify(result.message, severity="information" if result.ok else "error", timeout=4)

    # -- event log ------------------------------------------------------------

    def action_toggle_log(self) -> None:
        self.state.event_log.toggle_visible()

    def action_cycle_log_level(self) -> None:
        level = self.state.event_log.cycle_level()
        self.notify(f"Log level: {level.value}", timeout=2)

    def action_toggle_auto_show(self) -> None:
        enabled = self.state.event_log.toggle_auto_show()
        self.notify(f"Auto-show log {'on' if enabled else 'off'}", timeout=2)

    def action_resize_log(self, delta: int) -> None:
        self.state.event_log.resize(int(delta))

    def action_help(self) -> None:
        self.push_screen(HelpModal())

    async def action_quit(self) -> None:
        self.state.shutdown()
        self.exit()
