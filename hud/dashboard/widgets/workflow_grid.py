"""Workflow cards laid out in the navigation grid."""

from __future__ import annotations

from textual.containers import Grid
from textual.widgets import Static

from ...models import WorkflowJob, WorkflowRun
from ...navigation import GridLayout
from ..utils import render_run_card


class WorkflowCard(Static):
    """One workflow run."""

    DEFAULT_CSS = """
    WorkflowCard {
        border: round $primary-darken-2;
        padding: 0 1;
        height: 100%;
        overflow: hidden;
    }
    WorkflowCard.-completed {
        border: round $success-darken-2;
    }
    WorkflowCard.-failed {
        border: round $error;
    }
    WorkflowCard.-selected {
        border: double $accent;
    }
    """

    def show_run(
        self,
        run: WorkflowRun,
        jobs: list[WorkflowJob] | None,
        pending: bool,
        resurrected: bool,
    ) -> None:
        width = max(10, self.size.width - 4) if self.size.width else 40
        self.update(render_run_card(run, jobs, pending=pending, resurrected=resurrected, width=width))
        self.border_title = run.repository.name
        self.set_class(run.is_completed and run.conclusion == "success", "-completed")
        self.set_class(run.is_completed and run.conclusion not in ("success", "skipped", None), "-failed")


class WorkflowGrid(Grid):
    """Grid of WorkflowCards, rebuilt whenever the number of runs changes."""

    DEFAULT_CSS = """
    WorkflowGrid {
        grid-gutter: 0 1;
        height: 1fr;
    }
    WorkflowGrid > .empty {
        color: $text-muted;
        content-align: center middle;
        height: 100%;
    }
    """

    def __init__(self, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self._cards: list[WorkflowCard] = []
        self._layout = GridLayout.for_count(0)

    async def show_runs(
        self,
        runs: tuple[WorkflowRun, ...],
        jobs: dict[int, list[WorkflowJob]],
        pending_ids: frozenset[int],
        resurrected_ids: frozenset[int],
        layout: GridLayout,
    ) -> None:
        if len(runs) != len(self._cards) or not self.children:
            await self._rebuild(len(runs), layout)
        for card, run in zip(self._cards, runs):
            card.show_run(
                run,
                jobs.get(run.id),
                pending=run.id in pending_ids,
                resurrected=run.id in resurrected_ids,
            )

    async def _rebuild(self, count: int, layout: GridLayout) -> None:
        await self.remove_children()
        self._layout = layout
        self.styles.grid_size_columns = layout.cols
        self.styles.grid_size_rows = max(1, layout.rows)
        if count == 0:
            self._cards = []
            await self.mount(Static("No active workflows. Press u to show older runs.", classes="empty"))
            return
        self._cards = [WorkflowCard() for _ in range(count)]
        await self.mount_all(self._cards)

    def highlight(self, index: int | None) -> None:
        for i, card in enumerate(self._cards):
            card.set_class(i == index, "-selected")
