"""Per-run display lifecycle: which workflow runs stay on screen and why.

A run is visible while it is not completed. A run the dashboard watched
complete stays visible (completed-pending) until the user dismisses it. A run
first seen already completed is never shown unless explicitly resurrected.

    Unwatched --(observed non-completed)--> Watched
    Watched   --(observed completed)------> CompletedPending
    CompletedPending --(dismiss)----------> Dismissed
    any state --(observed non-completed)--> Watched   (re-run keeps its id)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .models import WorkflowRun

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    UNWATCHED = "unwatched"
    WATCHED = "watched"
    COMPLETED_PENDING = "completed_pending"
    DISMISSED = "dismissed"


@dataclass
class LifecycleEntry:
    run: WorkflowRun
    state: LifecycleState
    resurrected: bool = False
    # Not present in the most recent poll; run data may be outdated
    stale: bool = False

    @property
    def visible(self) -> bool:
        return not self.run.is_completed or self.state is LifecycleState.COMPLETED_PENDING


def _sort_key(run: WorkflowRun) -> tuple:
    stamp = run.updated_at or run.created_at
    return (stamp.timestamp() if stamp else 0.0, run.id)


class LifecycleTracker:
    """Owns one LifecycleEntry per run id ever observed."""

    def __init__(self):
        self._entries: dict[int, LifecycleEntry] = {}
        self._cursor: datetime | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, run_id: int) -> bool:
        return run_id in self._entries

    def get(self, run_id: int) -> LifecycleEntry | None:
        return self._entries.get(run_id)

    def state_of(self, run_id: int) -> LifecycleState | None:
        entry = self._entries.get(run_id)
        return entry.state if entry else None

    def observe(self, runs: list[WorkflowRun]) -> None:
        """Apply one poll's worth of runs.

        Entries missing from this poll are kept as-is and marked stale.
        """
        seen = set()
        for run in runs:
            seen.add(run.id)
            entry = self._entries.get(run.id)
            if entry is None:
                state = LifecycleState.UNWATCHED if run.is_completed else LifecycleState.WATCHED
                self._entries[run.id] = LifecycleEntry(run=run, state=state)
                continue

            entry.run = run
            entry.stale = False
            if not run.is_completed:
                if entry.state is not LifecycleState.WATCHED:
                    logger.debug("Run %s is active again (was %s)", run.id, entry.state.value)
                    entry.state = LifecycleState.WATCHED
                    entry.resurrected = False
            elif entry.state is LifecycleState.WATCHED:
                entry.state = LifecycleState.COMPLETED_PENDING

        for run_id, entry in self._entries.items():
            if run_id not in seen:
                entry.stale = True

    def visible_entries(self) -> list[LifecycleEntry]:
        """Visible entries, most recently updated first."""
        entries = [e for e in self._entries.values() if e.visible]
        entries.sort(key=lambda e: _sort_key(e.run), reverse=True)
        return entries

    def visible_runs(self) -> list[WorkflowRun]:
        return [e.run for e in self.visible_entries()]

    def pending_ids(self) -> frozenset[int]:
        return frozenset(
            run_id
            for run_id, e in self._entries.items()
            if e.state is LifecycleState.COMPLETED_PENDING
        )

    def resurrected_ids(self) -> frozenset[int]:
        return frozenset(run_id for run_id, e in self._entries.items() if e.resurrected and e.visible)

    def dismiss(self, run_id: int) -> bool:
        """Hide a completed-pending run.

        Returns False if the run is unknown or not dismissable.
        """
        entry = self._entries.get(run_id)
        if entry is None:
            return False
        if entry.state is LifecycleState.COMPLETED_PENDING:
            entry.state = LifecycleState.DISMISSED
            entry.resurrected = False
            return True
        return False

    def dismiss_all(self) -> list[int]:
        """Dismiss every completed-pending run. Returns the dismissed ids."""
        dismissed = [
            run_id
            for run_id, e in self._entries.items()
            if e.state is LifecycleState.COMPLETED_PENDING
        ]
        for run_id in dismissed:
            entry = self._entries[run_id]
            entry.state = LifecycleState.DISMISSED
            entry.resurrected = False
        return dismissed

    # -- resurrect --------------------------------------------------------

    def resurrect_cursor(self) -> datetime | None:
        """Creation time that resurrect candidates must be strictly older than.

        The smaller of the last resurrected run's creation time and the oldest
        displayed run's. None means no bound (nothing displayed yet).
        """
        stamps = [r.created_at for r in self.visible_runs() if r.created_at is not None]
        if self._cursor is not None:
            stamps.append(self._cursor)
        return min(stamps) if stamps else None

    def resurrect(self, candidates: list[WorkflowRun], cursor: datetime | None = None) -> WorkflowRun | None:
        """Bring back the newest candidate older than the cursor that is not on screen.

        The run is admitted as completed-pending with the resurrected flag set,
        whatever its real status, and the cursor moves to its creation time.
        Returns None (cursor unchanged) when no candidate qualifies.
        """
        bound = cursor if cursor is not None else self.resurrect_cursor()
        best: WorkflowRun | None = None
        for run in candidates:
            if run.created_at is None:
                continue
            if bound is not None and run.created_at >= bound:
                continue
            entry = self._entries.get(run.id)
            if entry is not None and entry.visible:
                continue
            if best is None or (run.created_at, run.id) > (best.created_at, best.id):
                best = run

        if best is None:
            return None

        entry = self._entries.get(best.id)
        if entry is None:
            entry = LifecycleEntry(run=best, state=LifecycleState.COMPLETED_PENDING)
            self._entries[best.id] = entry
        else:
            entry.run = best
            entry.state = LifecycleState.COMPLETED_PENDING
        entry.resurrected = True
        self._cursor = best.created_at
        return best


def describe_changes(previous: list[WorkflowRun], current: list[WorkflowRun]) -> list[str]:
    """Human-readable differences between two visible run lists."""
    before = {r.id: r for r in previous}
    after = {r.id: r for r in current}
    changes = []
    for run_id, run in after.items():
        label = f"{run.repository.name}: {run.workflow_name} #{run.run_number}"
        old = before.get(run_id)
        if old is None:
            changes.append(f"New workflow: {label} ({run.status})")
            continue
        if old.status != run.status:
            changes.append(f"Status changed: {label} {old.status} -> {run.status}")
        if old.conclusion != run.conclusion and run.conclusion:
            changes.append(f"Completed: {label} ({run.conclusion})")
    for run_id, run in before.items():
        if run_id not in after:
            changes.append(f"Removed: {run.repository.name}: {run.workflow_name} #{run.run_number}")
    return changes
