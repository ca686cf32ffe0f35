"""Refresh coordination: one poll cycle at a time, merged into a snapshot."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from .cache import TTLCache
from .config import DashboardConfig
from .errors import RateLimitError
from .event_log import EVENT, TRACE
from .lifecycle import LifecycleTracker, describe_changes
from .models import (
    ContainerService,
    ContainerServiceStatus,
    PullRequest,
    WorkflowJob,
    WorkflowRun,
)
from .navigation import RegionCounts

logger = logging.getLogger(__name__)


class RefreshTrigger(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


@dataclass(frozen=True)
class Snapshot:
    """Everything the render surface needs for one frame of data."""

    runs: tuple[WorkflowRun, ...] = ()
    jobs: dict[int, list[WorkflowJob]] = field(default_factory=dict)
    # None when the panel is disabled
    pull_requests: tuple[PullRequest, ...] | None = None
    services: tuple[ContainerServiceStatus, ...] | None = None
    pending_ids: frozenset[int] = frozenset()
    resurrected_ids: frozenset[int] = frozenset()
    error: str | None = None
    # "total" (every repository failed) or "rate_limit"
    error_kind: str | None = None
    refreshed_at: datetime | None = None

    @property
    def flat_services(self) -> list[tuple[ContainerServiceStatus, ContainerService]]:
        """Services across all compose files, in display order."""
        return [(status, svc) for status in self.services or () for svc in status.services]

    def counts(self) -> RegionCounts:
        return RegionCounts(
            container_services=len(self.flat_services),
            pull_requests=len(self.pull_requests or ()),
            workflows=0 if self.error else len(self.runs),
        )


SnapshotCallback = Callable[[Snapshot], Awaitable[None] | None]


@dataclass
class _FanOut:
    results: dict[str, Any] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)
    rate_limit: RateLimitError | None = None


class RefreshCoordinator:
    """Runs poll cycles against the sources and publishes merged snapshots.

    At most one cycle is in flight; requests arriving meanwhile are dropped.
    No exception escapes refresh(): per-repository failures are logged and
    omitted, and a cycle in which every repository fails yields an error
    snapshot instead.

    Args:
        config: Repositories and panel switches.
        github: Source with list_workflow_runs / get_workflow_jobs / list_pull_requests.
        docker: Source with list_docker_status, or None.
        tracker: Lifecycle tracker fed with every poll.
        cache: TTL cache in front of every poll query.
        on_snapshot: Called (and awaited if it returns an awaitable) with each snapshot.
        is_modal_open: Returns True while a modal dialog suppresses refreshes.
    """

    def __init__(
        self,
        config: DashboardConfig,
        github,
        docker=None,
        tracker: LifecycleTracker | None = None,
        cache: TTLCache | None = None,
        on_snapshot: SnapshotCallback | None = None,
        is_modal_open: Callable[[], bool] | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.github = github
        self.docker = docker
        self.tracker = tracker if tracker is not None else LifecycleTracker()
        self.cache = cache if cache is not None else TTLCache(ttl=config.cache_ttl)
        self.on_snapshot = on_snapshot
        self.is_modal_open = is_modal_open or (lambda: False)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._in_flight = False
        self.snapshot = Snapshot()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def repositories(self) -> list[str]:
        return self.config.repositories

    # -- public commands --------------------------------------------------

    async def refresh(
        self, trigger: RefreshTrigger = RefreshTrigger.AUTOMATIC, force: bool = False
    ) -> Snapshot | None:
        """Run one poll cycle. Returns the new snapshot, or None if dropped or suppressed."""
        if self._in_flight:
            logger.log(TRACE, "Refresh in flight; dropping %s request", trigger.value)
            return None
        if self.is_modal_open():
            logger.log(TRACE, "Refresh suppressed while a dialog is open")
            return None

        self._in_flight = True
        try:
            if force:
                self.cache.clear()
            logger.debug("Refresh started (%s%s)", trigger.value, ", forced" if force else "")
            try:
                snapshot = await self._cycle()
            except Exception as e:
                logger.exception("Refresh cycle failed")
                snapshot = self._error_snapshot(f"Refresh failed: {e}", "total")
            await self._publish(snapshot)
            return snapshot
        finally:
            self._in_flight = False

    async def dismiss(self, run_id: int) -> bool:
        if not self.tracker.dismiss(run_id):
            logger.debug("Run %s is not dismissable", run_id)
            return False
        logger.log(EVENT, "Dismissed run %s", run_id)
        await self._publish(self._local_snapshot())
        return True

    async def dismiss_all(self) -> list[int]:
        dismissed = self.tracker.dismiss_all()
        if dismissed:
            logger.log(EVENT, "Dismissed %d completed run(s)", len(dismissed))
            await self._publish(self._local_snapshot())
        return dismissed

    async def resurrect(self) -> WorkflowRun | None:
        """Bring back the next older run that is not on screen."""
        cursor = self.tracker.resurrect_cursor()
        fan_out = await self._fan_out(
            self.repositories,
            lambda repo: self.github.list_workflow_runs(repo, self.config.max_workflows, before=cursor),
            kind="older runs",
        )
        if fan_out.rate_limit is not None:
            logger.error("%s", fan_out.rate_limit)
            return None
        candidates = [run for runs in fan_out.results.values() for run in runs]
        run = self.tracker.resurrect(candidates, cursor)
        if run is None:
            logger.info("No older workflow runs to show")
            return None
        logger.log(
            EVENT,
            "Resurrected %s: %s #%s",
            run.repository.name,
            run.workflow_name,
            run.run_number,
        )
        await self._publish(self._local_snapshot())
        return run

    # -- cycle ------------------------------------------------------------

    async def _cached(self, key: Hashable, fetch: Callable[[], Awaitable[Any]]) -> Any:
        return await self.cache.get_or_fetch(key, fetch)

    async def _fan_out(
        self,
        repos: list[str],
        fetch: Callable[[str], Awaitable[Any]],
        kind: str,
        cache_kind: str | None = None,
    ) -> _FanOut:
        """Query every repo concurrently, sorting results from failures."""

        def call(repo: str) -> Awaitable[Any]:
            if cache_kind is None:
                return fetch(repo)
            return self._cached((repo, cache_kind), lambda: fetch(repo))

        outcome = _FanOut()
        results = await asyncio.gather(*(call(repo) for repo in repos), return_exceptions=True)
        for repo, result in zip(repos, results):
            if isinstance(result, RateLimitError):
                outcome.rate_limit = result
                outcome.failed.append(repo)
            elif isinstance(result, Exception):
                logger.error("Failed to load %s for %s: %s", kind, repo, result)
                outcome.failed.append(repo)
            elif isinstance(result, BaseException):
                raise result
            else:
                outcome.results[repo] = result
        return outcome

    async def _docker_status(self) -> tuple[ContainerServiceStatus, ...] | None:
        if not self.config.show_docker or self.docker is None:
            return None
        try:
            statuses = await self._cached(
                ("docker", tuple(self.repositories)),
                lambda: self.docker.list_docker_status(self.repositories),
            )
        except Exception as e:
            logger.error("Failed to load container services: %s", e)
            return ()
        return tuple(statuses)

    async def _pull_requests(self) -> _FanOut | None:
        if not self.config.show_pull_requests:
            return None
        return await self._fan_out(
            self.repositories,
            lambda repo: self.github.list_pull_requests(repo, self.config.max_pull_requests),
            kind="pull requests",
            cache_kind="prs",
        )

    async def _cycle(self) -> Snapshot:
        repos = self.repositories
        runs_out, prs_out, services = await asyncio.gather(
            self._fan_out(
                repos,
                lambda repo: self.github.list_workflow_runs(repo, self.config.max_workflows),
                kind="workflow runs",
                cache_kind="runs",
            ),
            self._pull_requests(),
            self._docker_status(),
        )

        rate_limit = runs_out.rate_limit or (prs_out.rate_limit if prs_out else None)
        if rate_limit is not None:
            logger.error("%s", rate_limit)
            return self._error_snapshot(str(rate_limit), "rate_limit")
        if repos and len(runs_out.failed) == len(repos):
            return self._error_snapshot(
                f"Failed to load workflows from all {len(repos)} repositories", "total"
            )

        all_runs = [run for repo in repos for run in runs_out.results.get(repo, [])]
        self.tracker.observe(all_runs)
        visible = self.tracker.visible_runs()

        jobs = await self._fetch_jobs([run for run in visible if not run.is_completed])
        # Lifecycle commands may have landed while jobs were loading
        visible = self.tracker.visible_runs()
        previous = list(self.snapshot.runs)

        pull_requests = None
        if prs_out is not None:
            pull_requests = tuple(pr for repo in repos for pr in prs_out.results.get(repo, []))

        for change in describe_changes(previous, visible):
            logger.log(EVENT, "%s", change)
        logger.log(
            TRACE,
            "Cycle done: %d runs polled, %d visible, %d failed repos",
            len(all_runs),
            len(visible),
            len(runs_out.failed),
        )

        return Snapshot(
            runs=tuple(visible),
            jobs=jobs,
            pull_requests=pull_requests,
            services=services,
            pending_ids=self.tracker.pending_ids(),
            resurrected_ids=self.tracker.resurrected_ids(),
            refreshed_at=self._clock(),
        )

    async def _fetch_jobs(self, runs: list[WorkflowRun]) -> dict[int, list[WorkflowJob]]:
        async def fetch(run: WorkflowRun) -> list[WorkflowJob]:
            repo = run.repository.full_name
            return await self._cached(
                (repo, "jobs", run.id), lambda: self.github.get_workflow_jobs(repo, run.id)
            )

        results = await asyncio.gather(*(fetch(run) for run in runs), return_exceptions=True)
        jobs = {}
        for run, result in zip(runs, results):
            if isinstance(result, Exception):
                logger.error("Failed to load jobs for run %s: %s", run.id, result)
                continue
            if isinstance(result, BaseException):
                raise result
            jobs[run.id] = result
        return jobs

    # -- snapshots --------------------------------------------------------

    def _error_snapshot(self, message: str, kind: str) -> Snapshot:
        return Snapshot(
            runs=self.snapshot.runs,
            jobs=self.snapshot.jobs,
            pull_requests=self.snapshot.pull_requests,
            services=self.snapshot.services,
            pending_ids=self.snapshot.pending_ids,
            resurrected_ids=self.snapshot.resurrected_ids,
            error=message,
            error_kind=kind,
            refreshed_at=self.snapshot.refreshed_at,
        )

    def _local_snapshot(self) -> Snapshot:
        """Rebuild the snapshot from lifecycle state without polling."""
        visible = tuple(self.tracker.visible_runs())
        return Snapshot(
            runs=visible,
            jobs={run.id: self.snapshot.jobs[run.id] for run in visible if run.id in self.snapshot.jobs},
            pull_requests=self.snapshot.pull_requests,
            services=self.snapshot.services,
            pending_ids=self.tracker.pending_ids(),
            resurrected_ids=self.tracker.resurrected_ids(),
            error=self.snapshot.error,
            error_kind=self.snapshot.error_kind,
            refreshed_at=self.snapshot.refreshed_at,
        )

    async def _publish(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        if self.on_snapshot is None:
            return
        try:
            result = self.on_snapshot(snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Failed to apply snapshot")
