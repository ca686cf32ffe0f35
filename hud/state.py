"""The dashboard's state owner: one instance of every subsystem, wired together."""

import logging

from .actions import ActionDispatcher, ActionResult
from .cache import TTLCache
from .config import DashboardConfig
from .event_log import TRACE, EventLog, EventLogHandler
from .input_queue import InputQueue
from .lifecycle import LifecycleTracker
from .models import ContainerService, ContainerServiceStatus, PullRequest, WorkflowRun
from .navigation import NavigationEngine, Region
from .preferences import PreferencesStore
from .refresh import RefreshCoordinator, RefreshTrigger, Snapshot
from .sources import DockerSource, GitHubSource

logger = logging.getLogger(__name__)

ROOT_LOGGER = "hud"


class DashboardState:
    """Holds the dashboard's subsystems and answers "what is selected?".

    The render surface receives this object and talks to the subsystems
    through it. Sources may be injected for tests.
    """

    def __init__(
        self,
        config: DashboardConfig,
        github=None,
        docker=None,
        preferences_store: PreferencesStore | None = None,
    ):
        self.config = config
        self.preferences_store = (
            preferences_store if preferences_store is not None else PreferencesStore(config.preferences_path)
        )
        self.event_log = EventLog(
            capacity=config.log_capacity,
            preferences=self.preferences_store.load(),
        )
        self.event_log.on_settings_changed = self.preferences_store.save

        self.github = github if github is not None else GitHubSource(timeout=config.query_timeout)
        if docker is None and config.show_docker:
            docker = DockerSource()
        self.docker = docker

        self.tracker = LifecycleTracker()
        self.cache = TTLCache(ttl=config.cache_ttl)
        self.coordinator = RefreshCoordinator(
            config,
            self.github,
            self.docker,
            tracker=self.tracker,
            cache=self.cache,
        )
        self.navigation = NavigationEngine()
        self.input_queue = InputQueue()
        self.actions = ActionDispatcher(self.github, self.docker, on_success=self.force_refresh)
        self._log_handler: EventLogHandler | None = None

    @property
    def snapshot(self) -> Snapshot:
        return self.coordinator.snapshot

    # -- logging ----------------------------------------------------------

    def attach_logging(self) -> None:
        """Route records from the hud logger hierarchy into the event log."""
        if self._log_handler is not None:
            return
        self._log_handler = EventLogHandler(self.event_log)
        root = logging.getLogger(ROOT_LOGGER)
        root.addHandler(self._log_handler)
        root.setLevel(TRACE)

    def detach_logging(self) -> None:
        if self._log_handler is not None:
            logging.getLogger(ROOT_LOGGER).removeHandler(self._log_handler)
            self._log_handler = None

    # -- commands ---------------------------------------------------------

    async def refresh(self, trigger: RefreshTrigger = RefreshTrigger.AUTOMATIC) -> Snapshot | None:
        return await self.coordinator.refresh(trigger)

    async def force_refresh(self) -> Snapshot | None:
        return await self.coordinator.refresh(RefreshTrigger.MANUAL, force=True)

    async def run_action(self, action_type: str, payload: dict) -> ActionResult:
        return await self.actions.dispatch(action_type, payload)

    def save_preferences(self) -> bool:
        return self.preferences_store.save(self.event_log.preferences())

    def shutdown(self) -> None:
        """Persist preferences and stop feeding the event log."""
        self.save_preferences()
        self.detach_logging()

    # -- selection --------------------------------------------------------

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        """Relayout navigation for a new snapshot."""
        self.navigation.update_counts(snapshot.counts())

    def selected_run(self) -> WorkflowRun | None:
        if self.navigation.region is not Region.WORKFLOWS or self.snapshot.error:
            return None
        runs = self.snapshot.runs
        index = self.navigation.selection.workflows
        return runs[index] if 0 <= index < len(runs) else None

    def selected_pull_request(self) -> PullRequest | None:
        if self.navigation.region is not Region.PULL_REQUESTS:
            return None
        prs = self.snapshot.pull_requests or ()
        index = self.navigation.selection.pull_requests
        return prs[index] if 0 <= index < len(prs) else None

    def selected_service(self) -> tuple[ContainerServiceStatus, ContainerService] | None:
        if self.navigation.region is not Region.CONTAINER_SERVICES:
            return None
        services = self.snapshot.flat_services
        index = self.navigation.selection.container_services
        return services[index] if 0 <= index < len(services) else None
