"""Data records shared by the poll sources, the lifecycle tracker and the dashboard.

Records are immutable. Each poll builds fresh instances from the query tool's
JSON output and the newest record for an id replaces the previous one
wholesale.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal


# ---------------------------------------------------------------------------
# Workflow run statuses as reported by `gh run list`
# ---------------------------------------------------------------------------

RunStatus = Literal["queued", "in_progress", "completed", "waiting"]

# Statuses where a run is still doing (or about to do) work
ACTIVE_STATUSES: tuple[str, ...] = ("queued", "in_progress", "waiting", "requested", "pending")

# Check states that roll a PR up to "failure"
_FAILING_CHECK_STATES = {"FAILURE", "ERROR", "CANCELLED", "TIMED_OUT", "ACTION_REQUIRED", "STARTUP_FAILURE"}
_PENDING_CHECK_STATES = {"PENDING", "EXPECTED", "QUEUED", "IN_PROGRESS", "WAITING", "REQUESTED"}


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp from gh output into an aware datetime.

    Returns None for missing, empty or unparseable values. gh reports
    "0001-01-01T00:00:00Z" for steps that never started; that is treated as
    missing too.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.year <= 1:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True, order=True)
class RepoRef:
    """An owner/name pair identifying a GitHub repository."""

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> "RepoRef":
        """Parse "owner/name". Raises ValueError for anything else."""
        parts = value.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Invalid repository {value!r}: expected owner/name")
        return cls(parts[0], parts[1])

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class WorkflowRun:
    id: int
    repository: RepoRef
    run_number: int
    workflow_name: str
    branch: str
    commit: str
    event: str
    status: str
    conclusion: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    updated_at: datetime | None = None
    url: str = ""
    title: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def short_commit(self) -> str:
        return self.commit[:7]

    @classmethod
    def from_gh(cls, data: dict[str, Any], repository: RepoRef) -> "WorkflowRun":
        """Build a run from one element of `gh run list --json ...` output."""
        return cls(
            id=int(data["databaseId"]),
            repository=repository,
            run_number=int(data.get("number") or 0),
            workflow_name=data.get("workflowName") or data.get("name") or "",
            branch=data.get("headBranch") or "",
            commit=data.get("headSha") or "",
            event=data.get("event") or "",
            status=(data.get("status") or "").lower(),
            conclusion=(data.get("conclusion") or "").lower() or None,
            created_at=parse_timestamp(data.get("createdAt")),
            started_at=parse_timestamp(data.get("startedAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            url=data.get("url") or "",
            title=data.get("displayTitle") or "",
        )


@dataclass(frozen=True)
class WorkflowStep:
    name: str
    number: int
    status: str
    conclusion: str | None = None

    @classmethod
    def from_gh(cls, data: dict[str, Any]) -> "WorkflowStep":
        return cls(
            name=data.get("name") or "",
            number=int(data.get("number") or 0),
            status=(data.get("status") or "").lower(),
            conclusion=(data.get("conclusion") or "").lower() or None,
        )


@dataclass(frozen=True)
class WorkflowJob:
    id: int
    run_id: int
    name: str
    status: str
    conclusion: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    steps: tuple[WorkflowStep, ...] = ()
    url: str = ""

    @property
    def current_step(self) -> WorkflowStep | None:
        """The step currently running, if any."""
        for step in self.steps:
            if step.status == "in_progress":
                return step
        return None

    @classmethod
    def from_gh(cls, data: dict[str, Any], run_id: int) -> "WorkflowJob":
        """Build a job from one element of the `jobs` array of `gh run view --json jobs`."""
        return cls(
            id=int(data.get("databaseId") or 0),
            run_id=run_id,
            name=data.get("name") or "",
            status=(data.get("status") or "").lower(),
            conclusion=(data.get("conclusion") or "").lower() or None,
            started_at=parse_timestamp(data.get("startedAt")),
            completed_at=parse_timestamp(data.get("completedAt")),
            steps=tuple(WorkflowStep.from_gh(s) for s in data.get("steps") or []),
            url=data.get("url") or "",
        )


def rollup_checks(checks: list[dict[str, Any]] | None) -> str | None:
    """Collapse a statusCheckRollup list into one of SUCCESS, PENDING, FAILURE.

    Check runs carry status/conclusion, commit status contexts carry state.
    Returns None when the PR has no checks at all.
    """
    if not checks:
        return None
    states = set()
    for check in checks:
        state = check.get("state")
        if not state:
            status = (check.get("status") or "").upper()
            if status and status != "COMPLETED":
                state = "PENDING"
            else:
                state = check.get("conclusion") or "PENDING"
        states.add(str(state).upper())
    if states & _FAILING_CHECK_STATES:
        return "FAILURE"
    if states & _PENDING_CHECK_STATES:
        return "PENDING"
    return "SUCCESS"


@dataclass(frozen=True)
class PullRequest:
    number: int
    repository: RepoRef
    title: str
    author: str = ""
    head_branch: str = ""
    base_branch: str = ""
    draft: bool = False
    mergeable: str | None = None
    review_decision: str | None = None
    checks_state: str | None = None
    url: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_gh(cls, data: dict[str, Any], repository: RepoRef) -> "PullRequest":
        """Build a PR from one element of `gh pr list --json ...` output."""
        author = data.get("author") or {}
        return cls(
            number=int(data["number"]),
            repository=repository,
            title=data.get("title") or "",
            author=author.get("login", "") if isinstance(author, dict) else str(author),
            head_branch=data.get("headRefName") or "",
            base_branch=data.get("baseRefName") or "",
            draft=bool(data.get("isDraft")),
            mergeable=data.get("mergeable") or None,
            review_decision=data.get("reviewDecision") or None,
            checks_state=rollup_checks(data.get("statusCheckRollup")),
            url=data.get("url") or "",
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass(frozen=True)
class ContainerService:
    name: str
    container_name: str
    state: str
    status_text: str = ""
    health: str | None = None
    ports: tuple[str, ...] = ()

    @property
    def is_running(self) -> bool:
        return self.state == "running"


@dataclass(frozen=True)
class ContainerServiceStatus:
    """Services of one compose file. A repo with two compose files yields two of these."""

    repository: str
    compose_file: str
    services: tuple[ContainerService, ...] = field(default_factory=tuple)
    error: str | None = None
