"""Builders and in-memory sources shared by the gh-hud tests."""

from datetime import datetime, timedelta, timezone

from hud.errors import SourceError
from hud.models import ContainerService, ContainerServiceStatus, PullRequest, RepoRef, WorkflowJob, WorkflowRun

BASE_TIME = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


def build_run(
    run_id: int,
    repo: str = "acme/api",
    status: str = "in_progress",
    conclusion: str | None = None,
    created_at: datetime | None = None,
    updated_at: datetime | None = None,
    workflow: str = "CI",
) -> WorkflowRun:
    created = created_at or BASE_TIME + timedelta(minutes=run_id)
    return WorkflowRun(
        id=run_id,
        repository=RepoRef.parse(repo),
        run_number=run_id,
        workflow_name=workflow,
        branch="main",
        commit="0123456789abcdef",
        event="push",
        status=status,
        conclusion=conclusion,
        created_at=created,
        started_at=created,
        updated_at=updated_at or created,
        url=f"https://github.com/{repo}/actions/runs/{run_id}",
    )


def build_pr(number: int, repo: str = "acme/api", title: str = "Add feature") -> PullRequest:
    return PullRequest(
        number=number,
        repository=RepoRef.parse(repo),
        title=title,
        author="octocat",
        head_branch=f"feature-{number}",
        base_branch="main",
        url=f"https://github.com/{repo}/pull/{number}",
    )


class FakeGitHub:
    """In-memory stand-in for GitHubSource.

    runs / prs map repo -> list; errors map repo (or ("prs", repo)) -> exception
    raised by the next queries for it. older holds runs only returned when
    a `before` bound is given.
    """

    def __init__(self):
        self.runs: dict[str, list[WorkflowRun]] = {}
        self.older: dict[str, list[WorkflowRun]] = {}
        self.jobs: dict[int, list[WorkflowJob]] = {}
        self.prs: dict[str, list[PullRequest]] = {}
        self.errors: dict = {}
        self.calls: list[tuple] = []

    async def list_workflow_runs(self, repo, limit=20, before=None):
        self.calls.append(("runs", repo, before))
        if repo in self.errors:
            raise self.errors[repo]
        runs = list(self.runs.get(repo, []))
        if before is not None:
            runs = [r for r in self.older.get(repo, []) + runs if r.created_at < before]
        return runs[:limit]

    async def get_workflow_jobs(self, repo, run_id):
        self.calls.append(("jobs", repo, run_id))
        return list(self.jobs.get(run_id, []))

    async def list_pull_requests(self, repo, limit=10):
        self.calls.append(("prs", repo))
        if ("prs", repo) in self.errors:
            raise self.errors[("prs", repo)]
        return list(self.prs.get(repo, []))[:limit]

    async def cancel_run(self, repo, run_id):
        self.calls.append(("cancel", repo, run_id))
        if ("cancel", repo) in self.errors:
            raise self.errors[("cancel", repo)]
        return f"Cancelled run {run_id} in {repo}"

    async def merge_pull_request(self, repo, number, method="merge"):
        self.calls.append(("merge", repo, number, method))
        return f"Merged PR #{number} in {repo}"

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)


class FakeDocker:
    def __init__(self, statuses=None, error: Exception | None = None):
        self.statuses = statuses or []
        self.error = error
        self.calls: list[tuple] = []

    async def list_docker_status(self, repos):
        self.calls.append(("status", tuple(repos)))
        if self.error:
            raise self.error
        return list(self.statuses)

    async def restart_service(self, compose_file, service):
        self.calls.append(("restart", compose_file, service))
        return f"Restarted {service}"

    async def stop_service(self, compose_file, service):
        self.calls.append(("stop", compose_file, service))
        raise SourceError(f"cannot stop {service}", source="docker")

    async def recreate_service(self, compose_file, service):
        self.calls.append(("recreate", compose_file, service))
        return f"Recreated {service}"


def build_service_status(repo: str = "acme/api", names=("db", "web")) -> ContainerServiceStatus:
    return ContainerServiceStatus(
        repository=repo,
        compose_file=f"/src/{repo.split('/')[1]}/docker-compose.yml",
        services=tuple(
            ContainerService(name=n, container_name=f"{repo.split('/')[1]}-{n}-1", state="running", status_text="Up 5 minutes")
            for n in names
        ),
    )


