"""GitHub poll source and actions, backed by the gh CLI."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from ..errors import RateLimitError, SourceError
from ..models import PullRequest, RepoRef, WorkflowJob, WorkflowRun
from .process import run_tool

logger = logging.getLogger(__name__)

GH_TIMEOUT = 10.0

RUN_FIELDS = (
    "databaseId,number,name,displayTitle,workflowName,headBranch,headSha,"
    "event,status,conclusion,createdAt,startedAt,updatedAt,url"
)
PR_FIELDS = (
    "number,title,author,headRefName,baseRefName,isDraft,mergeable,"
    "reviewDecision,statusCheckRollup,url,createdAt,updatedAt"
)

_RATE_LIMIT_MARKERS = ("api rate limit exceeded", "secondary rate limit")


def _format_created_filter(before: datetime) -> str:
    stamp = before.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return f"<{stamp}"


class GitHubSource:
    """Thin async wrapper over `gh`.

    Every method raises SourceError when gh fails or its output cannot be
    parsed, and RateLimitError when GitHub refuses the request for rate
    limiting. Callers decide whether a failure is fatal.
    """

    def __init__(self, timeout: float = GH_TIMEOUT):
        self.timeout = timeout

    async def _gh(self, args: list[str], timeout: float | None = None) -> str:
        result = await run_tool(["gh", *args], timeout or self.timeout, source="github")
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            if any(marker in stderr.lower() for marker in _RATE_LIMIT_MARKERS):
                raise RateLimitError()
            raise SourceError(stderr or f"gh {args[0]} {args[1]} exited with {result.returncode}", source="github")
        return result.stdout

    async def _gh_json(self, args: list[str], timeout: float | None = None) -> Any:
        stdout = await self._gh(args, timeout)
        try:
            return json.loads(stdout or "null")
        except json.JSONDecodeError as e:
            raise SourceError(f"Unparseable output from gh {args[0]} {args[1]}: {e}", source="github")

    # -- queries ----------------------------------------------------------

    async def list_workflow_runs(
        self,
        repo: str,
        limit: int = 20,
        before: datetime | None = None,
    ) -> list[WorkflowRun]:
        """Most recent workflow runs of repo, newest first.

        Args:
            repo: "owner/name".
            limit: Maximum number of runs requested from gh.
            before: Only return runs created strictly before this time.
        """
        ref = RepoRef.parse(repo)
        args = ["run", "list", "--repo", repo, "--limit", str(limit), "--json", RUN_FIELDS]
        if before is not None:
            args += ["--created", _format_created_filter(before)]
        data = await self._gh_json(args)
        runs = [WorkflowRun.from_gh(item, ref) for item in data or []]
        if before is not None:
            runs = [r for r in runs if r.created_at is not None and r.created_at < before]
        return runs

    async def get_workflow_jobs(self, repo: str, run_id: int) -> list[WorkflowJob]:
        data = await self._gh_json(["run", "view", str(run_id), "--repo", repo, "--json", "jobs"])
        jobs = (data or {}).get("jobs") or []
        return [WorkflowJob.from_gh(job, run_id) for job in jobs]

    async def list_pull_requests(self, repo: str, limit: int = 10) -> list[PullRequest]:
        ref = RepoRef.parse(repo)
        data = await self._gh_json(
            ["pr", "list", "--repo", repo, "--state", "open", "--limit", str(limit), "--json", PR_FIELDS]
        )
        return [PullRequest.from_gh(item, ref) for item in data or []]

    async def list_repositories(self, owner: str, limit: int = 100, timeout: float = 15.0) -> list[str]:
        """Non-archived repositories of a user or organization, as owner/name."""
        data = await self._gh_json(
            ["repo", "list", owner, "--limit", str(limit), "--no-archived", "--json", "nameWithOwner"],
            timeout=timeout,
        )
        return [item["nameWithOwner"] for item in data or [] if item.get("nameWithOwner")]

    # -- actions ----------------------------------------------------------

    async def cancel_run(self, repo: str, run_id: int) -> str:
        await self._gh(["run", "cancel", str(run_id), "--repo", repo])
        return f"Cancelled run {run_id} in {repo}"

    async def merge_pull_request(self, repo: str, number: int, method: str = "merge") -> str:
        if method not in ("merge", "squash", "rebase"):
            raise SourceError(f"Unknown merge method {method!r}", source="github")
        await self._gh(["pr", "merge", str(number), "--repo", repo, f"--{method}"], timeout=30.0)
        return f"Merged PR #{number} in {repo}"
