"""Container-service poll source and actions, backed by docker compose.

Repositories are matched to local checkouts by looking for a directory
named after the repo in a few conventional places and confirming its git
remote. Every compose file found in a checkout is queried separately.
"""

import asyncio
import logging
import re
from pathlib import Path

from ..errors import SourceError
from ..models import ContainerService, ContainerServiceStatus
from .process import run_tool

logger = logging.getLogger(__name__)

DOCKER_TIMEOUT = 5.0
GIT_TIMEOUT = 2.0
ACTION_TIMEOUT = 60.0

COMPOSE_FILE_NAMES = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
)

# Directories under $HOME searched for a checkout named after the repo
SEARCH_ROOTS = ("Projects", "projects", "code", "Code", "src", "workspace")

_COLUMN_SPLIT = re.compile(r"\s{2,}")
_CREATED_AGO = re.compile(
    r"^(\d+|an?|about an?)\s+(second|minute|hour|day|week|month|year)s?\s+ago$",
    re.IGNORECASE,
)

# owner/name at the end of an scp-style or URL remote
_REMOTE_REPO = re.compile(r"[:/]([^/:]+)/([^/]+?)(?:\.git)?/?$")


# ---------------------------------------------------------------------------
# `docker compose ps` output parsing
# ---------------------------------------------------------------------------

def parse_state(status: str) -> str:
    """Container state from a STATUS/State column value."""
    lowered = status.lower()
    for state in ("paused", "restarting", "exited", "dead", "removing", "created"):
        if state in lowered:
            return state
    if lowered.startswith("up") or "running" in lowered:
        return "running"
    return "exited"


def parse_health(status: str) -> str | None:
    if "(healthy)" in status:
        return "healthy"
    if "(unhealthy)" in status:
        return "unhealthy"
    if "(health: starting)" in status:
        return "starting"
    return None


def _split_ports(value: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in value.split(",") if p.strip())


def parse_compose_ps(output: str) -> list[ContainerService]:
    """Parse the table printed by `docker compose ps` / `docker-compose ps`.

    Column contract: cells are separated by two or more spaces. A leading
    header row (starting with NAME/Name) and v1's dashed rule are skipped.

    Compose v2 rows have the columns
        NAME  IMAGE  COMMAND  SERVICE  CREATED  STATUS  PORTS
    and are recognised by a CREATED cell such as "2 hours ago". PORTS may be
    absent.

    Compose v1 rows have the columns
        Name  Command  State  Ports
    where Name is "<project>_<service>_<n>".

    Rows with fewer than three cells are ignored.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if lines and lines[0].lstrip().upper().startswith("NAME"):
        lines = lines[1:]

    services = []
    for line in lines:
        stripped = line.strip()
        if set(stripped) <= {"-"}:
            continue
        parts = [p.strip() for p in _COLUMN_SPLIT.split(stripped)]
        if len(parts) < 3:
            continue

        container_name = parts[0]
        is_v2 = len(parts) >= 6 and any(_CREATED_AGO.match(p) for p in parts)
        if is_v2:
            service = parts[3] or container_name.rsplit("-", 1)[-1]
            status = parts[5]
            ports = parts[6] if len(parts) > 6 else ""
        else:
            segments = container_name.split("_")
            service = segments[1] if len(segments) > 1 and segments[1] else container_name
            status = parts[2]
            ports = parts[3] if len(parts) > 3 else ""

        services.append(
            ContainerService(
                name=service,
                container_name=container_name,
                state=parse_state(status),
                status_text=status,
                health=parse_health(status),
                ports=_split_ports(ports),
            )
        )
    return services


# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------

def remote_repository(remote: str) -> str | None:
    """The owner/name a git remote URL points at, lowercased, or None."""
    match = _REMOTE_REPO.search(remote.strip())
    if match is None:
        return None
    return f"{match.group(1)}/{match.group(2)}".lower()


def find_compose_files(repo_path: Path) -> list[Path]:
    return [repo_path / name for name in COMPOSE_FILE_NAMES if (repo_path / name).is_file()]


class DockerSource:
    """Reports compose service status for repositories checked out locally."""

    def __init__(
        self,
        timeout: float = DOCKER_TIMEOUT,
        home: Path | None = None,
        cwd: Path | None = None,
    ):
        self.timeout = timeout
        self.home = home or Path.home()
        self.cwd = cwd or Path.cwd()
        self._available: bool | None = None
        self._repo_paths: dict[str, Path | None] = {}

    async def is_available(self) -> bool:
        if self._available is None:
            try:
                result = await run_tool(["docker", "--version"], self.timeout, source="docker")
                self._available = result.returncode == 0
            except SourceError as e:
                logger.debug("Docker unavailable: %s", e)
                self._available = False
        return self._available

    async def _git_remote(self, path: Path) -> str:
        try:
            result = await run_tool(
                ["git", "remote", "get-url", "origin"], GIT_TIMEOUT, source="git", cwd=str(path)
            )
        except SourceError:
            return ""
        return result.stdout.strip() if result.returncode == 0 else ""

    def candidate_paths(self, repo: str) -> list[Path]:
        name = repo.split("/")[-1]
        paths = [self.cwd]
        paths += [self.home / root / name for root in SEARCH_ROOTS]
        paths.append(self.cwd.parent / name)
        return paths

    async def find_repo_path(self, repo: str) -> Path | None:
        """Local checkout of repo, or None. Results are remembered."""
        if repo in self._repo_paths:
            return self._repo_paths[repo]
        found = None
        for path in self.candidate_paths(repo):
            if path.is_dir() and remote_repository(await self._git_remote(path)) == repo.lower():
                found = path
                break
        self._repo_paths[repo] = found
        if found is None:
            logger.debug("No local checkout found for %s", repo)
        return found

    async def _compose(self, compose_file: Path, args: list[str], timeout: float) -> str:
        """Run a compose subcommand, trying the v2 plugin then the v1 binary."""
        commands = (
            ["docker", "compose", "-f", str(compose_file), *args],
            ["docker-compose", "-f", str(compose_file), *args],
        )
        last_error = ""
        for command in commands:
            try:
                result = await run_tool(command, timeout, source="docker", cwd=str(compose_file.parent))
            except SourceError as e:
                last_error = str(e)
                continue
            if result.returncode == 0:
                return result.stdout
            last_error = (result.stderr or "").strip() or f"{command[0]} exited with {result.returncode}"
        raise SourceError(last_error, source="docker")

    async def compose_status(self, compose_file: Path, repo: str) -> ContainerServiceStatus:
        """Service status of one compose file. Failures are reported in the status."""
        try:
            output = await self._compose(compose_file, ["ps"], self.timeout)
        except SourceError as e:
            logger.error("docker compose ps failed for %s: %s", compose_file, e)
            return ContainerServiceStatus(repository=repo, compose_file=str(compose_file), error=str(e))
        return ContainerServiceStatus(
            repository=repo,
            compose_file=str(compose_file),
            services=tuple(parse_compose_ps(output)),
        )

    async def list_docker_status(self, repos: list[str]) -> list[ContainerServiceStatus]:
        if not await self.is_available():
            return [
                ContainerServiceStatus(
                    repository="system",
                    compose_file="none",
                    error="Docker is not installed or not available",
                )
            ]

        paths = await asyncio.gather(*(self.find_repo_path(repo) for repo in repos))
        targets = [
            (compose_file, repo)
            for repo, path in zip(repos, paths)
            if path is not None
            for compose_file in find_compose_files(path)
        ]
        return list(await asyncio.gather(*(self.compose_status(f, repo) for f, repo in targets)))

    # -- actions ----------------------------------------------------------

    async def restart_service(self, compose_file: str, service: str) -> str:
        await self._compose(Path(compose_file), ["restart", service], ACTION_TIMEOUT)
        return f"Restarted {service}"

    async def stop_service(self, compose_file: str, service: str) -> str:
        await self._compose(Path(compose_file), ["stop", service], ACTION_TIMEOUT)
        return f"Stopped {service}"

    async def recreate_service(self, compose_file: str, service: str) -> str:
        await self._compose(Path(compose_file), ["up", "-d", "--force-recreate", service], ACTION_TIMEOUT)
        return f"Recreated {service}"
