"""Poll sources: adapters over the external tools the dashboard queries."""

from .docker import DockerSource, parse_compose_ps
from .github import GitHubSource

__all__ = ["DockerSource", "GitHubSource", "parse_compose_ps"]
