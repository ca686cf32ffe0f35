"""Configuration loading and defaults for gh-hud."""

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError, RateLimitError, SourceError
from .models import RepoRef
from .preferences import default_prefs_path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: dict[str, Any] = {
    "repositories": [],
    "organizations": [],
    "refresh_interval": 5.0,  # seconds
    "max_workflows": 20,
    "max_pull_requests": 10,
    "show_pull_requests": False,
    "show_docker": False,
    "cache_ttl": 4.0,
    "query_timeout": 10.0,
    "org_timeout": 15.0,
    "log_capacity": 100,
}

# Keys accepted from older camelCase config files
_KEY_ALIASES = {
    "refreshInterval": "refresh_interval",
    "maxWorkflows": "max_workflows",
    "maxPullRequests": "max_pull_requests",
    "showPullRequests": "show_pull_requests",
    "showDocker": "show_docker",
    "cacheTtl": "cache_ttl",
}

CONFIG_ENV_VAR = "GH_HUD_CONFIG"

MIN_REFRESH_INTERVAL = 1.0


def config_search_paths(cwd: Path | None = None, home: Path | None = None) -> list[Path]:
    """Locations checked for a config file, in priority order."""
    cwd = cwd or Path.cwd()
    home = home or Path.home()
    paths = []
    env_override = os.environ.get(CONFIG_ENV_VAR)
    if env_override:
        paths.append(Path(env_override).expanduser())
    paths += [
        cwd / ".gh-hud.yaml",
        cwd / ".gh-hud.json",
        home / ".gh-hud.yaml",
        home / ".gh-hud.json",
        home / ".config" / "gh-hud" / "config.yaml",
    ]
    return paths


@dataclass
class DashboardConfig:
    repositories: list[str] = field(default_factory=list)
    organizations: list[str] = field(default_factory=list)
    refresh_interval: float = DEFAULT_CONFIG["refresh_interval"]
    max_workflows: int = DEFAULT_CONFIG["max_workflows"]
    max_pull_requests: int = DEFAULT_CONFIG["max_pull_requests"]
    show_pull_requests: bool = DEFAULT_CONFIG["show_pull_requests"]
    show_docker: bool = DEFAULT_CONFIG["show_docker"]
    cache_ttl: float = DEFAULT_CONFIG["cache_ttl"]
    query_timeout: float = DEFAULT_CONFIG["query_timeout"]
    org_timeout: float = DEFAULT_CONFIG["org_timeout"]
    log_capacity: int = DEFAULT_CONFIG["log_capacity"]
    preferences_path: Path = field(default_factory=default_prefs_path)
    source: Path | None = None

    def validate(self) -> None:
        """Raise ConfigError for values the dashboard cannot work with."""
        for repo in self.repositories:
            try:
                RepoRef.parse(repo)
            except ValueError as e:
                raise ConfigError(str(e))
        if self.refresh_interval < MIN_REFRESH_INTERVAL:
            raise ConfigError(f"refresh_interval must be at least {MIN_REFRESH_INTERVAL:g}s")
        for name in ("max_workflows", "max_pull_requests", "log_capacity"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: Path | None = None) -> "DashboardConfig":
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if key == "refreshInterval" and isinstance(value, (int, float)) and value >= 100:
                # camelCase files stored milliseconds
                value = value / 1000
            if name not in known or name == "source":
                logger.warning("Ignoring unknown config key %r in %s", key, source)
                continue
            values[name] = value
        if "preferences_path" in values:
            values["preferences_path"] = Path(values["preferences_path"]).expanduser()
        for name in ("repositories", "organizations"):
            if name in values:
                values[name] = list(values[name] or [])
        return cls(**values, source=source)


def _read_config_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        if path.suffix == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return data


def load_config(path: Path | None = None) -> DashboardConfig:
    """Load configuration from path, or the first readable file in the search paths.

    An explicitly given path must exist and parse. Files found by searching
    are skipped with a warning when they cannot be read. With no file at all
    the defaults are returned.
    """
    if path is not None:
        try:
            data = _read_config_file(path)
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}")
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read config {path}: {e}")
        return DashboardConfig.from_dict(data, source=path)

    for candidate in config_search_paths():
        if not candidate.is_file():
            continue
        try:
            data = _read_config_file(candidate)
        except (OSError, ConfigError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.warning("Skipping unreadable config %s: %s", candidate, e)
            continue
        logger.info("Loaded config from %s", candidate)
        return DashboardConfig.from_dict(data, source=candidate)

    return DashboardConfig()


def apply_overrides(config: DashboardConfig, **overrides: Any) -> DashboardConfig:
    """Return a copy of config with every non-None override applied.

    Repositories and organizations given on the command line are added to
    the configured ones.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    for name in ("repositories", "organizations"):
        if name in values:
            merged = list(getattr(config, name))
            merged += [item for item in values[name] if item not in merged]
            values[name] = merged
    return replace(config, **values)


async def build_repository_list(config: DashboardConfig, github) -> list[str]:
    """Explicit repositories plus every repository of the configured organizations.

    An organization that cannot be listed is logged and skipped. Rate
    limiting propagates.
    """
    repos = list(dict.fromkeys(config.repositories))
    if not config.organizations:
        return repos

    results = await asyncio.gather(
        *(github.list_repositories(org, timeout=config.org_timeout) for org in config.organizations),
        return_exceptions=True,
    )
    for org, result in zip(config.organizations, results):
        if isinstance(result, RateLimitError):
            raise result
        if isinstance(result, SourceError):
            logger.error("Could not list repositories for %s: %s", org, result)
            continue
        if isinstance(result, BaseException):
            raise result
        logger.info("Found %d repositories in %s", len(result), org)
        for repo in result:
            if repo not in repos:
                repos.append(repo)
    return repos
