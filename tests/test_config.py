"""Tests for hud.config"""

import asyncio
import json

import pytest

from hud.config import (
    CONFIG_ENV_VAR,
    DashboardConfig,
    apply_overrides,
    build_repository_list,
    config_search_paths,
    load_config,
)
from hud.errors import ConfigError, RateLimitError, SourceError


@pytest.fixture
def isolated(temp_dir, monkeypatch):
    """Run with cwd and $HOME inside the temp dir and no env override."""
    home = temp_dir / "home"
    work = temp_dir / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(work)
    return home, work


class TestLoadConfig:
    def test_defaults_without_files(self, isolated):
        config = load_config()
        assert config.repositories == []
        assert config.refresh_interval == 5.0
        assert config.max_workflows == 20
        assert config.show_pull_requests is False
        assert config.source is None

    def test_yaml_file(self, temp_dir):
        path = temp_dir / "hud.yaml"
        path.write_text(
            "repositories:\n  - acme/api\n  - acme/web\n"
            "refresh_interval: 10\nshow_pull_requests: true\n"
        )
        config = load_config(path)
        assert config.repositories == ["acme/api", "acme/web"]
        assert config.refresh_interval == 10
        assert config.show_pull_requests is True
        assert config.source == path

    def test_json_file_with_camel_case_keys(self, temp_dir):
        path = temp_dir / "hud.json"
        path.write_text(json.dumps({
            "repositories": ["acme/api"],
            "refreshInterval": 5000,
            "maxWorkflows": 8,
            "showDocker": True,
        }))
        config = load_config(path)
        assert config.refresh_interval == 5.0
        assert config.max_workflows == 8
        assert config.show_docker is True

    def test_small_camel_case_interval_is_seconds(self, temp_dir):
        path = temp_dir / "hud.json"
        path.write_text(json.dumps({"refreshInterval": 30}))
        assert load_config(path).refresh_interval == 30

    def test_unknown_keys_ignored(self, temp_dir):
        path = temp_dir / "hud.yaml"
        path.write_text("repositories: [acme/api]\ntheme: dark\n")
        config = load_config(path)
        assert config.repositories == ["acme/api"]
        assert not hasattr(config, "theme")

    def test_empty_yaml_gives_defaults(self, temp_dir):
        path = temp_dir / "hud.yaml"
        path.write_text("")
        assert load_config(path).repositories == []

    def test_explicit_missing_path_raises(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            load_config(temp_dir / "nope.yaml")

    def test_explicit_invalid_yaml_raises(self, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("repositories: [acme/api\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_non_mapping_raises(self, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- acme/api\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_cwd_file_found(self, isolated):
        home, work = isolated
        (work / ".gh-hud.yaml").write_text("repositories: [acme/local]\n")
        (home / ".gh-hud.yaml").write_text("repositories: [acme/home]\n")
        assert load_config().repositories == ["acme/local"]

    def test_home_file_found(self, isolated):
        home, _ = isolated
        (home / ".gh-hud.json").write_text(json.dumps({"repositories": ["acme/home"]}))
        assert load_config().repositories == ["acme/home"]

    def test_env_override_takes_priority(self, isolated, temp_dir, monkeypatch):
        _, work = isolated
        (work / ".gh-hud.yaml").write_text("repositories: [acme/local]\n")
        override = temp_dir / "override.yaml"
        override.write_text("repositories: [acme/override]\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(override))
        assert load_config().repositories == ["acme/override"]
        assert config_search_paths()[0] == override

    def test_unreadable_search_file_skipped(self, isolated):
        home, work = isolated
        (work / ".gh-hud.yaml").write_text("repositories: [acme/api\n")
        (home / ".gh-hud.yaml").write_text("repositories: [acme/home]\n")
        assert load_config().repositories == ["acme/home"]


class TestValidate:
    def test_valid(self, config):
        config.validate()

    def test_bad_repository(self):
        with pytest.raises(ConfigError):
            DashboardConfig(repositories=["not-a-repo"]).validate()

    def test_interval_too_small(self):
        with pytest.raises(ConfigError, match="refresh_interval"):
            DashboardConfig(refresh_interval=0.2).validate()

    def test_non_positive_limits(self):
        with pytest.raises(ConfigError, match="max_workflows"):
            DashboardConfig(max_workflows=0).validate()


class TestApplyOverrides:
    def test_none_values_ignored(self, config):
        updated = apply_overrides(config, refresh_interval=None, show_docker=None)
        assert updated == config

    def test_scalars_replaced(self, config):
        updated = apply_overrides(config, refresh_interval=2.0, show_docker=True)
        assert updated.refresh_interval == 2.0
        assert updated.show_docker is True
        assert config.refresh_interval == 5.0

    def test_lists_merged_without_duplicates(self, config):
        updated = apply_overrides(config, repositories=["acme/web", "acme/docs"], organizations=["acme"])
        assert updated.repositories == ["acme/api", "acme/web", "acme/infra", "acme/docs"]
        assert updated.organizations == ["acme"]


class OrgGitHub:
    def __init__(self, orgs):
        self.orgs = orgs
        self.timeouts = []

    async def list_repositories(self, owner, limit=100, timeout=15.0):
        self.timeouts.append(timeout)
        result = self.orgs[owner]
        if isinstance(result, Exception):
            raise result
        return result


class TestBuildRepositoryList:
    def test_explicit_only(self, config):
        github = OrgGitHub({})
        assert asyncio.run(build_repository_list(config, github)) == ["acme/api", "acme/web", "acme/infra"]
        assert github.timeouts == []

    def test_organizations_expanded(self, config):
        config.organizations = ["acme", "tools"]
        github = OrgGitHub({
            "acme": ["acme/api", "acme/billing"],
            "tools": ["tools/lint"],
        })
        repos = asyncio.run(build_repository_list(config, github))
        assert repos == ["acme/api", "acme/web", "acme/infra", "acme/billing", "tools/lint"]
        assert github.timeouts == [15.0, 15.0]

    def test_failed_organization_skipped(self, config):
        config.organizations = ["acme", "ghost"]
        github = OrgGitHub({
            "acme": ["acme/billing"],
            "ghost": SourceError("could not resolve to an Organization", source="gh"),
        })
        repos = asyncio.run(build_repository_list(config, github))
        assert repos[-1] == "acme/billing"

    def test_rate_limit_propagates(self, config):
        config.organizations = ["acme"]
        github = OrgGitHub({"acme": RateLimitError()})
        with pytest.raises(RateLimitError):
            asyncio.run(build_repository_list(config, github))
