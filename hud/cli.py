"""Command-line entry point for gh-hud."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import apply_overrides, build_repository_list, load_config
from .dashboard import HudApp
from .errors import ConfigError, HudError
from .sources import GitHubSource
from .state import DashboardState

logger = logging.getLogger(__name__)

LOG_PATH = Path.home() / ".gh-hud" / "logs" / "dashboard.log"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gh-hud",
        description="Live terminal dashboard for GitHub Actions runs, pull requests and compose services",
    )
    parser.add_argument("repositories", nargs="*", metavar="OWNER/REPO",
                        help="Repositories to watch (added to those in the config file)")
    parser.add_argument("-c", "--config", type=Path,
                        help="Config file (YAML or JSON); default: search the usual locations")
    parser.add_argument("-o", "--org", dest="organizations", action="append", metavar="ORG",
                        help="Watch every repository of a user or organization (repeatable)")
    parser.add_argument("-i", "--interval", dest="refresh_interval", type=float,
                        help="Refresh interval in seconds")
    parser.add_argument("--prs", dest="show_pull_requests", action="store_true", default=None,
                        help="Show the pull request strip")
    parser.add_argument("--docker", dest="show_docker", action="store_true", default=None,
                        help="Show the container services strip")
    parser.add_argument("--max-workflows", type=int,
                        help="Runs fetched per repository each cycle")
    parser.add_argument("--log-file", type=Path, default=LOG_PATH,
                        help=f"Diagnostic log file (default: {LOG_PATH})")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Write debug output to the log file")
    return parser


def configure_logging(path: Path, verbose: bool = False) -> None:
    """Send diagnostics to a file; the terminal belongs to the dashboard."""
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    logging.basicConfig(
        handlers=[handler],
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def resolve_config(args: argparse.Namespace):
    """Config file plus command-line overrides, with organizations expanded."""
    config = load_config(args.config)
    config = apply_overrides(
        config,
        repositories=args.repositories or None,
        organizations=args.organizations,
        refresh_interval=args.refresh_interval,
        show_pull_requests=args.show_pull_requests,
        show_docker=args.show_docker,
        max_workflows=args.max_workflows,
    )
    config.validate()
    if config.organizations:
        github = GitHubSource(timeout=config.query_timeout)
        config.repositories = asyncio.run(build_repository_list(config, github))
    if not config.repositories:
        raise ConfigError(
            "No repositories to watch. Pass OWNER/REPO arguments, --org, "
            "or list repositories in ~/.gh-hud.yaml"
        )
    return config


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.verbose)

    try:
        config = resolve_config(args)
    except HudError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    state = DashboardState(config)
    try:
        HudApp(state).run()
    except Exception:
        logger.exception("Dashboard crashed")
        raise
    finally:
        state.save_preferences()
    return 0


if __name__ == "__main__":
    sys.exit(main())
