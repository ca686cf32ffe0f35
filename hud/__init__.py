"""gh-hud: a live terminal dashboard for GitHub Actions, pull requests and compose services."""

__version__ = "0.1.0"
