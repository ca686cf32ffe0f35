"""Textual render surface for gh-hud."""

from .app import HudApp

__all__ = ["HudApp"]
