"""
cli/theme.py
Semantic colors for console output.

Supports:
  - NO_COLOR=1 → disable all colors
  - PMGR_THEME=minimal → fewer colors

Usage:
    from cli.theme import theme
    console.print(theme.wrap(theme.error, "Error"))
"""

from __future__ import annotations

import os


class Theme:
    """Semantic color definitions for consistent CLI appearance."""

    def __init__(self, environ=None):
        env = os.environ if environ is None else environ
        self._theme_name = env.get("PMGR_THEME", "default")

        if env.get("NO_COLOR"):
            self._apply_no_color()
        elif self._theme_name == "minimal":
            self._apply_minimal()
        else:
            self._apply_default()

    def _apply_default(self):
        self.warning = "yellow"
        self.error = "bold red"

    def _apply_minimal(self):
        """Minimal theme — plain red errors."""
        self.warning = "yellow"
        self.error = "red"

    def _apply_no_color(self):
        self.warning = ""
        self.error = ""

    def wrap(self, style: str, text: str) -> str:
        """Wrap text in rich markup for ``style`` (no-op for empty style)."""
        if not style:
            return text
        return f"[{style}]{text}[/{style}]"


# Singleton instance
theme = Theme()
