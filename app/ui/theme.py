"""Theme configuration — Fluent theme mode and accent colour."""

from __future__ import annotations

from qfluentwidgets import setTheme, setThemeColor, Theme

_MODES = {"light": Theme.LIGHT, "dark": Theme.DARK, "auto": Theme.AUTO}

# Grass-block green
ACCENT_COLOR = "#3C8527"


def apply_theme(mode: str = "auto", accent_color: str = ACCENT_COLOR) -> None:
    """Apply the application theme (``light``, ``dark`` or ``auto``)."""
    setTheme(_MODES.get(mode, Theme.AUTO))
    setThemeColor(accent_color)
