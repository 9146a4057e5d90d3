"""Colour palettes for the board.

Every theme defines the same style classes: one per progress lane, one per
priority, plus the chrome (text, bucket headers, toast bar, selection).
"""

from typing import Dict

from prompt_toolkit.styles import Style

Palette = Dict[str, str]

_LANES: Palette = {
    "progress.backlog": "#7a7f85",
    "progress.todo": "#e5c07b bold",
    "progress.in_progress": "#61afef bold",
    "progress.done": "#9ad974 bold",
}

_PRIORITIES: Palette = {
    "priority.low": "#6d717a",
    "priority.medium": "#97a0a9",
    "priority.high": "#f9ac60 bold",
    "priority.critical": "#ff5156 bold",
}

THEMES: Dict[str, Palette] = {
    "dark-olive": {
        **_LANES,
        **_PRIORITIES,
        "": "#d0d8c8",
        "text": "#d0d8c8",
        "text.dim": "#98a08c",
        "text.dimmer": "#6b7262",
        "selected": "bg:#3a4030 #eef2e6 bold",
        "header": "#c5d86d bold",
        "bucket": "#b4a7d6 bold underline",
        "border": "#4e5645",
        "toast": "#e5c07b",
    },
    "light-paper": {
        **_LANES,
        **_PRIORITIES,
        "progress.backlog": "#8c8c8c",
        "progress.todo": "#9a6700 bold",
        "progress.in_progress": "#0969da bold",
        "progress.done": "#1a7f37 bold",
        "priority.low": "#8c8c8c",
        "priority.medium": "#57606a",
        "": "#24292f",
        "text": "#24292f",
        "text.dim": "#57606a",
        "text.dimmer": "#8c959f",
        "selected": "bg:#ddf4ff #0a3069 bold",
        "header": "#8250df bold",
        "bucket": "#6639ba bold underline",
        "border": "#d0d7de",
        "toast": "#9a6700",
    },
}

DEFAULT_THEME = "dark-olive"


def get_theme_palette(theme: str) -> Palette:
    """Palette for ``theme``; unknown names get the default one."""
    return dict(THEMES.get(theme) or THEMES[DEFAULT_THEME])


def build_style(theme: str) -> Style:
    return Style.from_dict(get_theme_palette(theme))


__all__ = ["THEMES", "DEFAULT_THEME", "get_theme_palette", "build_style"]
