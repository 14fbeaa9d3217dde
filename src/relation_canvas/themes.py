"""
Renderer palettes for relation-canvas.

Each theme defines colors for:
- Canvas background and grid
- Person cards (fill, text, selection)
- Connections (base, selected, highlighted path)
- Overlays (alignment guides, marquee, rubber band)

Frame and group colors are data, not theme, and live in ``models``.
"""

from __future__ import annotations
from dataclasses import dataclass


@dataclass
class ThemePalette:
    """Color palette for a theme."""

    # Canvas
    background: str
    grid_color: str

    # Person cards
    card_fill: str
    card_text: str
    card_muted: str
    card_selected: str
    badge_fill: str

    # Groups
    group_label: str
    group_fill_alpha: int
    group_solid_alpha: int

    # Connections
    connection: str
    connection_selected: str
    path_highlight: str

    # Overlays
    guide_color: str
    marquee_color: str
    marquee_fill_alpha: int


# Deep navy canvas with a cyan accent
DARK_THEME = ThemePalette(
    background="#0b0c10",
    grid_color="#45a29e",
    card_fill="#1f2833",
    card_text="#e5f6f5",
    card_muted="#8aa3a8",
    card_selected="#66fcf1",
    badge_fill="#313244",
    group_label="#c5c6c7",
    group_fill_alpha=28,
    group_solid_alpha=90,
    connection="#3d8f8a",
    connection_selected="#66fcf1",
    path_highlight="#fbbf24",
    guide_color="#ec4899",
    marquee_color="#66fcf1",
    marquee_fill_alpha=40,
)


# Light theme - white background with darker accents
LIGHT_THEME = ThemePalette(
    background="#ffffff",
    grid_color="#9ca0b0",
    card_fill="#eff1f5",
    card_text="#1e1e2e",
    card_muted="#6c6f85",
    card_selected="#1e66f5",
    badge_fill="#dce0e8",
    group_label="#4c4f69",
    group_fill_alpha=36,
    group_solid_alpha=110,
    connection="#8c8fa1",
    connection_selected="#1e66f5",
    path_highlight="#df8e1d",
    guide_color="#d20f39",
    marquee_color="#1e66f5",
    marquee_fill_alpha=32,
)


# Theme registry
THEMES: dict[str, ThemePalette] = {
    "dark": DARK_THEME,
    "light": LIGHT_THEME,
}


def get_theme(name: str) -> ThemePalette:
    """Get a theme palette by name.

    Args:
        name: Theme name ("dark" or "light")

    Returns:
        ThemePalette for the requested theme

    Raises:
        ValueError: If theme name is not recognized
    """
    if name not in THEMES:
        valid = ", ".join(THEMES.keys())
        raise ValueError(f"Unknown theme '{name}'. Valid themes: {valid}")
    return THEMES[name]
