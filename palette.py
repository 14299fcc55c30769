from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

PRESET_COLORS: List[str] = [
    # Chauds, terres et verts
    "#dc2626",
    "#ea580c",
    "#eab308",
    "#84cc16",
    "#65a30d",
    "#16a34a",
    "#15803d",
    # Verts froids, bleus et violets
    "#10b981",
    "#0d9488",
    "#06b6d4",
    "#3b82f6",
    "#6366f1",
    "#a855f7",
    "#8b5cf6",
    # Roses et neutres
    "#d946ef",
    "#ec4899",
    "#f43f5e",
    "#78350f",
    "#000000",
    "#6b7280",
    "#ffffff",
]

COLOR_NAMES: Dict[str, str] = {
    "#dc2626": "Red",
    "#ea580c": "Orange",
    "#eab308": "Yellow",
    "#84cc16": "Lime",
    "#65a30d": "Olive",
    "#16a34a": "Green",
    "#15803d": "Dark Green",
    "#10b981": "Emerald",
    "#0d9488": "Teal",
    "#06b6d4": "Cyan",
    "#3b82f6": "Blue",
    "#6366f1": "Indigo",
    "#a855f7": "Purple",
    "#8b5cf6": "Violet",
    "#d946ef": "Fuchsia",
    "#ec4899": "Pink",
    "#f43f5e": "Rose",
    "#78350f": "Brown",
    "#000000": "Black",
    "#6b7280": "Gray",
    "#ffffff": "White",
}

CUSTOM_COLOR_NAME = "Custom"


def color_name(hex_color: str) -> str:
    return COLOR_NAMES.get((hex_color or "").strip().lower(), CUSTOM_COLOR_NAME)


@dataclass(frozen=True)
class ThemeColors:
    background: str
    gear_stroke: str
    rotor_stroke: str
    spoke_stroke: str
    arm_stroke: str
    badge_background: str
    badge_text: str
    footer_text: str
    contact: str = "#ef4444"


THEMES: Dict[str, ThemeColors] = {
    "dark": ThemeColors(
        background="#020617",
        gear_stroke="#475569",
        rotor_stroke="#64748b",
        spoke_stroke="#334155",
        arm_stroke="#64748b",
        badge_background="#000000",
        badge_text="#ffffff",
        footer_text="#475569",
    ),
    "light": ThemeColors(
        background="#ffffff",
        gear_stroke="#cbd5e1",
        rotor_stroke="#94a3b8",
        spoke_stroke="#e2e8f0",
        arm_stroke="#94a3b8",
        badge_background="#ffffff",
        badge_text="#000000",
        footer_text="#94a3b8",
    ),
}


def theme_colors(theme: str) -> ThemeColors:
    colors = THEMES.get(theme)
    if colors is None:
        raise ValueError(f"Unknown theme: {theme}")
    return colors


__all__ = [
    "COLOR_NAMES",
    "CUSTOM_COLOR_NAME",
    "PRESET_COLORS",
    "THEMES",
    "ThemeColors",
    "color_name",
    "theme_colors",
]
