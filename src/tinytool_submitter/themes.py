"""Page themes offered by Tiny Tool Town."""

from __future__ import annotations

NO_THEME_LABEL = "None (site default)"
NO_THEME_FLAG_VALUES = ("none", "default", "site-default")

# name -> (background, surface, primary, accent)
THEME_PALETTES: dict[str, tuple[str, str, str, str]] = {
    "terminal": ("#0A0A0A", "#111111", "#00FF41", "#39FF14"),
    "neon": ("#0D0221", "#150535", "#FF2A6D", "#05D9E8"),
    "minimal": ("#FAFAFA", "#FFFFFF", "#333333", "#555555"),
    "pastel": ("#FEF6F9", "#FFFFFF", "#E8829A", "#82B4E8"),
    "matrix": ("#000800", "#001200", "#00FF00", "#00CC00"),
    "sunset": ("#1A0A2E", "#251244", "#FF6B35", "#FF9F1C"),
    "ocean": ("#0A1628", "#0F2035", "#00B4D8", "#0096C7"),
    "forest": ("#1A2416", "#243020", "#82B74B", "#C4A35A"),
    "candy": ("#FF69B4", "#FF91CB", "#FFFF00", "#00FFCC"),
    "synthwave": ("#1A1033", "#241546", "#FF71CE", "#01CDFE"),
    "newspaper": ("#F2EFE6", "#FFFDF7", "#B91C1C", "#1A1A1A"),
    "retro": ("#1A1200", "#2A1F00", "#FFB000", "#FF8C00"),
}

THEME_NAMES = list(THEME_PALETTES)
THEME_OPTIONS = [NO_THEME_LABEL, *THEME_NAMES]


def normalize_theme_selection(value: str | None) -> str | None:
    """Map the no-theme label (or nothing) to None."""
    if not value or not value.strip():
        return None
    if value.strip().lower() == NO_THEME_LABEL.lower():
        return None
    return value.strip()


def is_no_theme_flag_value(value: str) -> bool:
    return value.strip().lower() in NO_THEME_FLAG_VALUES


def theme_flag_values() -> list[str]:
    return ["none", *THEME_NAMES]


def parse_theme_flag(value: str) -> str | None:
    """Parse a ``--theme`` value. Raises ValueError for unknown themes."""
    if is_no_theme_flag_value(value):
        return None
    wanted = value.strip().lower()
    for name in THEME_NAMES:
        if name == wanted:
            return name
    raise ValueError(
        f"Invalid theme '{value}'. Valid values: {', '.join(theme_flag_values())}"
    )


def display_theme(value: str | None) -> str:
    return value or NO_THEME_LABEL
