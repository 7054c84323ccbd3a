"""Tests for theme handling."""

import pytest

from tinytool_submitter.themes import (
    NO_THEME_LABEL,
    THEME_NAMES,
    THEME_OPTIONS,
    THEME_PALETTES,
    display_theme,
    is_no_theme_flag_value,
    normalize_theme_selection,
    parse_theme_flag,
    theme_flag_values,
)


def test_options_start_with_site_default():
    assert THEME_OPTIONS[0] == NO_THEME_LABEL
    assert THEME_OPTIONS[1:] == THEME_NAMES
    assert len(THEME_NAMES) == 12


def test_palettes_are_hex_colors():
    for colors in THEME_PALETTES.values():
        assert len(colors) == 4
        assert all(c.startswith("#") and len(c) == 7 for c in colors)


@pytest.mark.parametrize("value,expected", [
    ("neon", "neon"),
    ("  Retro ", "retro"),
    ("NONE", None),
    ("default", None),
    ("site-default", None),
])
def test_parse_theme_flag(value, expected):
    assert parse_theme_flag(value) == expected


def test_parse_theme_flag_invalid():
    with pytest.raises(ValueError, match="Valid values: none, terminal"):
        parse_theme_flag("vaporwave")


def test_is_no_theme_flag_value():
    assert is_no_theme_flag_value(" None ")
    assert not is_no_theme_flag_value("neon")


def test_normalize_theme_selection():
    assert normalize_theme_selection(NO_THEME_LABEL) is None
    assert normalize_theme_selection("none (SITE DEFAULT)") is None
    assert normalize_theme_selection("") is None
    assert normalize_theme_selection(None) is None
    assert normalize_theme_selection("ocean") == "ocean"


def test_display_theme():
    assert display_theme(None) == NO_THEME_LABEL
    assert display_theme("candy") == "candy"


def test_theme_flag_values():
    assert theme_flag_values()[0] == "none"
    assert "synthwave" in theme_flag_values()
