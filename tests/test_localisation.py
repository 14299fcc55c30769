import json
import logging
from pathlib import Path

import pytest

import localisation
from localisation import (
    DEFAULT_LANGUAGE,
    LOCALISATION_DIR,
    available_languages,
    language_display_name,
    color_label,
    normalize_language,
    resolve_language,
    tr,
)
from palette import COLOR_NAMES, CUSTOM_COLOR_NAME, PRESET_COLORS, color_name, theme_colors


def _strings(lang):
    with (LOCALISATION_DIR / lang / "strings.json").open(encoding="utf-8") as handle:
        return json.load(handle)


def test_tables_ship_beside_module():
    assert LOCALISATION_DIR.parent == Path(localisation.__file__).resolve().parent
    for lang in ("en", "fr"):
        assert (LOCALISATION_DIR / lang / "strings.json").is_file()
    assert tr("en", "footer_text") == "Made with EllipSpiro"
    assert available_languages() == ["en", "fr"]


def test_tables_have_same_keys():
    en = _strings("en")
    fr = _strings("fr")
    assert set(en["strings"]) == set(fr["strings"])
    assert set(COLOR_NAMES.values()) | {CUSTOM_COLOR_NAME} <= set(fr["color_names"])


def test_tr_formats_values():
    assert tr("en", "panel_ratio", value="1/3") == "Rotor/stator ratio: 1/3"
    assert tr("fr", "footer_text") == "Créé avec EllipSpiro"


def test_tr_falls_back_to_english_and_key():
    assert tr("fr_CA", "menu_file") == "Fichier"
    assert tr("de", "menu_file") == "File"
    assert tr("en", "no_such_key") == "no_such_key"


def test_language_resolution():
    assert normalize_language(" FR-ca ") == "fr_ca"
    assert resolve_language("fr-CA") == "fr"
    assert resolve_language("de") == DEFAULT_LANGUAGE
    assert resolve_language("") == DEFAULT_LANGUAGE


def test_color_labels():
    assert color_name("#DC2626") == "Red"
    assert color_name("#123456") == CUSTOM_COLOR_NAME
    assert color_label("Red", "fr") == "Rouge"
    assert color_label("Red", "en") == "Red"
    assert color_label(CUSTOM_COLOR_NAME, "fr") == "Personnalisée"


def test_every_preset_has_a_name():
    assert all(color_name(hex_color) != CUSTOM_COLOR_NAME for hex_color in PRESET_COLORS)


def test_unknown_theme_is_rejected():
    assert theme_colors("dark").background == "#020617"
    with pytest.raises(ValueError):
        theme_colors("sepia")


def test_missing_strings_are_reported(tmp_path, monkeypatch, caplog):
    (tmp_path / "en").mkdir()
    (tmp_path / "xx").mkdir()
    (tmp_path / "en" / "strings.json").write_text(
        json.dumps({"strings": {"a": "A", "b": "B"}}), encoding="utf-8"
    )
    (tmp_path / "xx" / "strings.json").write_text(
        json.dumps({"strings": {"a": "Ax"}}), encoding="utf-8"
    )
    monkeypatch.setattr(localisation, "LOCALISATION_DIR", tmp_path)
    localisation._merged_localisation.cache_clear()
    localisation._missing_string_keys.cache_clear()
    try:
        with caplog.at_level(logging.WARNING, logger="localisation"):
            assert tr("xx", "b") == "B"
        assert "Missing localisation strings for xx: b" in caplog.text
    finally:
        localisation._merged_localisation.cache_clear()
        localisation._missing_string_keys.cache_clear()


def test_available_languages_and_names():
    assert available_languages() == ["en", "fr"]
    assert language_display_name("fr") == "Français"
    assert language_display_name("fr_CA") == "Français"
    assert language_display_name("en") == "English"
