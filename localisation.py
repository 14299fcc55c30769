import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

LOCALISATION_DIR = Path(__file__).resolve().parent / "localisation"
DEFAULT_LANGUAGE = "en"
TABLE_NAME = "strings.json"
# Sections fusionnées d'une langue à l'autre.
_SECTIONS = ("strings", "color_names")
_LOGGER = logging.getLogger(__name__)


def normalize_language(lang: str) -> str:
    return (lang or "").strip().lower().replace("-", "_")


def _language_candidates(lang: str) -> List[str]:
    """``fr_ca`` -> ``fr_ca``, ``fr``, ``en`` : du plus précis au repli anglais."""
    code = normalize_language(lang)
    chain = [code, code.partition("_")[0], DEFAULT_LANGUAGE]
    return [c for i, c in enumerate(chain) if c and c not in chain[:i]]


def _table_path(code: str) -> Path:
    return LOCALISATION_DIR / code / TABLE_NAME


def _read_table(code: str) -> Dict[str, Any]:
    path = _table_path(code)
    if not path.is_file():
        return {}
    return json.loads(path.read_text(encoding="utf-8"))


def available_languages() -> List[str]:
    if not LOCALISATION_DIR.is_dir():
        return [DEFAULT_LANGUAGE]
    codes = sorted(entry.name for entry in LOCALISATION_DIR.iterdir() if _table_path(entry.name).is_file())
    return codes or [DEFAULT_LANGUAGE]


@lru_cache(maxsize=None)
def _merged_localisation(lang: str) -> Dict[str, Dict[str, str]]:
    merged: Dict[str, Dict[str, str]] = {section: {} for section in _SECTIONS}
    # Le repli est appliqué d'abord, la langue la plus précise écrase.
    for code in reversed(_language_candidates(lang)):
        table = _read_table(code)
        for section, values in merged.items():
            values.update(table.get(section, {}))
    _warn_missing_strings(lang)
    return merged


def tr(lang: str, key: str, **values: Any) -> str:
    """
    Chaîne traduite pour ``key`` ; la clé elle-même si elle est inconnue.
    Les ``values`` remplissent les champs ``{nom}`` du gabarit.
    """
    text = _merged_localisation(lang)["strings"].get(key, key)
    return text.format(**values) if values else text


def color_label(name: str, lang: str) -> str:
    return _merged_localisation(lang)["color_names"].get(name, name)


def language_display_name(lang: str) -> str:
    for code in _language_candidates(lang):
        name = _read_table(code).get("strings", {}).get("language_name")
        if name:
            return name
    return normalize_language(lang) or DEFAULT_LANGUAGE


def resolve_language(lang: str) -> str:
    return next((code for code in _language_candidates(lang) if _table_path(code).is_file()), DEFAULT_LANGUAGE)


@lru_cache(maxsize=None)
def _missing_string_keys(lang: str) -> List[str]:
    code = normalize_language(lang)
    if code in ("", DEFAULT_LANGUAGE):
        return []
    local = _read_table(code).get("strings")
    reference = _read_table(DEFAULT_LANGUAGE).get("strings")
    # Une table absente se replie entièrement sur l'anglais sans avertissement.
    if not local or not reference:
        return []
    return sorted(reference.keys() - local.keys())


def _warn_missing_strings(lang: str) -> None:
    missing = _missing_string_keys(lang)
    if not missing:
        return
    _LOGGER.warning("Missing localisation strings for %s: %s", normalize_language(lang), ", ".join(missing))
