"""Internationalization support — simple key-based translations for en_US and zh_CN."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

_current_lang: str = "en_US"
_SUPPORTED = ("en_US", "zh_CN")
_I18N_DIR = Path(__file__).parent

# Lazy-loaded translation cache: lang → dict
_cache: dict[str, dict[str, str]] = {}


def _load(lang: str) -> dict[str, str]:
    """Load and cache a language JSON file."""
    if lang not in _cache:
        fp = _I18N_DIR / f"{lang}.json"
        if fp.exists():
            with open(fp, "r", encoding="utf-8") as f:
                _cache[lang] = json.load(f)
        else:
            _cache[lang] = {}
    return _cache[lang]


def set_language(lang: str) -> None:
    """Set the active language.  Falls back to en_US if unsupported."""
    global _current_lang
    _current_lang = lang if lang in _SUPPORTED else "en_US"


def current_language() -> str:
    """Return the current active language code."""
    return _current_lang


def supported_languages() -> tuple[str, ...]:
    """Return tuple of supported language codes."""
    return _SUPPORTED


def t(key: str, **kwargs: Any) -> str:
    """Translate *key* to the current language.

    Supports ``{name}``-style placeholders via keyword arguments::

        t("worlds.selected_count", count=3)
        # → "3 world(s) selected for backup" (en_US)
        # → "已选择 3 个世界进行备份" (zh_CN)
    """
    table = _load(_current_lang)
    text = table.get(key)
    if text is None:
        # Fall back to en_US, then raw key
        text = _load("en_US").get(key, key)
    if kwargs:
        try:
            text = text.format(**kwargs)
        except (KeyError, IndexError):
            pass
    return text
