"""
██████╗  ██████╗  ███████╗ ███████╗ ███████╗ ███╗   ██╗  ██████╗ ███████╗
██╔══██╗ ██╔══██╗ ██╔════╝ ██╔════╝ ██╔════╝ ████╗  ██║ ██╔════╝ ██╔════╝
██████╔╝ ██████╔╝ █████╗   ███████╗ █████╗   ██╔██╗ ██║ ██║      █████╗
██╔═══╝  ██╔══██╗ ██╔══╝   ╚════██║ ██╔══╝   ██║╚██╗██║ ██║      ██╔══╝
██║      ██║  ██║ ███████╗ ███████║ ███████╗ ██║ ╚████║ ╚██████╗ ███████╗
╚═╝      ╚═╝  ╚═╝ ╚══════╝ ╚══════╝ ╚══════╝ ╚═╝  ╚═══╝  ╚═════╝ ╚══════╝
src/presence_confirm/utils/localization.py
Localization utilities for participant-facing messages.

Every sentence the participant reads goes through ``t()`` so the console
flow can be shown in English or Brazilian Portuguese.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_CATALOGUE = Path(__file__).resolve().parents[1] / "i18n.json"

_log = logging.getLogger("presence_confirm.localization")

_ALIASES = {"en": "en", "en_us": "en", "pt": "pt_BR", "pt_br": "pt_BR"}


class LocalizationManager:
    """Manages localization and provides translated strings"""

    LANGUAGES = {
        "en": "English",
        "pt_BR": "Português (Brasil)",
    }

    def __init__(self, i18n_file: Optional[Path | str] = None):
        """
        Initialize localization manager

        Args:
            i18n_file: Path to the i18n JSON file, defaults to the bundled catalogue
        """
        self.i18n_file = Path(i18n_file) if i18n_file else DEFAULT_CATALOGUE
        self.translations: Dict[str, Dict[str, str]] = {}
        self.current_language = "en"
        self.load_translations()
        self.detect_language()

    def load_translations(self) -> None:
        """Load translations from i18n file"""
        try:
            with open(self.i18n_file, "r", encoding="utf-8") as f:
                payload = json.load(f)
            if isinstance(payload, dict):
                self.translations = payload
        except (OSError, ValueError) as e:
            _log.warning("Could not load translations from %s: %s", self.i18n_file, e)
            self.translations = {}

    def detect_language(self) -> None:
        """Pick the language from LANGUAGE_PREFERENCE, then LANG."""
        preferred = os.getenv("LANGUAGE_PREFERENCE", "")
        if preferred and self.set_language(preferred):
            return
        lang = os.getenv("LANG", "").lower()
        if lang.startswith("pt"):
            self.current_language = "pt_BR"
        else:
            self.current_language = "en"

    def set_language(self, language: str) -> bool:
        """
        Set current language

        Args:
            language: Language code (en, pt_BR)

        Returns:
            True if language was set successfully
        """
        code = _ALIASES.get(language.strip().lower().replace("-", "_"), language.strip())
        if code in self.LANGUAGES and code in self.translations:
            self.current_language = code
            return True
        _log.debug("Unsupported language %r; keeping %s", language, self.current_language)
        return False

    def t(self, key: str, fallback: Optional[str] = None, **values: Any) -> str:
        """
        Get translated string

        Args:
            key: Translation key
            fallback: Fallback string if translation not found
            values: Placeholders substituted with ``str.format``

        Returns:
            Translated string or fallback
        """
        template = self.translations.get(self.current_language, {}).get(key)
        if not template and self.current_language != "en":
            template = self.translations.get("en", {}).get(key)
        if not template:
            template = fallback or key
        if values:
            try:
                return template.format(**values)
            except (KeyError, IndexError, ValueError):
                return template
        return template


# Global instance for easy access
_localization_manager: Optional[LocalizationManager] = None


def get_localization_manager() -> LocalizationManager:
    """Get the global localization manager instance"""
    global _localization_manager
    if _localization_manager is None:
        _localization_manager = LocalizationManager()
    return _localization_manager


def t(key: str, fallback: Optional[str] = None, **values: Any) -> str:
    """Shorthand function for getting translated strings"""
    return get_localization_manager().t(key, fallback, **values)


def set_language(language: str) -> bool:
    """Set the current language"""
    return get_localization_manager().set_language(language)


__all__ = [
    "LocalizationManager",
    "get_localization_manager",
    "t",
    "set_language",
]
