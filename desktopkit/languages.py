"""Catalogue of the locales available on the system, with readable names.

Available locales are discovered from the C library's locale directory.
Language and territory names come from the ISO code tables. A locale's
label carries extra detail (script, territory, codeset) only when
several available locales share its language or territory.
"""

from __future__ import annotations

import logging
import os
import threading
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from desktopkit.iso_codes import IsoCodes
from desktopkit.locales import (
    construct_language_name,
    get_translated_modifier,
    language_name_is_valid,
    locale_codeset,
    normalize_codeset,
    parse_locale,
)

log = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

LIBLOCALEDIR = "/usr/lib/locale"
GNOMELOCALEDIR = "/usr/share/locale"


@dataclass
class _Locale:
    id: str
    name: str
    language_code: str
    territory_code: Optional[str]
    codeset: Optional[str]
    modifier: Optional[str]


def _is_utf8(name: Optional[str]) -> bool:
    codeset = locale_codeset(name)
    return codeset is not None and normalize_codeset(codeset) == "UTF-8"


def _codeset_details(name: Optional[str]) -> tuple[Optional[str], bool]:
    """The codeset of locale *name* and whether it is UTF-8.

    An unavailable locale reports no codeset and counts as UTF-8.
    """
    codeset = locale_codeset(name)
    if codeset is None:
        return None, True
    return codeset, normalize_codeset(codeset) == "UTF-8"


class LocaleCatalog:
    """The locales available on the system and their display names."""

    def __init__(
        self,
        iso_codes: Optional[IsoCodes] = None,
        liblocaledir: PathLike = LIBLOCALEDIR,
        translations_dir: PathLike = GNOMELOCALEDIR,
    ) -> None:
        self.iso_codes = iso_codes if iso_codes is not None else IsoCodes()
        self.liblocaledir = Path(liblocaledir)
        self.translations_dir = Path(translations_dir)
        self._lock = threading.RLock()
        self._locales: dict[str, _Locale] = {}
        self._collected = False

    def language_has_translations(self, code: str) -> bool:
        """Whether message catalogues exist for language *code*."""
        directory = self.translations_dir / code / "LC_MESSAGES"
        try:
            return any(entry.name.endswith(".mo") for entry in os.scandir(directory))
        except OSError:
            return False

    def add_locale(self, language_name: str, utf8_only: bool = True) -> bool:
        """Add *language_name* to the available locales if it is usable.

        With *utf8_only*, only UTF-8 locales that have translations are
        accepted, and a name without a codeset is tried as UTF-8.
        Returns whether the locale was added.
        """
        if not language_name:
            raise ValueError("language_name must be a non-empty string")

        if _is_utf8(language_name):
            name = language_name
        elif utf8_only:
            if "." in language_name:
                return False
            name = f"{language_name}.UTF-8"
            if not _is_utf8(name):
                return False
        else:
            name = language_name

        if not language_name_is_valid(name):
            log.debug("Ignoring '%s' as a locale, since it's invalid", name)
            return False

        try:
            parsed = parse_locale(name)
        except ValueError:
            return False

        locale_id = construct_language_name(
            parsed.language, parsed.territory, None, parsed.modifier
        )
        full_name = construct_language_name(
            parsed.language, parsed.territory, parsed.codeset, parsed.modifier
        )

        if utf8_only and not any(
            self.language_has_translations(candidate)
            for candidate in (full_name, locale_id, parsed.language)
        ):
            log.debug("Ignoring '%s' as a locale, since it lacks translations", full_name)
            return False

        if not utf8_only:
            locale_id = full_name

        entry = _Locale(
            id=locale_id,
            name=full_name,
            language_code=parsed.language,
            territory_code=parsed.territory,
            codeset=parsed.codeset,
            modifier=parsed.modifier,
        )
        with self._lock:
            old = self._locales.get(locale_id)
            if old is not None and len(old.name) > len(full_name):
                return False
            self._locales[locale_id] = entry
        return True

    def _locale_dirs(self) -> list[str]:
        try:
            entries = list(os.scandir(self.liblocaledir))
        except OSError:
            return []
        names = []
        for entry in entries:
            try:
                if entry.is_dir():
                    names.append(entry.name)
            except OSError:
                continue
        return sorted(names)

    def _collect(self) -> None:
        with self._lock:
            if self._collected:
                return
            self._collected = True
            found = False
            for name in self._locale_dirs():
                if self.add_locale(name, True):
                    found = True
            if not found:
                log.warning(
                    "Could not read list of available locales from libc, "
                    "list may be incomplete!"
                )

    def _counts(self) -> tuple[Counter, Counter]:
        self._collect()
        with self._lock:
            languages = Counter(
                loc.language_code for loc in self._locales.values() if loc.language_code
            )
            territories = Counter(
                loc.territory_code for loc in self._locales.values() if loc.territory_code
            )
        return languages, territories

    def _is_unique_language(self, code: str) -> bool:
        return self._counts()[0][code] == 1

    def _is_unique_territory(self, code: str) -> bool:
        return self._counts()[1][code] == 1

    def all_locales(self) -> list[str]:
        """Names of all available locales."""
        self._collect()
        with self._lock:
            return [loc.name for loc in self._locales.values()]

    def language_from_locale(
        self, locale: str, translation: Optional[str] = None
    ) -> Optional[str]:
        """A description of the language of *locale*, in *translation*.

        Script, territory and codeset are added only when needed to tell
        the locale apart from others of the same language.
        """
        if not locale:
            raise ValueError("locale must be a non-empty string")
        try:
            parsed = parse_locale(locale)
        except ValueError:
            return None

        language = self.iso_codes.translated_language(parsed.language, translation)
        if language is None:
            return None
        full = language

        if self._is_unique_language(parsed.language):
            return full or None

        if parsed.modifier is not None:
            modifier = get_translated_modifier(parsed.modifier, translation)
            if modifier:
                full += f" — {modifier}"

        if parsed.territory is not None:
            territory = self.iso_codes.translated_territory(parsed.territory, translation)
            if territory:
                full += f" ({territory})"

        langinfo_codeset, is_utf8 = _codeset_details(locale)
        codeset = parsed.codeset if parsed.codeset is not None else langinfo_codeset
        if not is_utf8 and codeset:
            full += f" [{codeset}]"

        return full or None

    def country_from_locale(
        self, locale: str, translation: Optional[str] = None
    ) -> Optional[str]:
        """A description of the country of *locale*, in *translation*.

        The language and script are added only when needed to tell the
        locale apart from others of the same territory.
        """
        if not locale:
            raise ValueError("locale must be a non-empty string")
        try:
            parsed = parse_locale(locale)
        except ValueError:
            return None

        if parsed.territory is None:
            return None

        full = self.iso_codes.translated_territory(parsed.territory, translation) or ""

        if self._is_unique_territory(parsed.territory):
            return full or None

        language = None
        if parsed.language:
            language = self.iso_codes.translated_language(parsed.language, translation)
        if language is not None:
            full += f" ({language}"

        if parsed.modifier is not None:
            modifier = get_translated_modifier(parsed.modifier, translation)
            if modifier:
                full += f" — {modifier}"

        if language is not None:
            full += ")"

        langinfo_codeset, is_utf8 = _codeset_details(translation)
        codeset = parsed.codeset if parsed.codeset is not None else langinfo_codeset
        if not is_utf8 and codeset:
            full += f" [{codeset}]"

        return full or None

    def language_from_code(self, code: str, translation: Optional[str] = None) -> Optional[str]:
        """The name of ISO 639 language *code*, in *translation*."""
        if code is None:
            raise ValueError("code must not be None")
        return self.iso_codes.translated_language(code, translation)

    def country_from_code(self, code: str, translation: Optional[str] = None) -> Optional[str]:
        """The name of ISO 3166 territory *code*, in *translation*."""
        if code is None:
            raise ValueError("code must not be None")
        return self.iso_codes.translated_territory(code, translation)