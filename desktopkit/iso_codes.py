"""Language and territory names from the ISO code tables.

The tables are the XML files of the iso-codes collection
(``iso_639.xml``, ``iso_639_3.xml`` and ``iso_3166.xml``). Their message
catalogues supply the translated names.
"""

from __future__ import annotations

import locale as _locale
import logging
import os
import threading
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Mapping, Optional, Union

from desktopkit.locales import GETTEXT_PACKAGE, language_name_is_valid
from desktopkit.translation import bind_textdomain, dgettext_l

log = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]

ISO_CODES_DATADIR = "/usr/share/xml/iso-codes"
ISO_CODES_LOCALESDIR = "/usr/share/locale"

LANGUAGES_DOMAIN = "iso_639"
LANGUAGES_3_DOMAIN = "iso_639_3"
TERRITORIES_DOMAIN = "iso_3166"

_FALLBACK_LANGUAGES = ("C", "POSIX")
_UNSPECIFIED = "Unspecified"

_LC_MESSAGES = getattr(_locale, "LC_MESSAGES", _locale.LC_CTYPE)

_Handler = Callable[[str, Mapping[str, str]], None]


def first_item_in_semicolon_list(text: str) -> str:
    """The first entry of a ``"; "``-separated list of names."""
    return text.split("; ", 1)[0]


def capitalize(text: Optional[str]) -> Optional[str]:
    """*text* with its first character in title case and the rest unchanged."""
    if not text:
        return text
    first = text[0]
    titled = first.title()
    if len(titled) != 1:
        upper = first.upper()
        titled = upper if len(upper) == 1 else first
    return titled + text[1:]


def _scan(data: Union[str, bytes], handler: _Handler) -> None:
    """Call *handler* for each start tag; raise ValueError on malformed XML.

    Elements seen before a syntax error have already been handled.
    """
    parser = ET.XMLPullParser(events=("start",))
    try:
        parser.feed(data)
        for _, element in parser.read_events():
            handler(element.tag, element.attrib)
        parser.close()
        for _, element in parser.read_events():
            handler(element.tag, element.attrib)
    except ET.ParseError as exc:
        raise ValueError(str(exc)) from exc


def _entry_names(
    attrs: Mapping[str, str], code_lengths: Mapping[str, tuple[int, ...]]
) -> Optional[tuple[list[str], str]]:
    """Codes and display name of one table entry, or ``None`` to skip it."""
    codes: list[str] = []
    common_name: Optional[str] = None
    name: Optional[str] = None
    for key, value in attrs.items():
        if key in code_lengths:
            if value:
                if len(value) not in code_lengths[key]:
                    return None
                codes.append(value)
        elif key == "common_name":
            if value:
                common_name = value
        elif key == "name":
            name = value
    if common_name is not None:
        name = common_name
    if name is None:
        return None
    return codes, name


_LANGUAGE_CODES = {
    "iso_639_1_code": (2,),
    "iso_639_2B_code": (3,),
    "iso_639_2T_code": (3,),
    "id": (2, 3),
}

_TERRITORY_CODES = {
    "alpha_2_code": (2,),
    "alpha_3_code": (3,),
    "numeric_code": (3,),
}


def _language_handler(into: dict[str, str]) -> _Handler:
    def handle(tag: str, attrs: Mapping[str, str]) -> None:
        if tag not in ("iso_639_entry", "iso_639_3_entry"):
            return
        entry = _entry_names(attrs, _LANGUAGE_CODES)
        if entry is None:
            return
        codes, name = entry
        for code in codes:
            into[code] = name

    return handle


def _territory_handler(into: dict[str, str]) -> _Handler:
    def handle(tag: str, attrs: Mapping[str, str]) -> None:
        if tag != "iso_3166_entry":
            return
        entry = _entry_names(attrs, _TERRITORY_CODES)
        if entry is None:
            return
        codes, name = entry
        for code in codes:
            into[code] = name

    return handle


def parse_languages_xml(data: Union[str, bytes]) -> dict[str, str]:
    """Map every ISO 639 code in *data* to its language name.

    Raises ValueError if *data* is not well-formed XML.
    """
    result: dict[str, str] = {}
    _scan(data, _language_handler(result))
    return result


def parse_territories_xml(data: Union[str, bytes]) -> dict[str, str]:
    """Map every ISO 3166 code in *data* to its territory name.

    Raises ValueError if *data* is not well-formed XML.
    """
    result: dict[str, str] = {}
    _scan(data, _territory_handler(result))
    return result


def _load_table(path: Path, handler: _Handler) -> None:
    try:
        data = path.read_bytes()
    except OSError as exc:
        log.warning("Failed to load '%s': %s", path, exc)
        return
    try:
        _scan(data, handler)
    except ValueError as exc:
        log.warning("Failed to parse '%s': %s", path, exc)


def _is_fallback_language(code: str) -> bool:
    return code in _FALLBACK_LANGUAGES


class IsoCodes:
    """Lazily loaded ISO 639 language and ISO 3166 territory tables."""

    def __init__(
        self,
        datadir: PathLike = ISO_CODES_DATADIR,
        localedir: PathLike = ISO_CODES_LOCALESDIR,
    ) -> None:
        self.datadir = Path(datadir)
        self.localedir = Path(localedir)
        self._lock = threading.Lock()
        self._languages: Optional[dict[str, str]] = None
        self._territories: Optional[dict[str, str]] = None

    def _language_map(self) -> dict[str, str]:
        with self._lock:
            if self._languages is None:
                languages: dict[str, str] = {}
                for domain in (LANGUAGES_DOMAIN, LANGUAGES_3_DOMAIN):
                    bind_textdomain(domain, self.localedir)
                    _load_table(self.datadir / f"{domain}.xml", _language_handler(languages))
                self._languages = languages
            return self._languages

    def _territory_map(self) -> dict[str, str]:
        with self._lock:
            if self._territories is None:
                territories: dict[str, str] = {}
                bind_textdomain(TERRITORIES_DOMAIN, self.localedir)
                _load_table(
                    self.datadir / f"{TERRITORIES_DOMAIN}.xml",
                    _territory_handler(territories),
                )
                self._territories = territories
            return self._territories

    def language_name(self, code: str) -> Optional[str]:
        """The untranslated name of language *code*, or ``None``."""
        if code is None:
            raise ValueError("code must not be None")
        if _is_fallback_language(code):
            return _UNSPECIFIED
        if len(code) not in (2, 3):
            return None
        return self._language_map().get(code)

    def territory_name(self, code: str) -> Optional[str]:
        """The untranslated name of territory *code*, or ``None``."""
        if code is None:
            raise ValueError("code must not be None")
        if len(code) not in (2, 3):
            return None
        return self._territory_map().get(code)

    @staticmethod
    def _translation_locale(translation: Optional[str]) -> Optional[str]:
        if translation is None:
            translation = _locale.setlocale(_LC_MESSAGES)
        return translation if language_name_is_valid(translation) else None

    def translated_language(self, code: str, translation: Optional[str] = None) -> Optional[str]:
        """The name of language *code* in the *translation* locale.

        ``None`` when the code is unknown or the locale is unavailable.
        """
        language = self.language_name(code)
        if language is None:
            return None
        loc = self._translation_locale(translation)
        if loc is None:
            return None
        if _is_fallback_language(code):
            return dgettext_l(loc, GETTEXT_PACKAGE, _UNSPECIFIED)
        translated = dgettext_l(loc, LANGUAGES_DOMAIN, language)
        item = first_item_in_semicolon_list(translated)
        return capitalize(item) if item else None

    def translated_territory(self, code: str, translation: Optional[str] = None) -> Optional[str]:
        """The name of territory *code* in the *translation* locale.

        ``None`` when the code is unknown or the locale is unavailable.
        """
        territory = self.territory_name(code)
        if territory is None:
            return None
        loc = self._translation_locale(translation)
        if loc is None:
            return None
        translated = dgettext_l(loc, TERRITORIES_DOMAIN, territory)
        item = first_item_in_semicolon_list(translated)
        return capitalize(item) if item else None