"""Parsing, normalising and probing locale names.

Locale names have the form ``language[_territory][.codeset][@modifier]``.
"""

from __future__ import annotations

import locale as _locale
import re
import threading
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from desktopkit.translation import dgettext_l

GETTEXT_PACKAGE = "gnome-desktop-3.0"

_LC_MESSAGES = getattr(_locale, "LC_MESSAGES", _locale.LC_CTYPE)

_LOCALE_RE = re.compile(
    r"(?P<language>[^_.@ \t\n\r\f\v]+)"
    r"(_(?P<territory>[A-Z]+))?"
    r"(\.(?P<codeset>[-_0-9a-zA-Z]+))?"
    r"(@(?P<modifier>[\x00-\x7f]+))?"
)

# Modifiers known to the C library's list of supported locales, except
# "euro", which says nothing useful in a label.
_MODIFIERS = {
    "abegede": "Abegede",
    "cyrillic": "Cyrillic",
    "devanagari": "Devanagari",
    "iqtelif": "IQTElif",
    "latin": "Latin",
    "saaho": "Saho",
    "valencia": "Valencia",
}

_probe_lock = threading.Lock()
_T = TypeVar("_T")
_INVALID = object()


def _probe(category: int, name: str, query: Callable[[], _T]) -> object:
    """Switch *category* to *name*, run *query*, and switch back.

    Returns ``_INVALID`` when the locale cannot be selected.
    """
    with _probe_lock:
        saved = _locale.setlocale(category)
        try:
            _locale.setlocale(category, name)
        except (_locale.Error, ValueError):
            return _INVALID
        try:
            return query()
        finally:
            _locale.setlocale(category, saved)


@dataclass(frozen=True)
class ParsedLocale:
    """The parts of a locale name; absent parts are ``None``."""

    language: str
    territory: Optional[str] = None
    codeset: Optional[str] = None
    modifier: Optional[str] = None

    def __str__(self) -> str:
        return construct_language_name(
            self.language, self.territory, self.codeset, self.modifier
        )


def normalize_codeset(codeset: Optional[str]) -> Optional[str]:
    """Spell the UTF-8 codeset as ``UTF-8``; leave any other codeset alone."""
    if codeset is None:
        return None
    if codeset in ("UTF-8", "utf8"):
        return "UTF-8"
    return codeset


def construct_language_name(
    language: str,
    territory: Optional[str],
    codeset: Optional[str],
    modifier: Optional[str],
) -> str:
    """Join locale parts into ``language[_territory][.codeset][@modifier]``."""
    if not language:
        raise ValueError("language must be a non-empty string")
    for label, part in (("territory", territory), ("codeset", codeset), ("modifier", modifier)):
        if part is not None and part == "":
            raise ValueError(f"{label} must be None or a non-empty string")
    name = language
    if territory is not None:
        name += "_" + territory
    if codeset is not None:
        name += "." + codeset
    if modifier is not None:
        name += "@" + modifier
    return name


def language_name_is_valid(name: Optional[str]) -> bool:
    """Whether the system can select *name* as a messages locale."""
    if name is None:
        return False
    return _probe(_LC_MESSAGES, name, lambda: True) is not _INVALID


def locale_codeset(name: Optional[str]) -> Optional[str]:
    """The character set of locale *name*, or ``None`` if it is unavailable.

    ``None`` as *name* stands for the current messages locale.
    """
    if name is None:
        name = _locale.setlocale(_LC_MESSAGES)
    if hasattr(_locale, "nl_langinfo"):
        query = lambda: _locale.nl_langinfo(_locale.CODESET)  # noqa: E731
    else:
        query = lambda: _locale.getlocale(_locale.LC_CTYPE)[1]  # noqa: E731
    result = _probe(_locale.LC_CTYPE, name, query)
    if result is _INVALID:
        return None
    return result or None  # type: ignore[return-value]


def parse_locale(locale: str) -> ParsedLocale:
    """Split *locale* into its parts; raise ValueError if it is malformed.

    A ``utf8`` codeset is spelt ``UTF-8`` when the system accepts the
    locale under that spelling.
    """
    if locale is None:
        raise ValueError("locale must not be None")
    match = _LOCALE_RE.fullmatch(locale)
    if match is None:
        raise ValueError(f"locale '{locale}' isn't valid")

    language = match.group("language")
    territory = match.group("territory") or None
    codeset = match.group("codeset") or None
    modifier = match.group("modifier") or None

    if codeset is not None:
        normalized = normalize_codeset(codeset)
        candidate = construct_language_name(language, territory, normalized, modifier)
        if language_name_is_valid(candidate):
            codeset = normalized

    return ParsedLocale(language, territory, codeset, modifier)


def normalize_locale(locale: str) -> Optional[str]:
    """The normalised form of *locale*, or ``None`` if it is empty or malformed."""
    if not locale:
        return None
    try:
        parsed = parse_locale(locale)
    except ValueError:
        return None
    return str(parsed)


def get_translated_modifier(modifier: str, translation: Optional[str] = None) -> Optional[str]:
    """A readable, translated label for a locale *modifier*.

    Unknown modifiers are returned unchanged. ``None`` is returned when
    the *translation* locale is unavailable.
    """
    if modifier is None:
        raise ValueError("modifier must not be None")
    if translation is None:
        translation = _locale.setlocale(_LC_MESSAGES)
    if not language_name_is_valid(translation):
        return None
    label = _MODIFIERS.get(modifier)
    if label is None:
        return modifier
    return dgettext_l(translation, GETTEXT_PACKAGE, label)