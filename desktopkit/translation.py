"""Message lookup for an explicitly chosen locale.

Translations are looked up for the locale passed in, leaving the
process-wide locale untouched.
"""

from __future__ import annotations

import gettext
import os
import threading
from typing import Optional, Union

_bindings: dict[str, str] = {}
_lock = threading.Lock()


def bind_textdomain(
    domain: str, localedir: Optional[Union[str, os.PathLike]]
) -> Optional[str]:
    """Bind *domain* to the catalogue directory *localedir*.

    Passing ``None`` leaves the binding unchanged. Returns the directory
    the domain is bound to afterwards, or ``None`` if it has none.
    """
    with _lock:
        if localedir is not None:
            _bindings[domain] = os.fspath(localedir)
        return _bindings.get(domain)


def _translations(locale: Optional[str], domain: str) -> gettext.NullTranslations:
    with _lock:
        localedir = _bindings.get(domain)
    languages = [locale] if locale else None
    return gettext.translation(domain, localedir, languages=languages, fallback=True)


def dgettext_l(locale: Optional[str], domain: str, msgid: str) -> str:
    """Translate *msgid* from *domain* into *locale*.

    Falls back to *msgid* itself when no catalogue or entry exists.
    A locale of ``None`` uses the language from the environment.
    """
    return _translations(locale, domain).gettext(msgid)


def dpgettext_l(locale: Optional[str], domain: str, context: str, msgid: str) -> str:
    """Translate *msgid* within *context* from *domain* into *locale*.

    Falls back to *msgid* when no translation is found.
    """
    return _translations(locale, domain).pgettext(context, msgid)