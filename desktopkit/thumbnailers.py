"""Discovery and bookkeeping of external thumbnailer programs.

A thumbnailer is described by a ``.thumbnailer`` key file holding a
``[Thumbnailer Entry]`` group with an ``Exec`` command line and a
semicolon-separated ``MimeType`` list.
"""

from __future__ import annotations

import enum
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

log = logging.getLogger(__name__)

ENTRY_GROUP = "Thumbnailer Entry"
THUMBNAILER_EXTENSION = ".thumbnailer"

PathLike = Union[str, os.PathLike]

_ESCAPES = {"s": " ", "n": "\n", "t": "\t", "r": "\r", "\\": "\\"}


class ThumbnailerError(Exception):
    """A thumbnailer description could not be read or is invalid."""


class MonitorEvent(enum.Enum):
    """Kinds of change reported for a watched thumbnailer directory."""

    CHANGED = "changed"
    CHANGES_DONE_HINT = "changes-done-hint"
    DELETED = "deleted"
    CREATED = "created"
    ATTRIBUTE_CHANGED = "attribute-changed"
    PRE_UNMOUNT = "pre-unmount"
    UNMOUNTED = "unmounted"
    MOVED = "moved"
    RENAMED = "renamed"
    MOVED_IN = "moved-in"
    MOVED_OUT = "moved-out"


def thumbnailer_dirs() -> list[Path]:
    """Directories searched for thumbnailers, user data directory first."""
    data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    system = os.environ.get("XDG_DATA_DIRS") or "/usr/local/share/:/usr/share/"
    dirs = [Path(data_home) / "thumbnailers"]
    dirs.extend(Path(entry) / "thumbnailers" for entry in system.split(os.pathsep) if entry)
    return dirs


def _parse_key_file(text: str) -> dict[str, dict[str, str]]:
    groups: dict[str, dict[str, str]] = {}
    current: Optional[dict[str, str]] = None
    for lineno, raw in enumerate(text.splitlines(), 1):
        line = raw.lstrip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("["):
            line = line.rstrip()
            if not line.endswith("]") or len(line) < 3:
                raise ThumbnailerError(f"line {lineno}: malformed group header")
            current = groups.setdefault(line[1:-1], {})
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ThumbnailerError(f"line {lineno}: not a key-value pair")
        if current is None:
            raise ThumbnailerError(f"line {lineno}: key outside of any group")
        current[key] = value.strip()
    return groups


def _unescape(value: str, separator: Optional[str] = None) -> list[str]:
    """Undo key-file escapes, splitting on unescaped *separator* if given."""
    pieces: list[str] = []
    current: list[str] = []
    chars = iter(value)
    for char in chars:
        if char == "\\":
            escaped = next(chars, None)
            if escaped is None:
                raise ThumbnailerError("value ends with a lone backslash")
            if escaped in _ESCAPES:
                current.append(_ESCAPES[escaped])
            elif separator is not None and escaped == separator:
                current.append(escaped)
            else:
                raise ThumbnailerError(f"invalid escape sequence '\\{escaped}'")
        elif separator is not None and char == separator:
            pieces.append("".join(current))
            current = []
        else:
            current.append(char)
    if separator is None or current:
        pieces.append("".join(current))
    return pieces


@dataclass
class Thumbnailer:
    """One external thumbnailer: its description file, command and MIME types."""

    path: str
    command: str
    mime_types: list[str] = field(default_factory=list)

    @classmethod
    def from_file(cls, path: PathLike) -> "Thumbnailer":
        """Read a ``.thumbnailer`` file; raise ThumbnailerError if it is unusable."""
        path = os.fspath(path)
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ThumbnailerError(f'Failed to load thumbnailer from "{path}": {exc}') from exc
        groups = _parse_key_file(text)
        entry = groups.get(ENTRY_GROUP)
        if entry is None:
            raise ThumbnailerError(f'Invalid thumbnailer: missing group "{ENTRY_GROUP}"')
        if "Exec" not in entry:
            raise ThumbnailerError("Invalid thumbnailer: missing Exec key")
        command = _unescape(entry["Exec"])[0]
        if "MimeType" not in entry:
            raise ThumbnailerError("Invalid thumbnailer: missing MimeType key")
        mime_types = _unescape(entry["MimeType"], ";")
        return cls(path=path, command=command, mime_types=mime_types)


class ThumbnailerRegistry:
    """Known thumbnailers and the MIME types each one handles.

    For each MIME type the first thumbnailer registered for it wins.
    Change notifications for watched directories are fed in through
    :meth:`handle_event`.
    """

    def __init__(self, dirs: Optional[Iterable[PathLike]] = None) -> None:
        self._dirs = [os.fspath(d) for d in (thumbnailer_dirs() if dirs is None else dirs)]
        self._lock = threading.RLock()
        self._thumbnailers: list[Thumbnailer] = []
        self._mime_types: dict[str, Thumbnailer] = {}
        self._monitored: list[str] = []
        self._loaded = False

    def _register_mime_types(self, thumb: Thumbnailer) -> None:
        for mime_type in thumb.mime_types:
            self._mime_types.setdefault(mime_type, thumb)

    def _unregister_path(self, path: str) -> None:
        self._mime_types = {
            mime: thumb for mime, thumb in self._mime_types.items() if thumb.path != path
        }

    def _add(self, thumb: Thumbnailer) -> None:
        self._register_mime_types(thumb)
        self._thumbnailers.insert(0, thumb)

    def load(self) -> None:
        """Load thumbnailers from every search directory, once."""
        with self._lock:
            if self._loaded:
                return
            for directory in self._dirs:
                self.load_dir(directory)
            self._loaded = True

    def load_dir(self, path: PathLike) -> None:
        """Load every ``.thumbnailer`` file in *path* and start watching it."""
        path = os.fspath(path)
        try:
            names = sorted(os.listdir(path))
        except OSError:
            return
        with self._lock:
            if path not in self._monitored:
                self._monitored.insert(0, path)
            for name in names:
                if not name.endswith(THUMBNAILER_EXTENSION):
                    continue
                try:
                    thumb = Thumbnailer.from_file(os.path.join(path, name))
                except ThumbnailerError as exc:
                    log.warning("%s", exc)
                    continue
                self._add(thumb)

    def update_or_create(self, path: PathLike) -> None:
        """Reload the thumbnailer described by *path*, or add it if it is new."""
        path = os.fspath(path)
        with self._lock:
            existing = next((t for t in self._thumbnailers if t.path == path), None)
            if existing is not None:
                self._unregister_path(path)
                try:
                    fresh = Thumbnailer.from_file(path)
                except ThumbnailerError as exc:
                    log.warning("%s", exc)
                    self._thumbnailers.remove(existing)
                    return
                existing.command = fresh.command
                existing.mime_types = fresh.mime_types
                self._register_mime_types(existing)
                return
            try:
                thumb = Thumbnailer.from_file(path)
            except ThumbnailerError as exc:
                log.warning("%s", exc)
                return
            self._add(thumb)

    def remove(self, path: PathLike) -> None:
        """Forget the thumbnailer described by *path*."""
        path = os.fspath(path)
        with self._lock:
            for thumb in self._thumbnailers:
                if thumb.path == path:
                    self._thumbnailers.remove(thumb)
                    self._unregister_path(path)
                    break

    def remove_dir(self, path: PathLike) -> None:
        """Forget the thumbnailers inside *path* and stop watching it."""
        path = os.fspath(path)
        with self._lock:
            inside = [t for t in self._thumbnailers if t.path.startswith(path)]
            for thumb in inside:
                self._thumbnailers.remove(thumb)
                self._unregister_path(thumb.path)
            if path in self._monitored:
                self._monitored.remove(path)

    def handle_event(self, event: MonitorEvent, path: PathLike) -> None:
        """React to a change reported for *path* in a watched directory."""
        path = os.fspath(path)
        if event in (MonitorEvent.CREATED, MonitorEvent.CHANGED, MonitorEvent.DELETED):
            if not path.endswith(THUMBNAILER_EXTENSION):
                return
            if event is MonitorEvent.DELETED:
                self.remove(path)
            else:
                self.update_or_create(path)
        elif event in (MonitorEvent.UNMOUNTED, MonitorEvent.MOVED):
            self.remove_dir(path)
            if event is MonitorEvent.MOVED:
                self.load_dir(path)

    def lookup(self, mime_type: str) -> Optional[Thumbnailer]:
        """The thumbnailer registered for *mime_type*, or ``None``."""
        with self._lock:
            return self._mime_types.get(mime_type)

    def thumbnailers(self) -> list[Thumbnailer]:
        """All known thumbnailers, most recently added first."""
        with self._lock:
            return list(self._thumbnailers)