"""Looking up, saving and vetting cached thumbnails.

A :class:`ThumbnailFactory` stores thumbnails under the user's cache
directory, keyed by the MD5 of the original file's URI. Each PNG carries
the original URI and modification time in its text chunks, so a stale
thumbnail is never reported as valid. Files that could not be
thumbnailed get a failure marker so they are not retried.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from PIL import Image
from PIL.PngImagePlugin import PngInfo

from desktopkit.thumbnail_paths import (
    SOFTWARE_KEY,
    SOFTWARE_NAME,
    THUMB_HEIGHT_KEY,
    THUMB_MTIME_KEY,
    THUMB_URI_KEY,
    THUMB_WIDTH_KEY,
    ThumbnailSize,
    is_valid_thumbnail,
    thumbnail_failed_path,
    thumbnail_path_for_uri,
)
from desktopkit.thumbnailers import ThumbnailerRegistry

log = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def make_failed_thumbnail() -> Image.Image:
    """A fully transparent 1×1 RGBA image used as a failure marker."""
    return Image.new("RGBA", (1, 1), (0, 0, 0, 0))


def _validated(path: Path, uri: str, mtime: int) -> Optional[Path]:
    try:
        with Image.open(path) as image:
            image.load()
            valid = is_valid_thumbnail(image, uri, mtime)
    except (OSError, ValueError, SyntaxError):
        return None
    return path if valid else None


def _save(thumbnail: Any, path: Path, uri: str, mtime: int) -> bool:
    """Atomically write *thumbnail* to *path* with its metadata."""
    if thumbnail is None:
        return False

    tmp_path: Optional[str] = None
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", dir=path.parent)
        os.close(fd)

        info = getattr(thumbnail, "info", None) or {}
        metadata = PngInfo()
        width = info.get(THUMB_WIDTH_KEY)
        height = info.get(THUMB_HEIGHT_KEY)
        if width is not None and height is not None:
            metadata.add_text(THUMB_WIDTH_KEY, str(width))
            metadata.add_text(THUMB_HEIGHT_KEY, str(height))
        metadata.add_text(THUMB_URI_KEY, uri)
        metadata.add_text(THUMB_MTIME_KEY, str(int(mtime)))
        metadata.add_text(SOFTWARE_KEY, SOFTWARE_NAME)

        thumbnail.save(tmp_path, "PNG", pnginfo=metadata)
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)
        tmp_path = None
        return True
    except (OSError, ValueError) as exc:
        log.warning("Failed to create thumbnail %s: %s", tmp_path or path, exc)
        return False
    finally:
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass


class ThumbnailFactory:
    """Finds, checks and stores thumbnails of one size."""

    def __init__(
        self,
        size: ThumbnailSize = ThumbnailSize.NORMAL,
        registry: Optional[ThumbnailerRegistry] = None,
        cache_dir: Optional[PathLike] = None,
        disable_all: bool = False,
        disabled_types: Optional[Iterable[str]] = None,
    ) -> None:
        self.size = size
        self.cache_dir = Path(cache_dir) if cache_dir is not None else None
        self.registry = registry if registry is not None else ThumbnailerRegistry()
        self._lock = threading.RLock()
        self._configured_types = list(disabled_types or [])
        self._disabled = bool(disable_all)
        self._disabled_types: Optional[list[str]] = (
            None if self._disabled else list(self._configured_types)
        )
        if not self._disabled:
            self.registry.load()

    def set_disable_all(self, disabled: bool) -> None:
        """Turn every external thumbnailer off or back on."""
        with self._lock:
            self._disabled = bool(disabled)
            if self._disabled:
                self._disabled_types = None
            else:
                self._disabled_types = list(self._configured_types)
                self.registry.load()

    def set_disabled_types(self, mime_types: Iterable[str]) -> None:
        """Set the MIME types whose thumbnailers must not be used."""
        with self._lock:
            self._configured_types = list(mime_types)
            if not self._disabled:
                self._disabled_types = list(self._configured_types)

    def is_disabled(self, mime_type: Optional[str]) -> bool:
        """Whether thumbnailing of *mime_type* is switched off."""
        with self._lock:
            if self._disabled:
                return True
            if not self._disabled_types:
                return False
            return mime_type in self._disabled_types

    def lookup(self, uri: str, mtime: int) -> Optional[Path]:
        """Path of a valid cached thumbnail for *uri* at *mtime*, or ``None``."""
        if uri is None:
            raise ValueError("uri must not be None")
        path = thumbnail_path_for_uri(uri, self.size, self.cache_dir)
        return _validated(path, uri, mtime)

    def has_valid_failed_thumbnail(self, uri: str, mtime: int) -> bool:
        """Whether a failure marker for *uri* at *mtime* exists."""
        if uri is None:
            raise ValueError("uri must not be None")
        path = thumbnail_failed_path(uri, self.cache_dir)
        return _validated(path, uri, mtime) is not None

    def can_thumbnail(self, uri: Optional[str], mime_type: Optional[str], mtime: int) -> bool:
        """Whether a thumbnail for this file may be attempted.

        Thumbnails themselves, files without a usable thumbnailer and
        files with a failure marker are refused.
        """
        if uri and uri.startswith("file:/") and "/thumbnails/" in uri:
            return False
        if not mime_type:
            return False
        with self._lock:
            have_script = (
                not self.is_disabled(mime_type)
                and self.registry.lookup(mime_type) is not None
            )
        if not have_script:
            return False
        return not self.has_valid_failed_thumbnail(uri, mtime)

    def thumbnailer_command(self, mime_type: str) -> Optional[str]:
        """The command line of the thumbnailer for *mime_type*, if enabled."""
        if mime_type is None:
            raise ValueError("mime_type must not be None")
        with self._lock:
            if self.is_disabled(mime_type):
                log.debug("Thumbnailing disabled for mime-type '%s'", mime_type)
                return None
            thumb = self.registry.lookup(mime_type)
        if thumb is None:
            log.debug("Could not find thumbnailer for mime-type '%s'", mime_type)
            return None
        return thumb.command

    def save_thumbnail(self, thumbnail: Any, uri: str, original_mtime: int) -> None:
        """Store *thumbnail* for *uri*; write a failure marker if that fails."""
        path = thumbnail_path_for_uri(uri, self.size, self.cache_dir)
        if not _save(thumbnail, path, uri, original_mtime):
            failed = make_failed_thumbnail()
            _save(failed, thumbnail_failed_path(uri, self.cache_dir), uri, original_mtime)

    def create_failed_thumbnail(self, uri: str, mtime: int) -> None:
        """Record that *uri* at *mtime* could not be thumbnailed."""
        _save(
            make_failed_thumbnail(),
            thumbnail_failed_path(uri, self.cache_dir),
            uri,
            mtime,
        )