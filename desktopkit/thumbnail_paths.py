"""Thumbnail sizes, cache locations and validity checks."""

from __future__ import annotations

import enum
import hashlib
import os
import re
from pathlib import Path
from typing import Any, Optional, Union

APPNAME = "gnome-thumbnail-factory"

THUMB_URI_KEY = "Thumb::URI"
THUMB_MTIME_KEY = "Thumb::MTime"
THUMB_WIDTH_KEY = "Thumb::Image::Width"
THUMB_HEIGHT_KEY = "Thumb::Image::Height"
SOFTWARE_KEY = "Software"
SOFTWARE_NAME = "GNOME::ThumbnailFactory"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ThumbnailSize(enum.Enum):
    """The thumbnail sizes the cache knows about."""

    NORMAL = "normal"
    LARGE = "large"
    XLARGE = "x-large"
    XXLARGE = "xx-large"

    def dirname(self) -> str:
        """Name of the cache subdirectory for this size."""
        return self.value

    def pixels(self) -> int:
        """Largest width or height, in pixels, of a thumbnail of this size."""
        return _PIXELS[self]


_PIXELS = {
    ThumbnailSize.NORMAL: 128,
    ThumbnailSize.LARGE: 256,
    ThumbnailSize.XLARGE: 512,
    ThumbnailSize.XXLARGE: 1024,
}


def user_cache_dir() -> Path:
    """The user's cache directory: ``$XDG_CACHE_HOME`` or ``~/.cache``."""
    configured = os.environ.get("XDG_CACHE_HOME")
    if configured:
        return Path(configured)
    return Path.home() / ".cache"


def thumbnail_filename(uri: str) -> str:
    """File name of the thumbnail for *uri*: the MD5 of the URI plus ``.png``."""
    return hashlib.md5(uri.encode("utf-8")).hexdigest() + ".png"


def _cache_root(cache_dir: Optional[Union[str, os.PathLike]]) -> Path:
    return Path(cache_dir) if cache_dir is not None else user_cache_dir()


def thumbnail_path_for_uri(
    uri: str,
    size: ThumbnailSize,
    cache_dir: Optional[Union[str, os.PathLike]] = None,
) -> Path:
    """Path a thumbnail of *size* for *uri* would have. Does no I/O."""
    return _cache_root(cache_dir) / "thumbnails" / size.dirname() / thumbnail_filename(uri)


def thumbnail_failed_path(
    uri: str, cache_dir: Optional[Union[str, os.PathLike]] = None
) -> Path:
    """Path of the failure marker for *uri*. Does no I/O."""
    return (
        _cache_root(cache_dir)
        / "thumbnails"
        / "fail"
        / APPNAME
        / thumbnail_filename(uri)
    )


def _parse_mtime(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def is_valid_thumbnail(image: Any, uri: str, mtime: int) -> bool:
    """Whether *image* carries *uri* and *mtime* in its PNG text metadata.

    *image* is a loaded image whose ``info`` mapping holds the text chunks,
    such as a Pillow image opened from a PNG file.
    """
    info = getattr(image, "info", None) or {}
    if info.get(THUMB_URI_KEY) != uri:
        return False
    stored = info.get(THUMB_MTIME_KEY)
    if stored is None:
        return False
    return _parse_mtime(str(stored)) == int(mtime)