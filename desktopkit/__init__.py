"""Thumbnail cache, thumbnailer registry and locale name utilities for desktop applications."""

__version__ = "0.1.0"

__all__ = [
    "iso_codes",
    "languages",
    "locales",
    "thumbnail_factory",
    "thumbnail_paths",
    "thumbnailers",
    "translation",
]