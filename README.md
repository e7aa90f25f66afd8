# desktopkit

Helpers for desktop applications:

- **Thumbnail cache** following the freedesktop layout: cached images live in
  `$XDG_CACHE_HOME/thumbnails/<size>/<md5 of URI>.png` (or `~/.cache/...`),
  with the source URI and modification time stored as PNG text chunks so that
  stale entries are detected. Failure markers live in
  `thumbnails/fail/gnome-thumbnail-factory/`.
- **Thumbnailer registry** that reads `.thumbnailer` key files
  (`[Thumbnailer Entry]` with `Exec` and `MimeType` keys) from the user and
  system `thumbnailers` data directories and maps MIME types to commands.
- **Locale utilities**: parsing and normalising locale names of the form
  `language[_TERRITORY][.codeset][@modifier]`, and readable language and
  country names from the ISO code tables, translated where message catalogues
  exist.

## Installation

```
pip install .
```

Tests need the `test` extra:

```
pip install .[test]
pytest
```

## Thumbnails

Module `desktopkit.thumbnail_paths`:

- `ThumbnailSize` — `NORMAL` (128 px), `LARGE` (256), `XLARGE` (512),
  `XXLARGE` (1024); `dirname()` and `pixels()`.
- `thumbnail_filename(uri)`, `thumbnail_path_for_uri(uri, size, cache_dir)`,
  `thumbnail_failed_path(uri, cache_dir)` — compute paths without I/O.
- `is_valid_thumbnail(image, uri, mtime)` — checks the `Thumb::URI` and
  `Thumb::MTime` text chunks of a loaded image.

Module `desktopkit.thumbnailers`: `Thumbnailer.from_file(path)` reads one
description file (raising `ThumbnailerError` if it is unusable);
`ThumbnailerRegistry` loads all of them and answers `lookup(mime_type)`.
For each MIME type the first thumbnailer registered for it wins.

Module `desktopkit.thumbnail_factory`: `ThumbnailFactory` looks up, saves and
vets cached thumbnails of one size.

```python
from desktopkit.thumbnail_paths import ThumbnailSize, thumbnail_path_for_uri
from desktopkit.thumbnailers import ThumbnailerRegistry, thumbnailer_dirs
from desktopkit.thumbnail_factory import ThumbnailFactory

print(thumbnail_path_for_uri("file:///home/me/photo.jpg", ThumbnailSize.NORMAL, None))

registry = ThumbnailerRegistry(thumbnailer_dirs())
registry.load()

factory = ThumbnailFactory(ThumbnailSize.LARGE, registry, None, False, [])
uri, mtime = "file:///home/me/doc.pdf", 1700000000
if factory.can_thumbnail(uri, "application/pdf", mtime):
    print(factory.thumbnailer_command("application/pdf"))
```

`can_thumbnail` refuses `file:` URIs inside a `/thumbnails/` directory, MIME
types that are disabled (`set_disable_all`, `set_disabled_types`) or have no
thumbnailer, and files with a valid failure marker.

`save_thumbnail` writes a Pillow image into the cache atomically (mode 0600);
if that fails, a one-pixel transparent "failed" entry is written instead, so
`has_valid_failed_thumbnail` reports it on later queries.
`create_failed_thumbnail` records a failure directly. `lookup` returns the path
of a valid cached thumbnail, or `None`.

## Locales

```python
from desktopkit.locales import parse_locale, normalize_locale
from desktopkit.iso_codes import IsoCodes
from desktopkit.languages import LocaleCatalog

parsed = parse_locale("de_DE.utf8@euro")   # ParsedLocale; raises ValueError if malformed
print(parsed.language, parsed.territory, parsed.codeset, parsed.modifier)
print(normalize_locale("en_US.utf8"))

catalog = LocaleCatalog(IsoCodes())
print(catalog.language_from_locale("pt_BR.UTF-8"))
print(catalog.country_from_code("FR"))
print(catalog.all_locales())
```

`IsoCodes(datadir, localedir)` reads `iso_639.xml`, `iso_639_3.xml` and
`iso_3166.xml` from `datadir` (default `/usr/share/xml/iso-codes`) and takes
translations from `localedir` (default `/usr/share/locale`).
`parse_languages_xml` and `parse_territories_xml` parse such tables from a
string or bytes.

`LocaleCatalog(iso_codes, liblocaledir, translations_dir)` discovers available
locales from the subdirectories of `liblocaledir` (default `/usr/lib/locale`),
keeping by default only UTF-8 locales that have message catalogues. Labels gain
script, territory and codeset detail only when several available locales share
the language or territory.

`desktopkit.translation` offers `bind_textdomain`, `dgettext_l` and
`dpgettext_l` for looking up messages in an explicitly chosen locale.

## What it does not do

- It does not run thumbnailer programs or render thumbnails:
  `thumbnailer_command` only returns the `Exec` line, and producing the image
  is up to the caller.
- It does not watch thumbnailer directories itself; changes are fed in through
  `ThumbnailerRegistry.handle_event` with a `MonitorEvent`.
- Disabled MIME types are passed in by the caller rather than read from desktop
  settings.
- Locale discovery only scans the locale directory; it does not query any
  other program for the list of locales.
- There is no command-line interface.