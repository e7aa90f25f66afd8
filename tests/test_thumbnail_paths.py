import re
from pathlib import Path

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

from desktopkit.thumbnail_paths import (
    ThumbnailSize,
    is_valid_thumbnail,
    thumbnail_failed_path,
    thumbnail_filename,
    thumbnail_path_for_uri,
    user_cache_dir,
)


@pytest.mark.parametrize(
    "size, dirname, pixels",
    [
        (ThumbnailSize.NORMAL, "normal", 128),
        (ThumbnailSize.LARGE, "large", 256),
        (ThumbnailSize.XLARGE, "x-large", 512),
        (ThumbnailSize.XXLARGE, "xx-large", 1024),
    ],
)
def test_size_properties(size, dirname, pixels):
    assert size.dirname() == dirname
    assert size.pixels() == pixels


def test_filename_of_empty_uri():
    assert thumbnail_filename("") == "d41d8cd98f00b204e9800998ecf8427e.png"


def test_filename_shape_and_determinism():
    name = thumbnail_filename("file:///home/user/a.png")
    assert re.fullmatch(r"[0-9a-f]{32}\.png", name)
    assert name == thumbnail_filename("file:///home/user/a.png")
    assert name != thumbnail_filename("file:///home/user/b.png")


def test_user_cache_dir_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    assert user_cache_dir() == tmp_path


def test_user_cache_dir_default(monkeypatch, tmp_path):
    monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    assert user_cache_dir() == Path.home() / ".cache"


def test_thumbnail_path_layout(tmp_path):
    uri = "file:///tmp/x.jpg"
    path = thumbnail_path_for_uri(uri, ThumbnailSize.LARGE, tmp_path)
    assert path == tmp_path / "thumbnails" / "large" / thumbnail_filename(uri)


def test_thumbnail_path_uses_env_cache(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    uri = "file:///tmp/y.jpg"
    path = thumbnail_path_for_uri(uri, ThumbnailSize.NORMAL)
    assert path.parent == tmp_path / "thumbnails" / "normal"


def test_failed_path_layout(tmp_path):
    uri = "file:///tmp/x.jpg"
    path = thumbnail_failed_path(uri, tmp_path)
    assert path == (
        tmp_path / "thumbnails" / "fail" / "gnome-thumbnail-factory" / thumbnail_filename(uri)
    )


def _saved_png(tmp_path, text):
    meta = PngInfo()
    for key, value in text.items():
        meta.add_text(key, value)
    path = tmp_path / "thumb.png"
    Image.new("RGBA", (2, 2)).save(path, "png", pnginfo=meta)
    return Image.open(path)


def test_valid_thumbnail_round_trip(tmp_path):
    uri = "file:///tmp/pic.png"
    image = _saved_png(tmp_path, {"Thumb::URI": uri, "Thumb::MTime": "1700000000"})
    assert is_valid_thumbnail(image, uri, 1700000000) is True


def test_wrong_uri_is_invalid(tmp_path):
    image = _saved_png(tmp_path, {"Thumb::URI": "file:///a", "Thumb::MTime": "5"})
    assert is_valid_thumbnail(image, "file:///b", 5) is False


def test_wrong_mtime_is_invalid(tmp_path):
    image = _saved_png(tmp_path, {"Thumb::URI": "file:///a", "Thumb::MTime": "5"})
    assert is_valid_thumbnail(image, "file:///a", 6) is False


def test_missing_mtime_is_invalid(tmp_path):
    image = _saved_png(tmp_path, {"Thumb::URI": "file:///a"})
    assert is_valid_thumbnail(image, "file:///a", 0) is False


def test_missing_metadata_is_invalid():
    assert is_valid_thumbnail(Image.new("RGB", (1, 1)), "file:///a", 0) is False


class _FakeImage:
    def __init__(self, info):
        self.info = info


def test_mtime_parsed_by_leading_digits():
    image = _FakeImage({"Thumb::URI": "file:///a", "Thumb::MTime": "42junk"})
    assert is_valid_thumbnail(image, "file:///a", 42) is True


def test_non_numeric_mtime_reads_as_zero():
    image = _FakeImage({"Thumb::URI": "file:///a", "Thumb::MTime": "junk"})
    assert is_valid_thumbnail(image, "file:///a", 0) is True
    assert is_valid_thumbnail(image, "file:///a", 1) is False