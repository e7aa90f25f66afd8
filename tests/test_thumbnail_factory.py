import os

import pytest
from PIL import Image

from desktopkit.thumbnail_factory import ThumbnailFactory, make_failed_thumbnail
from desktopkit.thumbnail_paths import (
    ThumbnailSize,
    thumbnail_failed_path,
    thumbnail_path_for_uri,
)
from desktopkit.thumbnailers import ThumbnailerRegistry

URI = "file:///home/user/doc.pdf"
PDF_THUMBNAILER = (
    "[Thumbnailer Entry]\n"
    "Exec=evince-thumbnailer -s %s %u %o\n"
    "MimeType=application/pdf;application/x-bzpdf;application/x-gzpdf;\n"
)


@pytest.fixture
def registry(tmp_path):
    thumbs = tmp_path / "thumbnailers"
    thumbs.mkdir()
    (thumbs / "evince.thumbnailer").write_text(PDF_THUMBNAILER)
    return ThumbnailerRegistry([thumbs])


@pytest.fixture
def factory(tmp_path, registry):
    return ThumbnailFactory(ThumbnailSize.NORMAL, registry, tmp_path / "cache")


def _image():
    return Image.new("RGB", (16, 8), (10, 20, 30))


def test_failed_thumbnail_is_transparent_pixel():
    img = make_failed_thumbnail()
    assert img.size == (1, 1)
    assert img.mode == "RGBA"
    assert img.getpixel((0, 0)) == (0, 0, 0, 0)


def test_lookup_without_cache_returns_none(factory):
    assert factory.lookup(URI, 100) is None


def test_save_then_lookup(factory, tmp_path):
    factory.save_thumbnail(_image(), URI, 1234)
    expected = thumbnail_path_for_uri(URI, ThumbnailSize.NORMAL, tmp_path / "cache")
    assert factory.lookup(URI, 1234) == expected
    assert factory.lookup(URI, 1235) is None
    assert factory.lookup("file:///other", 1234) is None


def test_saved_metadata(factory, tmp_path):
    factory.save_thumbnail(_image(), URI, 1234)
    path = thumbnail_path_for_uri(URI, ThumbnailSize.NORMAL, tmp_path / "cache")
    with Image.open(path) as img:
        assert img.info["Thumb::URI"] == URI
        assert img.info["Thumb::MTime"] == "1234"
        assert img.info["Software"] == "GNOME::ThumbnailFactory"
        assert "Thumb::Image::Width" not in img.info
        assert img.size == (16, 8)


def test_saved_dimensions_carried_over(factory, tmp_path):
    img = _image()
    img.info["Thumb::Image::Width"] = "640"
    img.info["Thumb::Image::Height"] = "320"
    factory.save_thumbnail(img, URI, 5)
    path = thumbnail_path_for_uri(URI, ThumbnailSize.NORMAL, tmp_path / "cache")
    with Image.open(path) as loaded:
        assert loaded.info["Thumb::Image::Width"] == "640"
        assert loaded.info["Thumb::Image::Height"] == "320"


def test_saved_file_permissions_and_no_leftovers(factory, tmp_path):
    factory.save_thumbnail(_image(), URI, 7)
    path = thumbnail_path_for_uri(URI, ThumbnailSize.NORMAL, tmp_path / "cache")
    assert os.listdir(path.parent) == [path.name]
    if os.name == "posix":
        assert path.stat().st_mode & 0o777 == 0o600


def test_large_size_uses_own_directory(tmp_path, registry):
    large = ThumbnailFactory(ThumbnailSize.LARGE, registry, tmp_path / "cache")
    large.save_thumbnail(_image(), URI, 9)
    assert large.lookup(URI, 9).parent.name == "large"
    normal = ThumbnailFactory(ThumbnailSize.NORMAL, registry, tmp_path / "cache")
    assert normal.lookup(URI, 9) is None


def test_failed_save_writes_failure_marker(factory, tmp_path):
    factory.save_thumbnail(None, URI, 42)
    assert factory.lookup(URI, 42) is None
    assert factory.has_valid_failed_thumbnail(URI, 42) is True
    assert thumbnail_failed_path(URI, tmp_path / "cache").exists()


def test_create_failed_thumbnail(factory):
    assert factory.has_valid_failed_thumbnail(URI, 3) is False
    assert factory.can_thumbnail(URI, "application/pdf", 3) is True
    factory.create_failed_thumbnail(URI, 3)
    assert factory.has_valid_failed_thumbnail(URI, 3) is True
    assert factory.has_valid_failed_thumbnail(URI, 4) is False
    assert factory.can_thumbnail(URI, "application/pdf", 3) is False
    assert factory.can_thumbnail(URI, "application/pdf", 4) is True


def test_can_thumbnail_rejects(factory):
    assert factory.can_thumbnail(URI, "image/x-unknown", 0) is False
    assert factory.can_thumbnail(URI, None, 0) is False
    thumb_uri = "file:///home/user/.cache/thumbnails/normal/abc.png"
    assert factory.can_thumbnail(thumb_uri, "application/pdf", 0) is False


def test_thumbnailer_command(factory):
    assert factory.thumbnailer_command("application/x-gzpdf") == "evince-thumbnailer -s %s %u %o"
    assert factory.thumbnailer_command("text/plain") is None


def test_disabled_types(factory):
    factory.set_disabled_types(["application/pdf"])
    assert factory.is_disabled("application/pdf") is True
    assert factory.is_disabled("application/x-bzpdf") is False
    assert factory.can_thumbnail(URI, "application/pdf", 0) is False
    assert factory.thumbnailer_command("application/pdf") is None
    assert factory.can_thumbnail(URI, "application/x-bzpdf", 0) is True


def test_disable_all_toggle_restores_types(factory):
    factory.set_disabled_types(["application/pdf"])
    factory.set_disable_all(True)
    assert factory.is_disabled("application/x-bzpdf") is True
    assert factory.can_thumbnail(URI, "application/x-bzpdf", 0) is False
    factory.set_disable_all(False)
    assert factory.is_disabled("application/x-bzpdf") is False
    assert factory.is_disabled("application/pdf") is True


def test_disabled_at_start_loads_later(tmp_path, registry):
    factory = ThumbnailFactory(
        ThumbnailSize.NORMAL, registry, tmp_path / "cache", disable_all=True
    )
    assert registry.thumbnailers() == []
    assert factory.can_thumbnail(URI, "application/pdf", 0) is False
    factory.set_disable_all(False)
    assert len(registry.thumbnailers()) == 1
    assert factory.can_thumbnail(URI, "application/pdf", 0) is True


def test_lookup_rejects_none_uri(factory):
    with pytest.raises(ValueError):
        factory.lookup(None, 0)
    with pytest.raises(ValueError):
        factory.has_valid_failed_thumbnail(None, 0)


def test_corrupt_cache_file_is_invalid(factory, tmp_path):
    path = thumbnail_path_for_uri(URI, ThumbnailSize.NORMAL, tmp_path / "cache")
    path.parent.mkdir(parents=True)
    path.write_bytes(b"not a png")
    assert factory.lookup(URI, 0) is None