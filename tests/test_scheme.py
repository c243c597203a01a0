"""Tests for render schemes and size strings."""

import pytest

from cutline.exceptions import InvalidSchemeError
from cutline.render.scheme import Scheme, parse_size


class TestParseSize:
    """Tests for "WxH" size parsing."""

    def test_fixed_size(self):
        assert parse_size("1280x720") == (1280, 720)

    def test_auto_height(self):
        assert parse_size("640x?") == (640, None)

    def test_auto_width(self):
        assert parse_size("?x480") == (None, 480)

    @pytest.mark.parametrize("size", ["", "1280", "1280x", "axb", "?x?", "0x720", "1280*720"])
    def test_invalid_sizes_rejected(self, size):
        with pytest.raises(InvalidSchemeError) as exc_info:
            parse_size(size)
        assert exc_info.value.location.field == "size"


class TestScheme:
    """Tests for the Scheme dataclass."""

    def test_defaults(self):
        scheme = Scheme()
        assert scheme.size == "1280x720"
        assert scheme.format == ".mp4"
        assert scheme.codec == "libx264"
        assert scheme.bitrate == "1000k"
        assert scheme.fps == 24
        assert scheme.pad is True

    def test_format_gets_leading_dot(self):
        assert Scheme(format="mkv").format == ".mkv"

    def test_numeric_bitrate_is_kbps(self):
        assert Scheme(bitrate=2500).bitrate == "2500k"

    def test_invalid_fps_rejected(self):
        with pytest.raises(InvalidSchemeError):
            Scheme(fps=0)

    def test_invalid_size_rejected(self):
        with pytest.raises(InvalidSchemeError):
            Scheme(size="big")

    def test_dimensions(self):
        assert Scheme(size="?x1080").dimensions == (None, 1080)

    def test_scheme_is_immutable(self):
        scheme = Scheme()
        with pytest.raises(AttributeError):
            scheme.fps = 30

    def test_with_changes_returns_new_scheme(self):
        scheme = Scheme()
        changed = scheme.with_changes(fps=30)
        assert changed.fps == 30
        assert scheme.fps == 24

    def test_from_dict_fills_defaults(self):
        scheme = Scheme.from_dict({"size": "1920x1080", "fps": 30, "unknown": "x", "codec": None})
        assert scheme.size == "1920x1080"
        assert scheme.fps == 30
        assert scheme.codec == "libx264"

    def test_default_reads_settings(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_SCHEME_SIZE", "640x360")
        monkeypatch.setenv("DEFAULT_SCHEME_FPS", "30")
        scheme = Scheme.default()
        assert scheme.size == "640x360"
        assert scheme.fps == 30

    def test_to_dict(self):
        assert Scheme().to_dict() == {
            "size": "1280x720",
            "format": ".mp4",
            "codec": "libx264",
            "bitrate": "1000k",
            "fps": 24,
            "pad": True,
        }
