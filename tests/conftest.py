"""
Pytest fixtures for cutline tests.

Most tests run against small shell scripts standing in for ffmpeg/ffprobe:
- fake ffmpeg: logs its argv, prints a Duration header and two status lines
  on stderr, then writes its last argument (or stdout for pipe:1)
- fake ffprobe: prints a fixed JSON document for existing files

Behaviour is steered with environment variables:
- FAKE_FFMPEG_LOG: file that receives one line per invocation
- FAKE_FFMPEG_FAIL_ON: exit 1 when the output path contains this text
- FAKE_FFMPEG_SLEEP: seconds to sleep before writing output

CI/CD Note:
Tests that need a real ffmpeg are marked with @pytest.mark.requires_ffmpeg
and skip when it is not installed. The fake scripts need a POSIX shell.
"""

import os
import shutil
import stat
import sys
from pathlib import Path

import pytest

from cutline.config import get_settings

FAKE_FFMPEG = """#!/bin/sh
printf '%s\\n' "$*" >> "${FAKE_FFMPEG_LOG:-/dev/null}"
for last; do :; done
echo "ffmpeg version fake" >&2
echo "  Duration: 00:00:04.00, start: 0.000000, bitrate: 1000 kb/s" >&2
if [ -n "$FAKE_FFMPEG_FAIL_ON" ]; then
  case "$last" in
    *"$FAKE_FFMPEG_FAIL_ON"*) echo "Conversion failed!" >&2; exit 1;;
  esac
fi
if [ -n "$FAKE_FFMPEG_SLEEP" ]; then
  sleep "$FAKE_FFMPEG_SLEEP" >/dev/null 2>&1
fi
printf 'frame=   48 fps= 24 q=28.0 size=     256kB time=00:00:02.00 bitrate=1000.0kbits/s speed=1x\\r' >&2
printf 'frame=   96 fps= 24 q=28.0 size=     512kB time=00:00:04.00 bitrate=1000.0kbits/s speed=1x\\n' >&2
if [ "$last" = "pipe:1" ]; then
  printf 'FAKE-MP4-DATA'
else
  printf 'fake' > "$last"
fi
exit 0
"""

FAKE_FFPROBE = """#!/bin/sh
for last; do :; done
if [ ! -f "$last" ]; then
  echo "$last: No such file or directory" >&2
  exit 1
fi
cat <<'EOF'
{"format": {"duration": "4.000000", "format_name": "mov,mp4,m4a,3gp,3g2,mj2"},
 "streams": [
  {"codec_type": "video", "codec_name": "h264", "width": 1280, "height": 720, "r_frame_rate": "24/1"},
  {"codec_type": "audio", "codec_name": "aac", "sample_rate": "48000", "channels": 2}
 ]}
EOF
"""


def _write_script(path: Path, content: str) -> str:
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; tests that patch env need a fresh copy."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_ffmpeg(tmp_path: Path) -> str:
    """Path of the fake ffmpeg script."""
    if sys.platform == "win32":
        pytest.skip("Fake encoder scripts need a POSIX shell")
    return _write_script(tmp_path / "ffmpeg", FAKE_FFMPEG)


@pytest.fixture
def fake_ffprobe(tmp_path: Path) -> str:
    """Path of the fake ffprobe script."""
    if sys.platform == "win32":
        pytest.skip("Fake encoder scripts need a POSIX shell")
    return _write_script(tmp_path / "ffprobe", FAKE_FFPROBE)


@pytest.fixture
def ffmpeg_log(tmp_path: Path, monkeypatch) -> Path:
    """File collecting one line per fake ffmpeg invocation."""
    log = tmp_path / "ffmpeg.log"
    log.touch()
    monkeypatch.setenv("FAKE_FFMPEG_LOG", str(log))
    return log


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """Render working directory."""
    path = tmp_path / "wd"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def source_clips(tmp_path: Path) -> list[str]:
    """Three placeholder source files."""
    clips = []
    for name in ("intro.mp4", "body.mov", "outro.mkv"):
        path = tmp_path / name
        path.write_bytes(b"source")
        clips.append(str(path))
    return clips


@pytest.fixture
def isolated_env(monkeypatch, tmp_path: Path):
    """Point settings at a temporary workdir and keep the real env out."""
    monkeypatch.setenv("WORKDIR", str(tmp_path / "wd"))
    for name in ("FAKE_FFMPEG_FAIL_ON", "FAKE_FFMPEG_SLEEP"):
        monkeypatch.delenv(name, raising=False)
    os.makedirs(tmp_path / "wd", exist_ok=True)
    return tmp_path


def pytest_collection_modifyitems(config, items):
    """Skip tests marked requires_ffmpeg when no real ffmpeg is installed."""
    if shutil.which("ffmpeg") and shutil.which("ffprobe"):
        return
    skip = pytest.mark.skip(reason="ffmpeg/ffprobe not installed")
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(skip)
