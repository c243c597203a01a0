"""
Tests for media info extraction.

Test cases:
1. Probe returns ffprobe JSON
2. Missing file / missing binary errors
3. Summarize video and audio streams
"""

from pathlib import Path

import pytest

from cutline.exceptions import BinaryNotFoundError, ProbeError
from cutline.utils.media_info import MediaInfo, probe, summarize


class TestProbe:
    """Test ffprobe invocation (fake ffprobe)."""

    @pytest.mark.asyncio
    async def test_probe_returns_metadata(self, fake_ffprobe, source_clips):
        metadata = await probe(source_clips[0], fake_ffprobe)

        assert "format" in metadata
        assert len(metadata["streams"]) == 2

    @pytest.mark.asyncio
    async def test_probe_missing_file(self, fake_ffprobe, tmp_path: Path):
        with pytest.raises(ProbeError) as exc_info:
            await probe(str(tmp_path / "nope.mp4"), fake_ffprobe)

        assert "No such file" in exc_info.value.message
        assert exc_info.value.location.path == str(tmp_path / "nope.mp4")

    @pytest.mark.asyncio
    async def test_probe_missing_binary(self, tmp_path: Path, source_clips):
        with pytest.raises(BinaryNotFoundError):
            await probe(source_clips[0], str(tmp_path / "no-ffprobe"))


class TestSummarize:
    """Test reducing ffprobe metadata."""

    def test_video_and_audio(self):
        info = summarize(
            {
                "format": {"duration": "12.48"},
                "streams": [
                    {"codec_type": "video", "codec_name": "h264", "width": 1920, "height": 1080, "r_frame_rate": "30000/1001"},
                    {"codec_type": "audio", "codec_name": "aac", "sample_rate": "48000", "channels": 1},
                ],
            }
        )

        assert info.duration_ms == 12480
        assert (info.width, info.height) == (1920, 1080)
        assert info.fps == pytest.approx(29.97)
        assert info.has_audio is True
        assert info.sample_rate == 48000
        assert info.channels == 1

    def test_video_without_audio(self):
        info = summarize({"streams": [{"codec_type": "video", "r_frame_rate": "0/0"}]})

        assert info.has_video is True
        assert info.has_audio is False
        assert info.fps is None
        assert info.duration_ms is None

    def test_empty_metadata(self):
        assert summarize({}) == MediaInfo()
