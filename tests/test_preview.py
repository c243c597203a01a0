"""Tests for the preview streamer."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from cutline.exceptions import StreamError
from cutline.render.preview import (
    PREVIEW_MAX_DURATION_S,
    PREVIEW_MOVFLAGS,
    PreviewOptions,
    PreviewStreamer,
    preview_options,
)
from cutline.render.work_items import FilterSpec


def _option(cmd: list[str], flag: str) -> str:
    return cmd[cmd.index(flag) + 1]


class TestPreviewCommand:
    """Tests for the preview encode arguments."""

    def test_defaults(self):
        streamer = PreviewStreamer("ffmpeg")
        cmd = streamer.build_command(PreviewOptions(path="/v/a.mp4", seek=30)).build("ffmpeg")

        assert cmd[2:6] == ["-ss", "30", "-i", "/v/a.mp4"]
        assert float(_option(cmd, "-t")) <= PREVIEW_MAX_DURATION_S
        assert _option(cmd, "-f") == "mp4"
        assert _option(cmd, "-movflags") == PREVIEW_MOVFLAGS
        assert _option(cmd, "-c:v") == "libx264"
        assert _option(cmd, "-filter:v") == "scale=w=-2:h=480"
        assert cmd[-1] == "pipe:1"

    def test_duration_is_capped(self):
        streamer = PreviewStreamer("ffmpeg", duration_s=60)
        assert streamer.duration_s == PREVIEW_MAX_DURATION_S

    def test_filters_precede_scaling(self):
        streamer = PreviewStreamer("ffmpeg", size="640x?")
        options = PreviewOptions(path="a.mp4", filters=("negate", FilterSpec("hue", "s=0")))
        cmd = streamer.build_command(options).build()

        assert _option(cmd, "-filter:v") == "negate,hue=s=0,scale=w=640:h=-2"

    def test_preview_options_helper(self):
        options = preview_options("a.mp4", None, [{"filter": "hflip"}, "negate"])
        assert options == PreviewOptions(path="a.mp4", seek=0.0, filters=(FilterSpec("hflip"), "negate"))


class TestPreviewStreamer:
    """Tests for streaming through the fake encoder."""

    @pytest.mark.asyncio
    async def test_stream_yields_stdout(self, fake_ffmpeg):
        streamer = PreviewStreamer(fake_ffmpeg)

        chunks = [chunk async for chunk in streamer.stream(PreviewOptions(path="a.mp4"))]

        assert b"".join(chunks) == b"FAKE-MP4-DATA"

    @pytest.mark.asyncio
    async def test_render_preview_into_writer(self, fake_ffmpeg):
        streamer = PreviewStreamer(fake_ffmpeg)
        sink = MagicMock()
        sink.drain = AsyncMock()

        written = await streamer.render_preview(PreviewOptions(path="a.mp4", seek=5), sink)

        assert written == len(b"FAKE-MP4-DATA")
        sink.write.assert_called_with(b"FAKE-MP4-DATA")
        sink.drain.assert_awaited()
        sink.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_render_preview_into_callable(self, fake_ffmpeg):
        streamer = PreviewStreamer(fake_ffmpeg)
        received = bytearray()

        async def sink(chunk: bytes) -> None:
            received.extend(chunk)

        await streamer.render_preview(PreviewOptions(path="a.mp4"), sink)

        assert bytes(received) == b"FAKE-MP4-DATA"

    @pytest.mark.asyncio
    async def test_encoder_failure(self, fake_ffmpeg, monkeypatch):
        monkeypatch.setenv("FAKE_FFMPEG_FAIL_ON", "pipe:1")
        streamer = PreviewStreamer(fake_ffmpeg)

        with pytest.raises(StreamError) as exc_info:
            await streamer.render_preview(PreviewOptions(path="a.mp4"), MagicMock())

        assert "Conversion failed!" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path: Path):
        streamer = PreviewStreamer(str(tmp_path / "no-ffmpeg"))

        with pytest.raises(StreamError):
            await streamer.render_preview(PreviewOptions(path="a.mp4"), MagicMock())

    @pytest.mark.asyncio
    async def test_sink_failure(self, fake_ffmpeg):
        streamer = PreviewStreamer(fake_ffmpeg)
        sink = MagicMock()
        sink.write.side_effect = BrokenPipeError("client went away")

        with pytest.raises(StreamError):
            await streamer.render_preview(PreviewOptions(path="a.mp4"), sink)

    @pytest.mark.asyncio
    async def test_concurrent_previews(self, fake_ffmpeg):
        streamer = PreviewStreamer(fake_ffmpeg)
        sinks = [MagicMock(spec=["write"]) for _ in range(3)]

        results = await asyncio.gather(
            *(streamer.render_preview(PreviewOptions(path=f"{i}.mp4"), sink) for i, sink in enumerate(sinks))
        )

        assert results == [len(b"FAKE-MP4-DATA")] * 3
