"""End-to-end render with a real ffmpeg.

Generates two short test-pattern clips, renders them under one scheme and
checks the concatenated output with ffprobe.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

from cutline.render.executor import TranscodeExecutor
from cutline.render.preview import PreviewOptions, PreviewStreamer
from cutline.render.scheme import Scheme
from cutline.render.session import RenderSessionController, RenderState
from cutline.utils.media_info import summarize

pytestmark = pytest.mark.requires_ffmpeg


def _make_clip(path: Path, size: str, duration: int) -> str:
    subprocess.run(
        [
            "ffmpeg", "-y", "-v", "error",
            "-f", "lavfi", "-i", f"testsrc=size={size}:rate=30:duration={duration}",
            "-pix_fmt", "yuv420p",
            str(path),
        ],
        check=True,
    )
    return str(path)


@pytest.fixture
def clips(tmp_path: Path) -> list[str]:
    return [
        _make_clip(tmp_path / "wide.mp4", "640x360", 1),
        _make_clip(tmp_path / "square.mp4", "320x320", 1),
    ]


@pytest.fixture
def controller(workdir: Path) -> RenderSessionController:
    return RenderSessionController(
        str(workdir),
        executor=TranscodeExecutor(shutil.which("ffmpeg")),
        ffprobe_path=shutil.which("ffprobe"),
        scheme=Scheme(size="320x180", fps=24, bitrate="300k", codec="libx264"),
        master_output=str(workdir / "masterOutput"),
    )


class TestRealRender:
    @pytest.mark.asyncio
    async def test_render_and_probe(self, controller, clips):
        controller.set_work_items([{"file": clip} for clip in clips])

        output = await controller.render()

        assert controller.state is RenderState.COMPLETED
        info = summarize(await controller.get_meta(output))
        assert (info.width, info.height) == (320, 180)
        assert info.fps == 24
        assert 1800 <= info.duration_ms <= 2300

    @pytest.mark.asyncio
    async def test_preview_is_fragmented_mp4(self, clips):
        streamer = PreviewStreamer(shutil.which("ffmpeg"))
        received = bytearray()

        await streamer.render_preview(PreviewOptions(path=clips[0], seek=0.5), received.extend)

        # Fragmented MP4 starts with ftyp and an empty moov
        assert received[4:8] == b"ftyp"
        assert b"moof" in received
