"""Tests for the transcode executor, driven by the fake ffmpeg script."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from cutline.exceptions import BinaryNotFoundError, JobExecutionError, TranscodeError
from cutline.render.executor import RenderCallbacks, TranscodeExecutor, iter_lines
from cutline.render.jobs import build_job
from cutline.render.scheme import Scheme
from cutline.render.work_items import WorkItem, WorkItemProperties


class TestIterLines:
    """Tests for carriage-return aware line splitting."""

    @pytest.mark.asyncio
    async def test_splits_on_cr_and_lf(self):
        reader = asyncio.StreamReader()
        reader.feed_data(b"first\rsecond\r\nthird")
        reader.feed_eof()

        lines = [line async for line in iter_lines(reader)]

        assert lines == ["first", "second", "third"]


class TestRenderCallbacks:
    @pytest.mark.asyncio
    async def test_emit_sync_and_async(self):
        sync_cb = MagicMock()
        async_cb = AsyncMock()
        callbacks = RenderCallbacks(start=sync_cb, end=async_cb)

        await callbacks.emit("start", "ffmpeg -y")
        await callbacks.emit("end")
        await callbacks.emit("progress", None)

        sync_cb.assert_called_once_with("ffmpeg -y")
        async_cb.assert_awaited_once_with()


class TestTranscodeExecutor:
    """Tests for TranscodeExecutor.run() / transcode()."""

    @pytest.mark.asyncio
    async def test_run_relays_events(self, fake_ffmpeg, tmp_path: Path):
        executor = TranscodeExecutor(fake_ffmpeg)
        started = []
        progress = []
        stderr = []
        callbacks = RenderCallbacks(start=started.append, progress=progress.append, stderr=stderr.append)
        output = tmp_path / "out.mp4"

        await executor.run([fake_ffmpeg, "-y", "-i", "in.mp4", str(output)], callbacks)

        assert output.exists()
        assert len(started) == 1 and started[0].startswith(fake_ffmpeg)
        assert [p.percent for p in progress] == [50.0, 100.0]
        assert progress[-1].frames == 96
        assert any("Duration" in line for line in stderr)

    @pytest.mark.asyncio
    async def test_run_nonzero_exit(self, fake_ffmpeg, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("FAKE_FFMPEG_FAIL_ON", "broken")
        executor = TranscodeExecutor(fake_ffmpeg)

        with pytest.raises(JobExecutionError) as exc_info:
            await executor.run([fake_ffmpeg, "-i", "in.mp4", str(tmp_path / "broken.mp4")])

        assert exc_info.value.returncode == 1
        assert exc_info.value.message == "Conversion failed!"
        assert "Duration" in exc_info.value.stderr

    @pytest.mark.asyncio
    async def test_run_missing_binary(self, tmp_path: Path):
        missing = str(tmp_path / "no-such-ffmpeg")
        executor = TranscodeExecutor(missing)

        with pytest.raises(BinaryNotFoundError):
            await executor.run([missing, "-version"])

    @pytest.mark.asyncio
    async def test_transcode_writes_fragment(self, fake_ffmpeg, workdir: Path, ffmpeg_log: Path):
        executor = TranscodeExecutor(fake_ffmpeg)
        job = build_job(WorkItem("/videos/a.mp4"), 0, Scheme(), str(workdir / "master"))
        end = MagicMock()

        path = await executor.transcode(job, RenderCallbacks(end=end))

        assert path == job.output_path
        assert Path(path).exists()
        end.assert_called_once_with()
        line = ffmpeg_log.read_text().splitlines()[0]
        assert "-c:v libx264" in line
        assert "-i /videos/a.mp4" in line

    @pytest.mark.asyncio
    async def test_transcode_progress_accounts_for_seek(self, fake_ffmpeg, workdir: Path):
        executor = TranscodeExecutor(fake_ffmpeg)
        properties = WorkItemProperties(seek=2)
        job = build_job(WorkItem("/videos/a.mp4", properties), 0, Scheme(), str(workdir / "master"))
        updates = []

        await executor.transcode(job, RenderCallbacks(progress=updates.append))

        # Source is 4s long; seeking 2s in leaves 2s of output
        assert [update.percent for update in updates] == [100.0, 100.0]

    @pytest.mark.asyncio
    async def test_transcode_failure_emits_error(self, fake_ffmpeg, workdir: Path, monkeypatch):
        monkeypatch.setenv("FAKE_FFMPEG_FAIL_ON", "master3")
        executor = TranscodeExecutor(fake_ffmpeg)
        job = build_job(WorkItem("/videos/a.mp4"), 3, Scheme(), str(workdir / "master"))
        errors = []
        end = MagicMock()

        with pytest.raises(TranscodeError) as exc_info:
            await executor.transcode(job, RenderCallbacks(error=errors.append, end=end))

        assert exc_info.value.location.index == 3
        assert errors == [exc_info.value]
        end.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_kills_encoder(self, fake_ffmpeg, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("FAKE_FFMPEG_SLEEP", "5")
        executor = TranscodeExecutor(fake_ffmpeg)
        started = asyncio.Event()

        task = asyncio.create_task(
            executor.run(
                [fake_ffmpeg, "-i", "in.mp4", str(tmp_path / "slow.mp4")],
                RenderCallbacks(start=lambda _: started.set()),
            )
        )
        await asyncio.wait_for(started.wait(), timeout=5)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert not (tmp_path / "slow.mp4").exists()
