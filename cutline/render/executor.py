"""Transcode executor: runs one external ffmpeg invocation at a time.

The executor spawns ffmpeg with asyncio subprocesses, relays stderr lines
and parsed progress to optional callbacks, and raises on non-zero exit.
Nothing is retried.
"""

import asyncio
import inspect
import logging
import os
import re
import shlex
from collections import deque
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

from cutline.exceptions import (
    BinaryNotFoundError,
    CutlineError,
    JobExecutionError,
    TranscodeError,
)
from cutline.render.jobs import RenderJob
from cutline.render.progress import ProgressParser, TranscodeProgress

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20
LINE_BREAK = re.compile(rb"[\r\n]+")


@dataclass
class RenderCallbacks:
    """Optional observers for encoder events.

    Each callback may be a plain function or a coroutine function. A missing
    callback is a no-op.
    """

    start: Optional[Callable[[str], Any]] = None
    progress: Optional[Callable[[TranscodeProgress], Any]] = None
    stderr: Optional[Callable[[str], Any]] = None
    end: Optional[Callable[[], Any]] = None
    error: Optional[Callable[[Exception], Any]] = None

    async def emit(self, event: str, *args: Any) -> None:
        callback = getattr(self, event)
        if callback is None:
            return
        result = callback(*args)
        if inspect.isawaitable(result):
            await result


async def iter_lines(stream: asyncio.StreamReader) -> AsyncIterator[str]:
    """Yield decoded lines split on \\r or \\n.

    ffmpeg rewrites its status line with carriage returns, so readline()
    would only return once the encode finished.
    """
    buffer = b""
    while True:
        chunk = await stream.read(4096)
        if not chunk:
            break
        buffer += chunk
        *lines, buffer = LINE_BREAK.split(buffer)
        for line in lines:
            if line:
                yield line.decode("utf-8", errors="replace")
    if buffer:
        yield buffer.decode("utf-8", errors="replace")


async def terminate_process(process: asyncio.subprocess.Process) -> None:
    """Kill a still-running encoder and reap it."""
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return
    await process.wait()


class TranscodeExecutor:
    """Wraps external ffmpeg invocations."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    async def run(
        self,
        cmd: list[str],
        callbacks: Optional[RenderCallbacks] = None,
        duration_hint: Optional[float] = None,
        seek_offset: float = 0.0,
    ) -> None:
        """Run one ffmpeg command to completion.

        Args:
            cmd: Full argv, binary first
            callbacks: Optional event observers (start/progress/stderr)
            duration_hint: Output length in seconds if known up front
            seek_offset: Input seek; subtracted from the probed input length

        Raises:
            BinaryNotFoundError: If the binary cannot be executed
            JobExecutionError: If ffmpeg exits non-zero
            asyncio.CancelledError: If the awaiting task is cancelled; the
                encoder is killed first
        """
        callbacks = callbacks or RenderCallbacks()
        command_line = shlex.join(cmd)
        logger.info(f"[TRANSCODE] Command: {command_line}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise BinaryNotFoundError(cmd[0]) from e

        await callbacks.emit("start", command_line)

        parser = ProgressParser(duration=duration_hint, offset=seek_offset)
        tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        try:
            async for line in iter_lines(process.stderr):
                tail.append(line)
                logger.debug(f"[TRANSCODE] {line}")
                await callbacks.emit("stderr", line)
                progress = parser.parse_line(line)
                if progress is not None:
                    await callbacks.emit("progress", progress)
            returncode = await process.wait()
        finally:
            await terminate_process(process)

        if returncode != 0:
            stderr_text = "\n".join(tail)
            reason = tail[-1] if tail else f"ffmpeg exited with code {returncode}"
            logger.error(f"[TRANSCODE] ffmpeg exited with code {returncode}: {stderr_text}")
            raise JobExecutionError(reason, returncode=returncode, stderr=stderr_text)

    async def transcode(self, job: RenderJob, callbacks: Optional[RenderCallbacks] = None) -> str:
        """Render one work item into its fragment.

        Returns:
            Path of the written fragment

        Raises:
            TranscodeError: If the encoder fails for this item
            BinaryNotFoundError: If ffmpeg is missing
        """
        callbacks = callbacks or RenderCallbacks()
        try:
            os.makedirs(job.master_dir, exist_ok=True)
            cmd = job.to_command().build(self.ffmpeg_path)
            await self.run(cmd, callbacks, duration_hint=job.duration_hint, seek_offset=job.seek_offset)
        except JobExecutionError as e:
            error = TranscodeError(job.index, e.message, returncode=e.returncode, stderr=e.stderr)
            await callbacks.emit("error", error)
            raise error from e
        except OSError as e:
            error = TranscodeError(job.index, str(e))
            await callbacks.emit("error", error)
            raise error from e
        except CutlineError as e:
            await callbacks.emit("error", e)
            raise

        logger.info(f"[TRANSCODE] Work item {job.index} -> {job.output_path}")
        await callbacks.emit("end")
        return job.output_path
