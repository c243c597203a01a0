"""Preview streamer: short, web-playable clips streamed straight to a sink.

Previews are independent of the work-item pipeline. They read a caller
supplied path, never touch session state, and may run concurrently with a
full render or with each other.

Output is H.264 in fragmented MP4 ("frag_keyframe+empty_moov") so a player
can start before the clip is complete, capped at PREVIEW_MAX_DURATION_S
seconds and downscaled.
"""

import asyncio
import inspect
import logging
from collections import deque
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional, Union

from cutline.exceptions import StreamError
from cutline.render.command import FFmpegCommand
from cutline.render.executor import iter_lines, terminate_process
from cutline.render.work_items import FilterSpec, filter_chain

logger = logging.getLogger(__name__)

PREVIEW_MAX_DURATION_S = 10.0
PREVIEW_MOVFLAGS = "frag_keyframe+empty_moov"


@dataclass(frozen=True)
class PreviewOptions:
    """What to preview: a file, a start offset and optional filters."""

    path: str
    seek: float = 0.0
    filters: tuple[Union[str, FilterSpec], ...] = ()


async def _collect_tail(stream: asyncio.StreamReader, size: int = 20) -> str:
    tail: deque[str] = deque(maxlen=size)
    async for line in iter_lines(stream):
        tail.append(line)
    return "\n".join(tail)


async def _write_chunk(sink: Any, chunk: bytes) -> None:
    """Push one chunk into a sink.

    A sink is anything with write() (sync or async, with an optional
    async drain() as on asyncio.StreamWriter) or a plain (async) callable.
    """
    if hasattr(sink, "write"):
        result = sink.write(chunk)
        if inspect.isawaitable(result):
            await result
        drain = getattr(sink, "drain", None)
        if drain is not None:
            await drain()
        return
    result = sink(chunk)
    if inspect.isawaitable(result):
        await result


class PreviewStreamer:
    """Renders preview fragments on demand."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        duration_s: float = PREVIEW_MAX_DURATION_S,
        size: str = "?x480",
        codec: str = "libx264",
        chunk_size: int = 64 * 1024,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.duration_s = min(duration_s, PREVIEW_MAX_DURATION_S)
        self.size = size
        self.codec = codec
        self.chunk_size = chunk_size

    def build_command(self, options: PreviewOptions) -> FFmpegCommand:
        """Seek on the input first, then filters, then the preview encode."""
        command = FFmpegCommand().input(options.path).seek_input(options.seek or 0)

        filters = filter_chain(options.filters)
        if filters:
            command.video_filters(filters)

        return (
            command.duration(self.duration_s)
            .size(self.size)
            .format("mp4")
            .output_options("-movflags", PREVIEW_MOVFLAGS)
            .video_codec(self.codec)
            .output("pipe:1")
        )

    async def stream(self, options: PreviewOptions) -> AsyncIterator[bytes]:
        """Yield the encoded preview as it is produced.

        Closing the iterator early kills the encoder.

        Raises:
            StreamError: If ffmpeg cannot start or exits non-zero
        """
        cmd = self.build_command(options).build(self.ffmpeg_path)
        logger.info(f"[PREVIEW] {options.path} @ {options.seek}s")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise StreamError(f"Cannot start ffmpeg: {cmd[0]}") from e

        stderr_task = asyncio.create_task(_collect_tail(process.stderr))
        try:
            while True:
                chunk = await process.stdout.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
            returncode = await process.wait()
        finally:
            await terminate_process(process)
            stderr_tail = await stderr_task

        if returncode != 0:
            logger.error(f"[PREVIEW] ffmpeg exited with code {returncode}: {stderr_tail}")
            raise StreamError(
                f"Preview render failed for {options.path} (exit code {returncode})",
                stderr=stderr_tail,
            )

    async def render_preview(self, options: PreviewOptions, sink: Any) -> int:
        """Stream a preview into `sink`; resolves once the last byte is written.

        Returns:
            Number of bytes written

        Raises:
            StreamError: On encoder failure or if the sink stops accepting data
        """
        written = 0
        async with aclosing(self.stream(options)) as chunks:
            async for chunk in chunks:
                try:
                    await _write_chunk(sink, chunk)
                except OSError as e:
                    raise StreamError(f"Preview sink closed: {e}") from e
                written += len(chunk)
        logger.info(f"[PREVIEW] Streamed {written} bytes for {options.path}")
        return written


def preview_options(
    path: str,
    seek: Optional[float] = None,
    filters: Optional[list[Union[str, FilterSpec, dict]]] = None,
) -> PreviewOptions:
    """Build PreviewOptions from loosely typed request values."""
    return PreviewOptions(
        path=path,
        seek=float(seek or 0),
        filters=tuple(FilterSpec.parse(f) for f in filters or ()),
    )
