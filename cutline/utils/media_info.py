"""Media file information utilities using FFprobe."""

import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from typing import Any

from cutline.exceptions import BinaryNotFoundError, ProbeError

logger = logging.getLogger(__name__)


@dataclass
class MediaInfo:
    """Media file information."""

    duration_ms: int | None = None
    width: int | None = None
    height: int | None = None
    fps: float | None = None
    video_codec: str | None = None
    audio_codec: str | None = None
    sample_rate: int | None = None
    channels: int | None = None
    has_video: bool = False
    has_audio: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


async def probe(file_path: str, ffprobe_path: str = "ffprobe") -> dict[str, Any]:
    """
    Run ffprobe and return the container/stream metadata.

    Args:
        file_path: Path to media file
        ffprobe_path: ffprobe binary

    Returns:
        Parsed ffprobe JSON with "format" and "streams"

    Raises:
        ProbeError: If ffprobe fails or its output is not JSON
        BinaryNotFoundError: If ffprobe cannot be executed
    """
    cmd = [
        ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        file_path,
    ]
    logger.info(f"[PROBE] {file_path}")

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (FileNotFoundError, PermissionError) as e:
        raise BinaryNotFoundError(ffprobe_path) from e

    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        reason = stderr.decode("utf-8", errors="replace").strip() or f"exit code {process.returncode}"
        raise ProbeError(file_path, reason)

    try:
        return json.loads(stdout.decode("utf-8", errors="replace"))
    except json.JSONDecodeError as e:
        raise ProbeError(file_path, f"Failed to parse ffprobe output: {e}") from e


def _parse_frame_rate(rate: str | None) -> float | None:
    if not rate or "/" not in rate:
        return None
    num, den = rate.split("/", 1)
    try:
        if int(den) > 0:
            return round(int(num) / int(den), 3)
    except ValueError:
        return None
    return None


def summarize(metadata: dict[str, Any]) -> MediaInfo:
    """
    Reduce ffprobe metadata to the fields the editor displays.

    Args:
        metadata: Output of probe()

    Returns:
        MediaInfo for the first video and first audio stream
    """
    info = MediaInfo()

    format_info = metadata.get("format", {})
    if "duration" in format_info:
        info.duration_ms = int(float(format_info["duration"]) * 1000)

    for stream in metadata.get("streams", []):
        codec_type = stream.get("codec_type")

        if codec_type == "video" and not info.has_video:
            info.has_video = True
            info.width = stream.get("width")
            info.height = stream.get("height")
            info.video_codec = stream.get("codec_name")
            info.fps = _parse_frame_rate(stream.get("r_frame_rate"))

        elif codec_type == "audio" and not info.has_audio:
            info.has_audio = True
            info.audio_codec = stream.get("codec_name")
            info.sample_rate = int(stream.get("sample_rate", 0)) or None
            info.channels = stream.get("channels")

    return info
