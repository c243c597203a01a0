"""Media import service.

Provides:
- Copying source media into a project's videos/ directory
- Converting a source file into a scheme-compliant copy
"""

import logging
import os
import shutil
import time
from pathlib import Path
from typing import Optional

from cutline.render.command import FFmpegCommand
from cutline.render.executor import RenderCallbacks, TranscodeExecutor
from cutline.render.scheme import Scheme

logger = logging.getLogger(__name__)

PROJECT_VIDEO_DIR = "videos"


def project_video_path(video_path: str, project_file: str, timestamp_ms: Optional[int] = None) -> Path:
    """Destination of an imported video: <project dir>/videos/<stem>_<ms><ext>."""
    source = Path(video_path)
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return Path(project_file).parent / PROJECT_VIDEO_DIR / f"{source.stem}_{timestamp_ms}{source.suffix}"


def copy_video_to_project(video_path: str, project_file: str) -> str:
    """
    Copy a source video next to the project file.

    Args:
        video_path: Path of the video to import
        project_file: Path of the project file; its directory is the project root

    Returns:
        Path of the copy

    Raises:
        FileNotFoundError: If the video does not exist
    """
    if not os.path.isfile(video_path):
        raise FileNotFoundError(f"Video not found: {video_path}")

    destination = project_video_path(video_path, project_file)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(video_path, destination)

    logger.info(f"[IMPORT] Copied {video_path} -> {destination}")
    return str(destination)


def build_compliant_command(input_path: str, output_path: str, scheme: Scheme) -> FFmpegCommand:
    return (
        FFmpegCommand()
        .input(input_path)
        .size(scheme.size)
        .fps(scheme.fps)
        .video_bitrate(scheme.bitrate)
        .video_codec(scheme.codec)
        .autopad(scheme.pad)
        .keep_dar()
        .output(output_path)
    )


async def convert_to_compliant(
    executor: TranscodeExecutor,
    input_path: str,
    name: str,
    scheme: Scheme,
    workdir: str,
    callbacks: Optional[RenderCallbacks] = None,
) -> str:
    """
    Transcode one file under the scheme to <workdir>/<name><format>.

    Returns:
        Path of the converted file

    Raises:
        JobExecutionError: If ffmpeg fails
        BinaryNotFoundError: If ffmpeg is missing
    """
    os.makedirs(workdir, exist_ok=True)
    output_path = os.path.join(workdir, f"{name}{scheme.format}")
    cmd = build_compliant_command(input_path, output_path, scheme).build(executor.ffmpeg_path)

    await executor.run(cmd, callbacks)

    logger.info(f"[IMPORT] Converted {input_path} -> {output_path}")
    return output_path
