"""Concatenator: stitches ordered fragments into the master output.

Uses the FFmpeg concat demuxer with stream copy (no re-encoding). All
fragments were produced under one scheme, so their codec parameters match;
mixed fragments are not supported.
"""

import logging
import os
from typing import Optional, Sequence

from cutline.exceptions import ConcatError, EmptyInputError, JobExecutionError
from cutline.render.command import FFmpegCommand
from cutline.render.executor import RenderCallbacks, TranscodeExecutor
from cutline.render.scheme import Scheme
from cutline.render.sequencer import master_dir

logger = logging.getLogger(__name__)

MANIFEST_NAME = "list.txt"


def write_manifest(fragments: Sequence[str], directory: str) -> str:
    """Write the concat demuxer manifest, one "file <name>" line per fragment.

    Fragment names are relative to the manifest's directory. An existing
    manifest is overwritten.

    Raises:
        ConcatError: If the manifest cannot be written
    """
    manifest_path = os.path.join(directory, MANIFEST_NAME)
    content = "".join(f"file {name}\n" for name in fragments)
    try:
        os.makedirs(directory, exist_ok=True)
        with open(manifest_path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise ConcatError(f"Failed to write concat manifest {manifest_path}: {e}") from e
    return manifest_path


def build_concat_command(manifest_path: str, output_path: str) -> FFmpegCommand:
    return (
        FFmpegCommand()
        .input(manifest_path, "-f", "concat", "-safe", "0")
        .output_options("-c", "copy")
        .output(output_path)
    )


class Concatenator:
    """Lossless concatenation of master fragments."""

    def __init__(self, executor: TranscodeExecutor):
        self.executor = executor

    async def stitch(
        self,
        fragments: Sequence[str],
        workdir: str,
        master_output: str,
        scheme: Scheme,
        callbacks: Optional[RenderCallbacks] = None,
    ) -> str:
        """Concatenate fragments (in list order) into <master_output><format>.

        Returns:
            Path of the final output

        Raises:
            EmptyInputError: If there is nothing to concatenate
            ConcatError: If the manifest or the concat process fails
        """
        callbacks = callbacks or RenderCallbacks()
        if not fragments:
            raise EmptyInputError("No fragments to concatenate")

        output_path = f"{master_output}{scheme.format}"
        try:
            manifest_path = write_manifest(fragments, master_dir(workdir))
            output_dir = os.path.dirname(output_path)
            if output_dir:
                os.makedirs(output_dir, exist_ok=True)
            logger.info(f"[CONCAT] {len(fragments)} fragments -> {output_path}")
            cmd = build_concat_command(manifest_path, output_path).build(self.executor.ffmpeg_path)
            await self.executor.run(cmd, callbacks)
        except ConcatError as e:
            await callbacks.emit("error", e)
            raise
        except (JobExecutionError, OSError) as e:
            error = ConcatError(
                f"Concatenation failed: {e}",
                returncode=getattr(e, "returncode", None),
                stderr=getattr(e, "stderr", None),
            )
            await callbacks.emit("error", error)
            raise error from e

        logger.info(f"[CONCAT] Concatenation successful: {output_path}")
        await callbacks.emit("end")
        return output_path
