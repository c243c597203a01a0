"""Locate the ffmpeg/ffprobe binaries.

Development builds use whatever is on PATH. Packaged builds ship their own
binaries under <bin_dir>/<platform dir>/.
"""

import logging
import os
import platform as platform_module
import shutil
from dataclasses import dataclass
from typing import Optional

from cutline.config import Settings
from cutline.exceptions import BinaryNotFoundError, UnsupportedPlatformError

logger = logging.getLogger(__name__)

X64_MACHINES = {"x86_64", "amd64", "x64"}


@dataclass(frozen=True)
class EncoderBinaries:
    ffmpeg: str
    ffprobe: str


def bundled_binary_dir(system: str, machine: str) -> tuple[str, str]:
    """Return (platform directory, executable suffix) for bundled binaries.

    Raises:
        UnsupportedPlatformError: If no bundle exists for system/machine
    """
    system = system.lower()
    machine = machine.lower()
    if system == "darwin":
        return "darwin", ""
    if system in ("windows", "win32") and machine in X64_MACHINES:
        return "win64", ".exe"
    if system == "linux" and machine in X64_MACHINES:
        return "linux64", ""
    raise UnsupportedPlatformError(system, machine)


def resolve_binaries(
    settings: Settings,
    system: Optional[str] = None,
    machine: Optional[str] = None,
) -> EncoderBinaries:
    """Resolve and verify the encoder binaries.

    Raises:
        UnsupportedPlatformError: If bundled binaries are requested on an
            unsupported platform
        BinaryNotFoundError: If a binary is missing
    """
    if settings.use_system_binaries:
        logger.info("Using system PATH binaries")
        resolved = []
        for name in (settings.ffmpeg_path, settings.ffprobe_path):
            found = shutil.which(name)
            if found is None:
                raise BinaryNotFoundError(name)
            resolved.append(found)
        return EncoderBinaries(ffmpeg=resolved[0], ffprobe=resolved[1])

    platform_dir, suffix = bundled_binary_dir(
        system or platform_module.system(),
        machine or platform_module.machine(),
    )
    base = os.path.join(settings.bin_dir, platform_dir)
    binaries = EncoderBinaries(
        ffmpeg=os.path.join(base, f"ffmpeg{suffix}"),
        ffprobe=os.path.join(base, f"ffprobe{suffix}"),
    )
    for path in (binaries.ffmpeg, binaries.ffprobe):
        if not os.path.exists(path):
            raise BinaryNotFoundError(path)
    logger.info(f"Using bundled binaries from {base}")
    return binaries
