"""
FFmpeg progress parsing.

FFmpeg reports on stderr. The input header carries the source length:
    Duration: 00:00:12.48, start: 0.000000, bitrate: 1205 kb/s
and status lines carry the position reached so far:
    frame=   24 fps= 12 q=28.0 size=       0kB time=00:00:01.00 bitrate=   0.0kbits/s

We parse:
- Duration → total length, minus any input seek (unless the job caps it with -t)
- time=HH:MM:SS.ss → current position
- frame= / fps= → counters relayed as-is
"""

import re
from dataclasses import dataclass
from typing import Optional

DURATION_PATTERN = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
TIME_PATTERN = re.compile(r"time=\s*(-?\d+):(\d{2}):(\d{2}(?:\.\d+)?)")
FRAME_PATTERN = re.compile(r"frame=\s*(\d+)")
FPS_PATTERN = re.compile(r"fps=\s*([\d.]+)")


def parse_timestamp(hours: str, minutes: str, seconds: str) -> float:
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


@dataclass
class TranscodeProgress:
    """Progress of one encoder invocation."""

    frames: int = 0
    current_fps: float = 0.0
    timemark: float = 0.0
    percent: Optional[float] = None

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "frames": self.frames,
            "current_fps": self.current_fps,
            "timemark": self.timemark,
            "percent": self.percent,
        }


class ProgressParser:
    """
    Parse FFmpeg stderr output for progress information.

    Usage:
        parser = ProgressParser(duration=None)
        for line in ffmpeg_stderr:
            progress = parser.parse_line(line)
            if progress:
                update_ui(progress)
    """

    def __init__(self, duration: Optional[float] = None, offset: float = 0.0):
        # A -t cap wins over whatever the input header reports
        self.duration = duration
        self.offset = offset
        self._capped = duration is not None

    def parse_line(self, line: str) -> Optional[TranscodeProgress]:
        """Parse one stderr line; returns progress for status lines only."""
        duration_match = DURATION_PATTERN.search(line)
        if duration_match:
            if not self._capped:
                # Input seeking skips the first `offset` seconds of the source
                duration = parse_timestamp(*duration_match.groups()) - self.offset
                if duration <= 0:
                    return None
                # Several inputs: the longest one bounds the output
                if self.duration is None or duration > self.duration:
                    self.duration = duration
            return None

        time_match = TIME_PATTERN.search(line)
        if not time_match:
            return None

        timemark = max(0.0, parse_timestamp(*time_match.groups()))
        progress = TranscodeProgress(timemark=timemark)

        frame_match = FRAME_PATTERN.search(line)
        if frame_match:
            progress.frames = int(frame_match.group(1))

        fps_match = FPS_PATTERN.search(line)
        if fps_match:
            progress.current_fps = float(fps_match.group(1))

        if self.duration:
            progress.percent = min(100.0, timemark / self.duration * 100.0)

        return progress
