"""Declarative FFmpeg command builder.

Collects inputs, filters and output options and turns them into an argv
list. Size handling follows the usual "WxH" / "Wx?" / "?xH" conventions:

- "WxH" scales to exactly WxH, or with autopad scales to fit inside WxH
  and pads the remainder with black bars
- "Wx?" / "?xH" constrain one axis and keep the other even
"""

from dataclasses import dataclass, field
from typing import Optional

from cutline.render.scheme import parse_size

# Normalize non-square pixels so the display aspect ratio survives scaling
KEEP_DAR_FILTERS = [
    "scale=w='if(gt(sar,1),iw*sar,iw)':h='if(lt(sar,1),ih/sar,ih)'",
    "setsar=1",
]


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def size_filters(size: str, pad: bool = False) -> list[str]:
    """Build the scale (and pad) filters for a size string."""
    width, height = parse_size(size)

    if width is None:
        return [f"scale=w=-2:h={height}"]
    if height is None:
        return [f"scale=w={width}:h=-2"]
    if not pad:
        return [f"scale=w={width}:h={height}"]

    ratio = f"{width}/{height}"
    return [
        f"scale=w='if(gt(a,{ratio}),{width},trunc({height}*a/2)*2)'"
        f":h='if(lt(a,{ratio}),{height},trunc({width}/a/2)*2)'",
        f"pad=w={width}:h={height}"
        f":x='if(gt(a,{ratio}),0,({width}-iw)/2)'"
        f":y='if(lt(a,{ratio}),0,({height}-ih)/2)'"
        f":color=black",
    ]


@dataclass
class CommandInput:
    """One -i source with its input options."""

    source: str
    seek: Optional[float] = None
    options: list[str] = field(default_factory=list)

    def to_args(self) -> list[str]:
        args = list(self.options)
        if self.seek is not None:
            args.extend(["-ss", _format_number(self.seek)])
        args.extend(["-i", self.source])
        return args


class FFmpegCommand:
    """Fluent builder for a single ffmpeg invocation."""

    def __init__(self) -> None:
        self.inputs: list[CommandInput] = []
        self.duration_s: Optional[float] = None
        self.filters: list[str] = []
        self.complex_filter_graph: Optional[str] = None
        self.size_value: Optional[str] = None
        self.pad: bool = False
        self.keep_dar_enabled: bool = False
        self.fps_value: Optional[float] = None
        self.bitrate: Optional[str] = None
        self.codec: Optional[str] = None
        self.container: Optional[str] = None
        self.extra_output_options: list[str] = []
        self.target: Optional[str] = None

    # Inputs

    def input(self, source: str, *options: str) -> "FFmpegCommand":
        self.inputs.append(CommandInput(source=str(source), options=list(options)))
        return self

    def seek_input(self, seconds: float) -> "FFmpegCommand":
        """Seek the most recently added input."""
        if not self.inputs:
            raise ValueError("seek_input() requires an input")
        self.inputs[-1].seek = seconds
        return self

    # Filters

    def video_filters(self, filters: list[str]) -> "FFmpegCommand":
        self.filters.extend(filters)
        return self

    def complex_filter(self, graph: str) -> "FFmpegCommand":
        self.complex_filter_graph = graph
        return self

    # Output

    def duration(self, seconds: float) -> "FFmpegCommand":
        self.duration_s = seconds
        return self

    def size(self, size: str) -> "FFmpegCommand":
        parse_size(size)
        self.size_value = size
        return self

    def autopad(self, pad: bool = True) -> "FFmpegCommand":
        self.pad = pad
        return self

    def keep_dar(self) -> "FFmpegCommand":
        self.keep_dar_enabled = True
        return self

    def fps(self, fps: float) -> "FFmpegCommand":
        self.fps_value = fps
        return self

    def video_bitrate(self, bitrate: str) -> "FFmpegCommand":
        self.bitrate = str(bitrate)
        return self

    def video_codec(self, codec: str) -> "FFmpegCommand":
        self.codec = codec
        return self

    def format(self, container: str) -> "FFmpegCommand":
        self.container = container
        return self

    def output_options(self, *options: str) -> "FFmpegCommand":
        self.extra_output_options.extend(options)
        return self

    def output(self, target: str) -> "FFmpegCommand":
        self.target = str(target)
        return self

    def video_filter_chain(self) -> list[str]:
        """The -vf chain: user filters, then DAR normalization, then size."""
        chain = list(self.filters)
        if self.keep_dar_enabled:
            chain.extend(KEEP_DAR_FILTERS)
        if self.size_value:
            chain.extend(size_filters(self.size_value, self.pad))
        return chain

    def build(self, ffmpeg_path: str = "ffmpeg") -> list[str]:
        """Build the argv list.

        Raises:
            ValueError: If no input or no output was given
        """
        if not self.inputs:
            raise ValueError("No input specified")
        if self.target is None:
            raise ValueError("No output specified")

        cmd = [ffmpeg_path, "-y"]
        for command_input in self.inputs:
            cmd.extend(command_input.to_args())

        if self.complex_filter_graph:
            # The graph owns geometry; -vf cannot be combined with it
            cmd.extend(["-filter_complex", self.complex_filter_graph])
        else:
            chain = self.video_filter_chain()
            if chain:
                cmd.extend(["-filter:v", ",".join(chain)])

        if self.duration_s is not None:
            cmd.extend(["-t", _format_number(self.duration_s)])
        if self.fps_value is not None:
            cmd.extend(["-r", _format_number(self.fps_value)])
        if self.bitrate:
            cmd.extend(["-b:v", self.bitrate])
        if self.codec:
            cmd.extend(["-c:v", self.codec])
        if self.container:
            cmd.extend(["-f", self.container])
        cmd.extend(self.extra_output_options)
        cmd.append(self.target)
        return cmd
