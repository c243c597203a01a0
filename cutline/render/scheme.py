"""Render scheme: the target encode parameters applied to every fragment."""

import re
from dataclasses import asdict, dataclass, replace
from typing import Any, Optional

from cutline.config import get_settings
from cutline.exceptions import InvalidSchemeError

SIZE_PATTERN = re.compile(r"^(\d+|\?)x(\d+|\?)$")


def parse_size(size: str) -> tuple[Optional[int], Optional[int]]:
    """Parse a "WxH" size string.

    Either axis may be "?" (auto, keep aspect ratio), e.g. "640x?" or
    "?x480". Returns (width, height) with None for an auto axis.

    Raises:
        InvalidSchemeError: If the string is malformed or both axes are auto
    """
    match = SIZE_PATTERN.match(size.strip()) if isinstance(size, str) else None
    if not match:
        raise InvalidSchemeError(f"Invalid size: {size!r}", field="size")

    width = None if match.group(1) == "?" else int(match.group(1))
    height = None if match.group(2) == "?" else int(match.group(2))
    if width is None and height is None:
        raise InvalidSchemeError(f"Invalid size: {size!r}", field="size")
    if width == 0 or height == 0:
        raise InvalidSchemeError(f"Invalid size: {size!r}", field="size")
    return width, height


@dataclass(frozen=True)
class Scheme:
    """Target encode parameters.

    format is the container extension including the dot (".mp4"); it is
    appended verbatim to fragment and output names.
    """

    size: str = "1280x720"
    format: str = ".mp4"
    codec: str = "libx264"
    bitrate: str = "1000k"
    fps: float = 24
    pad: bool = True

    def __post_init__(self) -> None:
        parse_size(self.size)
        if not self.format.startswith("."):
            object.__setattr__(self, "format", f".{self.format}")
        if isinstance(self.bitrate, (int, float)):
            # Bare numbers are kbit/s, as fluent-ffmpeg treats them
            object.__setattr__(self, "bitrate", f"{int(self.bitrate)}k")
        if self.fps is not None and self.fps <= 0:
            raise InvalidSchemeError(f"Invalid fps: {self.fps}", field="fps")

    @property
    def dimensions(self) -> tuple[Optional[int], Optional[int]]:
        return parse_size(self.size)

    def with_changes(self, **changes: Any) -> "Scheme":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return asdict(self)

    @classmethod
    def default(cls) -> "Scheme":
        """Scheme built from the configured defaults."""
        settings = get_settings()
        return cls(
            size=settings.default_scheme_size,
            format=settings.default_scheme_format,
            codec=settings.default_scheme_codec,
            bitrate=settings.default_scheme_bitrate,
            fps=settings.default_scheme_fps,
            pad=settings.default_scheme_pad,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Scheme":
        """Deserialize from dictionary; missing keys take configured defaults."""
        known = {
            key: value
            for key, value in data.items()
            if key in cls.__dataclass_fields__ and value is not None
        }
        return cls.default().with_changes(**known)
