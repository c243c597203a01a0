"""Per-item render jobs.

A work item renders either as a SimpleRenderJob (the session scheme is
applied, item filters become a -vf chain) or as a ComplexRenderJob (the
item's filter graph is used verbatim and the scheme is not applied). The
two paths are separate types so callers can tell them apart statically.
"""

import os
from dataclasses import dataclass
from typing import Union

from cutline.render.command import FFmpegCommand
from cutline.render.scheme import Scheme
from cutline.render.work_items import WorkItem, filter_chain, fragment_name


@dataclass(frozen=True)
class _RenderJobBase:
    index: int
    item: WorkItem
    scheme: Scheme
    master_dir: str

    @property
    def fragment(self) -> str:
        return fragment_name(self.index, self.scheme.format)

    @property
    def output_path(self) -> str:
        return os.path.join(self.master_dir, self.fragment)

    @property
    def duration_hint(self) -> float | None:
        """Expected output length in seconds, when the item caps it."""
        return self.item.properties.duration

    @property
    def seek_offset(self) -> float:
        """Seconds skipped at the start of the main input."""
        return self.item.properties.seek or 0.0

    def _base_command(self) -> FFmpegCommand:
        properties = self.item.properties
        command = FFmpegCommand()

        if properties.duration:
            command.duration(properties.duration)

        if properties.advanced and properties.advanced.inputs:
            for extra_input in properties.advanced.inputs:
                command.input(extra_input)

        return command

    def _finish(self, command: FFmpegCommand) -> FFmpegCommand:
        # The work item's own file is always the last input
        command.input(self.item.file)
        if self.item.properties.seek:
            command.seek_input(self.item.properties.seek)
        return command.keep_dar().output(self.output_path)

    def to_command(self) -> FFmpegCommand:
        raise NotImplementedError


@dataclass(frozen=True)
class SimpleRenderJob(_RenderJobBase):
    """Scheme-driven transcode of one work item."""

    def to_command(self) -> FFmpegCommand:
        command = self._base_command()
        scheme = self.scheme
        command.size(scheme.size).fps(scheme.fps).video_bitrate(scheme.bitrate).video_codec(
            scheme.codec
        ).autopad(scheme.pad)

        filters = filter_chain(self.item.properties.filters)
        if filters:
            command.video_filters(filters)
        return self._finish(command)


@dataclass(frozen=True)
class ComplexRenderJob(_RenderJobBase):
    """Caller-supplied filter graph; the scheme is not applied."""

    @property
    def filter_graph(self) -> str | None:
        return self.item.properties.complex_filter

    def to_command(self) -> FFmpegCommand:
        command = self._base_command()
        if self.filter_graph:
            command.complex_filter(self.filter_graph)
        return self._finish(command)


RenderJob = Union[SimpleRenderJob, ComplexRenderJob]


def build_job(item: WorkItem, index: int, scheme: Scheme, master_dir: str) -> RenderJob:
    """Pick the job variant for a work item."""
    if item.properties.is_complex:
        return ComplexRenderJob(index=index, item=item, scheme=scheme, master_dir=master_dir)
    return SimpleRenderJob(index=index, item=item, scheme=scheme, master_dir=master_dir)
