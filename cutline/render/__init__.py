from cutline.render.concat import Concatenator
from cutline.render.executor import RenderCallbacks, TranscodeExecutor
from cutline.render.jobs import ComplexRenderJob, RenderJob, SimpleRenderJob, build_job
from cutline.render.preview import PreviewOptions, PreviewStreamer
from cutline.render.scheme import Scheme
from cutline.render.sequencer import RenderProgress, RenderSequencer
from cutline.render.session import (
    RenderSessionConfig,
    RenderSessionController,
    RenderState,
    RenderUpdate,
)
from cutline.render.work_items import FilterSpec, WorkItem, WorkItemProperties, WorkItemRegistry

__all__ = [
    "Scheme",
    "FilterSpec",
    "WorkItem",
    "WorkItemProperties",
    "WorkItemRegistry",
    "SimpleRenderJob",
    "ComplexRenderJob",
    "RenderJob",
    "build_job",
    "RenderCallbacks",
    "TranscodeExecutor",
    "RenderProgress",
    "RenderSequencer",
    "Concatenator",
    "PreviewOptions",
    "PreviewStreamer",
    "RenderState",
    "RenderSessionConfig",
    "RenderSessionController",
    "RenderUpdate",
]
