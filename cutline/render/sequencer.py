"""Render sequencer: transcodes every work item, strictly one after another.

Encoders are CPU/GPU bound, so fragments are produced sequentially: job
i+1 is only started once job i has ended. The first failure aborts the
sequence; nothing is retried.

Fragment bookkeeping: a fragment's name is appended to the session's list
when its job is submitted, before the encoder runs. If that job then fails
its name stays in the list, but the session aborts before concatenation
reads it.
"""

import inspect
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from cutline.exceptions import EmptyInputError
from cutline.render.executor import RenderCallbacks, TranscodeExecutor
from cutline.render.jobs import build_job
from cutline.render.progress import TranscodeProgress
from cutline.render.scheme import Scheme
from cutline.render.work_items import WorkItem

logger = logging.getLogger(__name__)

MASTER_DIR = "master"


@dataclass
class RenderProgress:
    """Overall progress of a render session."""

    index: int
    total: int
    percent: float
    item_percent: Optional[float] = None
    stage: str = "transcode"
    transcode: Optional[TranscodeProgress] = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "index": self.index,
            "total": self.total,
            "percent": self.percent,
            "item_percent": self.item_percent,
            "stage": self.stage,
        }


def overall_percent(index: int, total: int, item_percent: Optional[float]) -> float:
    """Map one item's percent onto the whole sequence."""
    if total <= 0:
        return 0.0
    done = index + (item_percent or 0.0) / 100.0
    return round(min(100.0, done / total * 100.0), 2)


def master_dir(workdir: str) -> str:
    return os.path.join(workdir, MASTER_DIR)


class RenderSequencer:
    """Drives the transcode executor over all work items in order."""

    def __init__(self, executor: TranscodeExecutor):
        self.executor = executor

    async def render_all(
        self,
        items: Sequence[WorkItem],
        scheme: Scheme,
        workdir: str,
        fragments: list[str],
        start_index: int = 0,
        callbacks: Optional[RenderCallbacks] = None,
        on_progress: Optional[Callable[[RenderProgress], Any]] = None,
    ) -> list[str]:
        """Transcode items[start_index:] into master fragments.

        Args:
            items: Work items in playback order
            scheme: Scheme snapshot applied to every job
            workdir: Working directory; fragments go to <workdir>/master
            fragments: Session fragment list, appended to in order
            start_index: First item to render
            callbacks: Per-job encoder observers
            on_progress: Receives overall RenderProgress updates

        Returns:
            The fragment list

        Raises:
            EmptyInputError: If there are no work items
            TranscodeError: On the first failing item
        """
        if len(items) == 0:
            raise EmptyInputError()

        total = len(items)
        out_dir = master_dir(workdir)

        for index in range(start_index, total):
            job = build_job(items[index], index, scheme, out_dir)
            logger.info(
                f"[RENDER] Work item {index + 1}/{total}: {job.item.file} "
                f"({type(job).__name__})"
            )
            fragments.append(job.fragment)
            await self.executor.transcode(
                job, self._job_callbacks(index, total, callbacks, on_progress)
            )

        return fragments

    def _job_callbacks(
        self,
        index: int,
        total: int,
        callbacks: Optional[RenderCallbacks],
        on_progress: Optional[Callable[[RenderProgress], Any]],
    ) -> RenderCallbacks:
        """Wrap caller callbacks so progress is also relayed as RenderProgress."""
        base = callbacks or RenderCallbacks()

        async def relay_progress(progress: TranscodeProgress) -> None:
            await base.emit("progress", progress)
            if on_progress is not None:
                update = RenderProgress(
                    index=index,
                    total=total,
                    percent=overall_percent(index, total, progress.percent),
                    item_percent=progress.percent,
                    transcode=progress,
                )
                result = on_progress(update)
                if inspect.isawaitable(result):
                    await result

        return RenderCallbacks(
            start=base.start,
            progress=relay_progress,
            stderr=base.stderr,
            end=base.end,
            error=base.error,
        )
