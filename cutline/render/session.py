"""Render session controller: the façade the editor UI talks to.

State machine:

    IDLE ──render()──▶ RENDERING ──all fragments + concat ok──▶ COMPLETED
                           │
                           └──any transcode/concat error──▶ FAILED

COMPLETED and FAILED go back to RENDERING on the next render() call; there
is no explicit reset. Configuration (scheme, work items, output) is staged
by the setters and captured as one RenderSessionConfig when a render
starts, so later setter calls only affect later renders.
"""

import asyncio
import inspect
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Any, AsyncIterator, Callable, Iterable, Literal, Mapping, Optional, Union

from cutline.config import Settings, get_settings
from cutline.exceptions import (
    CutlineError,
    RenderInProgressError,
    WorkdirBusyError,
)
from cutline.render.concat import Concatenator
from cutline.render.executor import RenderCallbacks, TranscodeExecutor
from cutline.render.preview import PreviewOptions, PreviewStreamer
from cutline.render.scheme import Scheme
from cutline.render.sequencer import RenderProgress, RenderSequencer, master_dir
from cutline.render.work_items import (
    FilterOptions,
    WorkItem,
    WorkItemProperties,
    WorkItemRegistry,
)
from cutline.utils.binaries import resolve_binaries
from cutline.utils.media_info import probe

logger = logging.getLogger(__name__)

# Working directories owned by an in-flight render (process wide)
_active_workdirs: set[str] = set()


class RenderState(str, Enum):
    """Render session state."""

    IDLE = "idle"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RenderSessionConfig:
    """Everything a render needs, captured atomically at session start."""

    scheme: Scheme
    work_items: tuple[WorkItem, ...]
    output: str


@dataclass
class RenderSession:
    """One render invocation."""

    config: RenderSessionConfig
    fragments: list[str] = field(default_factory=list)
    state: RenderState = RenderState.RENDERING
    output_path: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "state": self.state.value,
            "fragments": list(self.fragments),
            "output_path": self.output_path,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class RenderUpdate:
    """One item of a render's update stream."""

    kind: Literal["progress", "complete", "error"]
    progress: Optional[RenderProgress] = None
    output_path: Optional[str] = None
    message: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.kind != "progress"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "kind": self.kind,
            "progress": self.progress.to_dict() if self.progress else None,
            "output_path": self.output_path,
            "message": self.message,
        }


async def _notify(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class RenderSessionController:
    """Owns the fragment list and in-flight flag; drives sequencer → concat."""

    def __init__(
        self,
        workdir: str,
        executor: Optional[TranscodeExecutor] = None,
        ffprobe_path: str = "ffprobe",
        preview: Optional[PreviewStreamer] = None,
        scheme: Optional[Scheme] = None,
        master_output: Optional[str] = None,
    ):
        self.workdir = workdir
        self.executor = executor or TranscodeExecutor()
        self.ffprobe_path = ffprobe_path
        self.sequencer = RenderSequencer(self.executor)
        self.concatenator = Concatenator(self.executor)
        self.preview = preview or PreviewStreamer(self.executor.ffmpeg_path)

        self._scheme = scheme or Scheme.default()
        self._registry = WorkItemRegistry()
        self._output = master_output or os.path.join(workdir, get_settings().master_output_name)
        self._state = RenderState.IDLE
        self._session: Optional[RenderSession] = None
        self._task: Optional[asyncio.Task] = None
        self._claim: Optional[tuple[WorkItemRegistry, str]] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RenderSessionController":
        """Build a controller with verified binaries and the configured defaults.

        Raises:
            UnsupportedPlatformError: No bundled binaries for this platform
            BinaryNotFoundError: ffmpeg or ffprobe missing
        """
        settings = settings or get_settings()
        binaries = resolve_binaries(settings)
        os.makedirs(master_dir(settings.workdir), exist_ok=True)
        preview = PreviewStreamer(
            binaries.ffmpeg,
            duration_s=settings.preview_duration_s,
            size=settings.preview_size,
            codec=settings.preview_codec,
            chunk_size=settings.preview_chunk_size,
        )
        return cls(
            settings.workdir,
            executor=TranscodeExecutor(binaries.ffmpeg),
            ffprobe_path=binaries.ffprobe,
            preview=preview,
            master_output=os.path.join(settings.workdir, settings.master_output_name),
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> RenderState:
        return self._state

    @property
    def session(self) -> Optional[RenderSession]:
        return self._session

    @property
    def fragments(self) -> list[str]:
        return list(self._session.fragments) if self._session else []

    @property
    def scheme(self) -> Scheme:
        return self._scheme

    @property
    def work_items(self) -> tuple[WorkItem, ...]:
        return self._registry.snapshot()

    @property
    def output(self) -> str:
        return self._output

    # ------------------------------------------------------------------
    # Configuration (effective on the next render)
    # ------------------------------------------------------------------

    def set_scheme(self, scheme: Union[Scheme, Mapping[str, Any]]) -> None:
        self._scheme = scheme if isinstance(scheme, Scheme) else Scheme.from_dict(dict(scheme))

    def set_work_items(self, items: Iterable[Union[WorkItem, Mapping[str, Any]]]) -> None:
        # A fresh registry; the one an in-flight render froze stays untouched
        registry = WorkItemRegistry(
            [item if isinstance(item, WorkItem) else WorkItem.from_dict(item) for item in items]
        )
        if self._state is RenderState.RENDERING:
            registry.freeze()
        self._registry = registry

    def set_output(self, output: str) -> None:
        self._output = output

    def add_work_item(self, file: str, properties: Optional[WorkItemProperties] = None) -> WorkItem:
        """Append to the live registry; rejected while a render is in flight."""
        return self._registry.add(file, properties)

    def add_work_item_filter(self, index: int, filter: str, options: FilterOptions = None) -> WorkItem:
        """Append a filter to one item; rejected while a render is in flight."""
        return self._registry.add_filter(index, filter, options)

    def snapshot_config(self) -> RenderSessionConfig:
        return RenderSessionConfig(
            scheme=self._scheme,
            work_items=self._registry.snapshot(),
            output=self._output,
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    async def render(
        self,
        config: Optional[RenderSessionConfig] = None,
        on_progress: Optional[Callable[[RenderProgress], Any]] = None,
        on_complete: Optional[Callable[[str], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
        callbacks: Optional[RenderCallbacks] = None,
    ) -> str:
        """Run a full render: every work item in order, then concatenation.

        Args:
            config: Explicit session config; defaults to the staged setters
            on_progress: Receives RenderProgress as the encoder reports it
            on_complete: Receives the output path on success
            on_error: Receives the error message on failure
            callbacks: Raw per-job encoder observers

        Returns:
            Path of the concatenated output

        Raises:
            RenderInProgressError: If this controller is already rendering
            WorkdirBusyError: If another render owns the working directory
            EmptyInputError: If there are no work items
            TranscodeError / ConcatError: On the first failing step
        """
        session = self._begin(config)
        return await self._run(session, on_progress, on_complete, on_error, callbacks)

    def _begin(self, config: Optional[RenderSessionConfig]) -> RenderSession:
        """Claim the workdir, freeze the registry and enter RENDERING."""
        if self._state is RenderState.RENDERING:
            raise RenderInProgressError()

        workdir_key = os.path.realpath(self.workdir)
        if workdir_key in _active_workdirs:
            raise WorkdirBusyError(self.workdir)

        config = config or self.snapshot_config()
        session = RenderSession(config=config)

        _active_workdirs.add(workdir_key)
        self._registry.freeze()
        self._claim = (self._registry, workdir_key)
        self._session = session
        self._state = RenderState.RENDERING
        logger.info(
            f"[RENDER] Session started: {len(config.work_items)} work items, "
            f"scheme={config.scheme.size}@{config.scheme.fps}{config.scheme.format}"
        )
        return session

    def _release(self) -> None:
        if self._claim is None:
            return
        registry, workdir_key = self._claim
        self._claim = None
        registry.thaw()
        # set_work_items during the render froze its replacement too
        self._registry.thaw()
        _active_workdirs.discard(workdir_key)

    async def _run(
        self,
        session: RenderSession,
        on_progress: Optional[Callable[[RenderProgress], Any]] = None,
        on_complete: Optional[Callable[[str], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
        callbacks: Optional[RenderCallbacks] = None,
    ) -> str:
        config = session.config
        try:
            await self.sequencer.render_all(
                config.work_items,
                config.scheme,
                self.workdir,
                session.fragments,
                start_index=0,
                callbacks=callbacks,
                on_progress=on_progress,
            )
            output_path = await self.concatenator.stitch(
                session.fragments, self.workdir, config.output, config.scheme
            )
        except asyncio.CancelledError:
            self._finish(session, RenderState.FAILED, error="Render cancelled")
            await _notify(on_error, session.error)
            raise
        except Exception as e:
            message = e.message if isinstance(e, CutlineError) else str(e)
            self._finish(session, RenderState.FAILED, error=message)
            await _notify(on_error, session.error)
            raise
        finally:
            self._release()

        self._finish(session, RenderState.COMPLETED, output_path=output_path)
        await _notify(on_complete, output_path)
        return output_path

    def _finish(
        self,
        session: RenderSession,
        state: RenderState,
        output_path: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        session.state = state
        session.output_path = output_path
        session.error = error
        session.completed_at = datetime.now(timezone.utc)
        self._state = state
        if error:
            logger.error(f"[RENDER] Session failed: {error}")
        else:
            logger.info(f"[RENDER] Session completed: {output_path}")

    def _spawn(
        self,
        session: RenderSession,
        on_progress: Optional[Callable[[RenderProgress], Any]] = None,
        on_complete: Optional[Callable[[str], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
    ) -> asyncio.Task:
        task = asyncio.create_task(self._run(session, on_progress, on_complete, on_error))
        task.add_done_callback(partial(self._settle, session, on_error))
        return task

    def _settle(
        self, session: RenderSession, on_error: Optional[Callable[[str], Any]], task: asyncio.Task
    ) -> None:
        # A task cancelled before its first step never entered _run
        if session.state is RenderState.RENDERING:
            self._finish(session, RenderState.FAILED, error="Render cancelled")
            self._release()
            if on_error is not None:
                result = on_error(session.error)
                if inspect.isawaitable(result):
                    asyncio.ensure_future(result)
        # Failures are reported through on_error; mark the exception retrieved
        if not task.cancelled():
            task.exception()

    def start(
        self,
        config: Optional[RenderSessionConfig] = None,
        on_progress: Optional[Callable[[RenderProgress], Any]] = None,
        on_complete: Optional[Callable[[str], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
    ) -> asyncio.Task:
        """Start a render as a background task.

        The session is RENDERING by the time this returns.

        Raises:
            RenderInProgressError: If a render is already running
            WorkdirBusyError: If another render owns the working directory
        """
        if self._task and not self._task.done():
            raise RenderInProgressError()
        session = self._begin(config)
        self._task = self._spawn(session, on_progress, on_complete, on_error)
        return self._task

    def cancel(self) -> bool:
        """Cancel a render started with start(); kills the running encoder."""
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        return True

    async def render_updates(
        self, config: Optional[RenderSessionConfig] = None
    ) -> AsyncIterator[RenderUpdate]:
        """Render and yield progress updates, ending with one terminal update.

        Leaving the iteration early cancels the render.

        Raises:
            PreconditionViolationError: If the render could not start
        """
        queue: asyncio.Queue[Optional[RenderUpdate]] = asyncio.Queue()

        session = self._begin(config)
        task = self._spawn(
            session,
            on_progress=lambda p: queue.put_nowait(RenderUpdate(kind="progress", progress=p)),
            on_complete=lambda path: queue.put_nowait(RenderUpdate(kind="complete", output_path=path)),
            on_error=lambda message: queue.put_nowait(RenderUpdate(kind="error", message=message)),
        )
        task.add_done_callback(lambda _: queue.put_nowait(None))

        try:
            while True:
                update = await queue.get()
                if update is None:
                    break
                yield update
        finally:
            if not task.done():
                task.cancel()
                try:
                    await task
                except (asyncio.CancelledError, CutlineError):
                    pass

    # ------------------------------------------------------------------
    # Metadata & preview (independent of session state)
    # ------------------------------------------------------------------

    async def get_meta(self, path: str) -> dict[str, Any]:
        """Probe a media file's container/stream metadata."""
        return await probe(path, self.ffprobe_path)

    async def render_preview(self, options: PreviewOptions, sink: Any) -> int:
        """Stream a preview clip into sink; see PreviewStreamer.render_preview."""
        return await self.preview.render_preview(options, sink)
