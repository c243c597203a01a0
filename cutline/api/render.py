"""Render session endpoints: configuration setters, render control, metadata."""

import logging
import os
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status

from cutline.api.deps import Controller
from cutline.api.websocket import progress_notifier
from cutline.exceptions import EmptyInputError
from cutline.render.session import RenderSessionController
from cutline.schemas.render import (
    FilterIn,
    OutputIn,
    RenderStatusResponse,
    SchemeIn,
    WorkItemIn,
)
from cutline.utils.media_info import summarize

router = APIRouter()
logger = logging.getLogger(__name__)


def _status(controller: RenderSessionController) -> RenderStatusResponse:
    session = controller.session
    return RenderStatusResponse(
        state=controller.state.value,
        fragments=controller.fragments,
        output_path=session.output_path if session else None,
        error=session.error if session else None,
        scheme=controller.scheme.to_dict(),
        work_item_count=len(controller.work_items),
    )


# =============================================================================
# Configuration (takes effect on the next render)
# =============================================================================


@router.post("/render/scheme", status_code=status.HTTP_204_NO_CONTENT)
async def set_scheme(request: SchemeIn, controller: Controller) -> None:
    controller.set_scheme(request.model_dump(exclude_none=True))
    logger.info(f"[RENDER] Scheme set: {controller.scheme}")


@router.post("/render/work-items", status_code=status.HTTP_204_NO_CONTENT)
async def set_work_items(request: list[WorkItemIn], controller: Controller) -> None:
    controller.set_work_items([item.to_dict() for item in request])
    logger.info(f"[RENDER] {len(request)} work items set")


@router.post("/render/work-items/{index}/filters", status_code=status.HTTP_204_NO_CONTENT)
async def add_work_item_filter(index: int, request: FilterIn, controller: Controller) -> None:
    if not 0 <= index < len(controller.work_items):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Work item {index} not found",
        )
    controller.add_work_item_filter(index, request.filter, request.options)


@router.post("/render/output", status_code=status.HTTP_204_NO_CONTENT)
async def set_output(request: OutputIn, controller: Controller) -> None:
    controller.set_output(request.output)


# =============================================================================
# Render control
# =============================================================================


@router.post("/render", response_model=RenderStatusResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_render(controller: Controller) -> RenderStatusResponse:
    """Start a render in the background; progress is pushed over /api/render/ws.

    Precondition failures (render in progress, workdir busy) surface as 409
    before anything is scheduled.
    """
    if not controller.work_items:
        raise EmptyInputError()

    controller.start(
        on_progress=progress_notifier.notify_progress,
        on_complete=progress_notifier.notify_complete,
        on_error=progress_notifier.notify_error,
    )
    return _status(controller)


@router.delete("/render", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_render(controller: Controller) -> None:
    if not controller.cancel():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No render in progress",
        )


@router.get("/render/status", response_model=RenderStatusResponse)
async def get_render_status(controller: Controller) -> RenderStatusResponse:
    return _status(controller)


@router.get("/meta")
async def get_meta(controller: Controller, path: str = Query(...)) -> dict[str, Any]:
    """ffprobe metadata for a media file, plus the editor-facing summary."""
    if not os.path.isfile(path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File not found: {path}",
        )
    metadata = await controller.get_meta(path)
    return {**metadata, "summary": summarize(metadata).to_dict()}
