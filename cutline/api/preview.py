"""Preview server endpoints.

Streams short fragmented-MP4 previews that the editor's <video> element can
start playing before the encode finishes:

1. /preview/{file}/{seek}: a file from the preview directory
2. /filtered: the stored preview settings (path, seek, filters)
"""

import logging
import os
from contextlib import aclosing
from typing import AsyncIterator

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse, StreamingResponse

from cutline.api.deps import Controller, StoredPreviewSettings
from cutline.config import get_settings
from cutline.render.preview import PreviewOptions, PreviewStreamer, preview_options
from cutline.schemas.preview import PreviewSettings

router = APIRouter()
logger = logging.getLogger(__name__)

PREVIEW_MEDIA_TYPE = "video/mp4"


def preview_dir() -> str:
    settings = get_settings()
    return os.path.realpath(os.path.join(settings.workdir, settings.preview_subdir))


def resolve_preview_file(file: str) -> str:
    """Resolve a file name inside the preview directory.

    Raises:
        HTTPException: 404 if the name escapes the directory or does not exist
    """
    root = preview_dir()
    path = os.path.realpath(os.path.join(root, file))
    if os.path.commonpath([root, path]) != root or not os.path.isfile(path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Preview source not found: {file}",
        )
    return path


async def stream_preview(streamer: PreviewStreamer, options: PreviewOptions) -> StreamingResponse:
    """Start the encoder and wait for its first chunk before answering.

    An encoder that fails before producing output raises StreamError here,
    which becomes a 500 instead of an empty 200.
    """
    chunks = streamer.stream(options)
    try:
        first = await anext(chunks)
    except StopAsyncIteration:
        first = b""

    async def body() -> AsyncIterator[bytes]:
        async with aclosing(chunks):
            if first:
                yield first
            async for chunk in chunks:
                yield chunk

    return StreamingResponse(body(), media_type=PREVIEW_MEDIA_TYPE)


@router.get("/", response_class=PlainTextResponse)
async def banner() -> str:
    settings = get_settings()
    return f"{settings.app_name} preview server"


@router.get("/preview/{file}/{seek}")
async def preview_file(file: str, seek: float, controller: Controller) -> StreamingResponse:
    path = resolve_preview_file(file)
    logger.info(f"[PREVIEW] Request {file} @ {seek}s")
    return await stream_preview(controller.preview, preview_options(path, seek))


@router.get("/filtered")
async def preview_filtered(
    controller: Controller, preview_settings: StoredPreviewSettings
) -> StreamingResponse:
    if preview_settings is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No preview settings stored",
        )
    options = preview_options(
        preview_settings.path,
        preview_settings.seek,
        preview_settings.filter_values(),
    )
    return await stream_preview(controller.preview, options)


@router.put("/filtered/settings", response_model=PreviewSettings)
async def store_preview_settings(request: Request, body: PreviewSettings) -> PreviewSettings:
    request.app.state.preview_settings = body
    return body


@router.delete("/filtered/settings", status_code=status.HTTP_204_NO_CONTENT)
async def clear_preview_settings(request: Request) -> None:
    request.app.state.preview_settings = None
