from typing import Annotated, Optional

from fastapi import Depends, Request

from cutline.render.session import RenderSessionController
from cutline.schemas.preview import PreviewSettings


def get_controller(request: Request) -> RenderSessionController:
    """The process-wide render session controller, built at startup."""
    return request.app.state.controller


def get_preview_settings(request: Request) -> Optional[PreviewSettings]:
    return getattr(request.app.state, "preview_settings", None)


Controller = Annotated[RenderSessionController, Depends(get_controller)]
StoredPreviewSettings = Annotated[Optional[PreviewSettings], Depends(get_preview_settings)]
