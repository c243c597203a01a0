"""Media import endpoints: copy a source into a project, convert it to the scheme."""

import logging
import os

from fastapi import APIRouter, HTTPException, status

from cutline.api.deps import Controller
from cutline.render.scheme import Scheme
from cutline.schemas.media import MediaConvertRequest, MediaImportRequest, MediaPathResponse
from cutline.services.media_import import convert_to_compliant, copy_video_to_project

router = APIRouter()
logger = logging.getLogger(__name__)


def _require_file(path: str) -> None:
    if not os.path.isfile(path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File not found: {path}",
        )


@router.post("/media/import", response_model=MediaPathResponse, status_code=status.HTTP_201_CREATED)
async def import_media(request: MediaImportRequest) -> MediaPathResponse:
    """Copy a video into <project dir>/videos/."""
    _require_file(request.path)
    return MediaPathResponse(path=copy_video_to_project(request.path, request.project_file))


@router.post("/media/convert", response_model=MediaPathResponse, status_code=status.HTTP_201_CREATED)
async def convert_media(request: MediaConvertRequest, controller: Controller) -> MediaPathResponse:
    """Transcode a file under the scheme into the working directory.

    Without an explicit scheme the session's staged scheme is used.
    """
    _require_file(request.path)
    if request.scheme is not None:
        scheme = Scheme.from_dict(request.scheme.model_dump(exclude_none=True))
    else:
        scheme = controller.scheme

    output_path = await convert_to_compliant(
        controller.executor,
        request.path,
        request.name,
        scheme,
        controller.workdir,
    )
    return MediaPathResponse(path=output_path)
