from cutline.schemas.envelope import ErrorInfo, ErrorLocation, ErrorResponse
from cutline.schemas.media import MediaConvertRequest, MediaImportRequest, MediaPathResponse
from cutline.schemas.preview import PreviewSettings
from cutline.schemas.render import (
    FilterIn,
    OutputIn,
    RenderStatusResponse,
    SchemeIn,
    WorkItemIn,
    WorkItemPropertiesIn,
)

__all__ = [
    "ErrorInfo",
    "ErrorLocation",
    "ErrorResponse",
    "MediaImportRequest",
    "MediaConvertRequest",
    "MediaPathResponse",
    "PreviewSettings",
    "SchemeIn",
    "FilterIn",
    "WorkItemIn",
    "WorkItemPropertiesIn",
    "OutputIn",
    "RenderStatusResponse",
]
