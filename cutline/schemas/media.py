from pydantic import BaseModel, Field

from cutline.schemas.render import SchemeIn


class MediaImportRequest(BaseModel):
    path: str
    project_file: str  # the project's directory receives videos/


class MediaConvertRequest(BaseModel):
    path: str
    name: str = Field(..., min_length=1, pattern=r"^[^/\\]+$")  # output stem inside the workdir
    scheme: SchemeIn | None = None  # defaults to the session scheme


class MediaPathResponse(BaseModel):
    path: str
