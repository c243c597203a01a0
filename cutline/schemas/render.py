from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SchemeIn(BaseModel):
    size: str | None = None  # "WxH", either axis may be "?"
    format: str | None = None  # container extension, e.g. ".mp4"
    codec: str | None = None
    bitrate: str | int | None = None
    fps: float | None = Field(None, gt=0)
    pad: bool | None = None


class AdvancedIn(BaseModel):
    inputs: list[str] = Field(default_factory=list)
    complex: bool = False


class FilterIn(BaseModel):
    filter: str
    options: str | dict[str, Any] | None = None


class WorkItemPropertiesIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    duration: float | None = Field(None, gt=0)
    seek: float | None = Field(None, ge=0)
    filters: list[str | FilterIn] = Field(default_factory=list)
    advanced: AdvancedIn | None = None
    complex_filter: str | None = Field(None, alias="complexFilter")

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump(exclude_none=True)
        data["filters"] = [f if isinstance(f, str) else f.model_dump() for f in self.filters]
        return data


class WorkItemIn(BaseModel):
    file: str
    properties: WorkItemPropertiesIn = Field(default_factory=WorkItemPropertiesIn)

    def to_dict(self) -> dict[str, Any]:
        return {"file": self.file, "properties": self.properties.to_dict()}


class OutputIn(BaseModel):
    output: str  # path without extension; the scheme format is appended


class RenderStatusResponse(BaseModel):
    state: str
    fragments: list[str]
    output_path: str | None = None
    error: str | None = None
    scheme: dict[str, Any]
    work_item_count: int
