"""Schemas for preview server endpoints."""

from pydantic import BaseModel, Field

from cutline.schemas.render import FilterIn


class PreviewSettings(BaseModel):
    """Stored settings used by GET /filtered."""

    path: str = Field(..., description="Media file to preview")
    seek: float = Field(0.0, ge=0, description="Start offset in seconds")
    filters: list[str | FilterIn] = Field(default_factory=list, description="Video filters")

    def filter_values(self) -> list[str | dict]:
        return [f if isinstance(f, str) else f.model_dump() for f in self.filters]
