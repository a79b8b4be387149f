from typing import Literal

from pydantic import BaseModel, Field

from models.render_models import ExportEventType, FormatOption, ResolutionOption
from models.timeline_models import (
    ExportFormat,
    ResolutionTier,
    SourceMetadata,
    TimelineClip,
)


class HealthResponse(BaseModel):
    status: str = "ok"


class ProbeRequest(BaseModel):
    path: str


class ProbeResponse(BaseModel):
    ok: bool
    metadata: SourceMetadata


class ThumbnailRequest(BaseModel):
    path: str
    timestamp: float = Field(default=0.0, ge=0)


class ThumbnailResponse(BaseModel):
    ok: bool
    data_uri: str


class FilmstripRequest(BaseModel):
    path: str
    clip_id: str
    frame_count: int = Field(default=20, ge=1)


class FilmstripResponse(BaseModel):
    ok: bool
    path: str


class ExportOptionsResponse(BaseModel):
    ok: bool
    resolutions: list[ResolutionOption]
    formats: list[FormatOption]
    import_extensions: list[str]


class EstimateRequest(BaseModel):
    resolution: str = ResolutionTier.FULL_HD_1080.value
    format: str = ExportFormat.MP4.value
    duration: float = Field(ge=0)


class EstimateResponse(BaseModel):
    ok: bool
    estimated_size: str
    estimated_bytes: int


class ExportBody(BaseModel):
    clips: list[TimelineClip]
    sources: list[SourceMetadata]
    output_path: str | None = None
    # Parsed leniently: unknown tiers fall back to Source, unknown formats to mp4
    resolution: str = ResolutionTier.FULL_HD_1080.value
    format: str = ExportFormat.MP4.value


# =============================================================================
# NDJSON EXPORT EVENTS
# =============================================================================


class ExportProgressEvent(BaseModel):
    type: Literal[ExportEventType.PROGRESS] = ExportEventType.PROGRESS
    percent: int = Field(ge=0, le=100)


class ExportCompleteEvent(BaseModel):
    type: Literal[ExportEventType.COMPLETE] = ExportEventType.COMPLETE
    path: str


class ExportFailedEvent(BaseModel):
    type: Literal[ExportEventType.FAILED] = ExportEventType.FAILED
    error: str
    returncode: int | None = None
