"""
Pydantic models for the editor timeline and export requests.

This module implements the data handed over by the editor UI on every export:
- Source metadata snapshots produced by the media probe
- Timeline clips placed on the main track (0) or the overlay track (1)
- Export requests with a closed set of resolution tiers and format families

The timeline is not persisted; a fresh ExportRequest arrives with each export.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================


class ResolutionTier(str, Enum):
    """Export resolution tier."""

    SOURCE = "Source"  # Keep the resolution of the first main-track source
    HD_720 = "720p"
    FULL_HD_1080 = "1080p"
    QHD_1440 = "1440p"
    UHD_4K = "4K"

    @classmethod
    def parse(cls, value: Any) -> ResolutionTier:
        """Resolve a tier from its label, falling back to SOURCE."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for tier in cls:
            if tier.value.lower() == text:
                return tier
        logger.warning("Unknown resolution tier %r, using %s", value, cls.SOURCE.value)
        return cls.SOURCE


class ExportFormat(str, Enum):
    """Export container/codec family."""

    MP4 = "mp4"  # H.264/AAC - best compatibility
    WEBM = "webm"  # VP9/Opus - modern web format
    MOV = "mov"  # QuickTime

    @classmethod
    def parse(cls, value: Any) -> ExportFormat:
        """Resolve a format from its label, falling back to MP4."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().lstrip(".")
        for export_format in cls:
            if export_format.value == text:
                return export_format
        logger.warning("Unknown export format %r, using %s", value, cls.MP4.value)
        return cls.MP4


class TrackIndex(int, Enum):
    PRIMARY = 0
    OVERLAY = 1


# =============================================================================
# SOURCE METADATA
# =============================================================================


class SourceMetadata(BaseModel):
    """
    Facts about one source file, keyed by its absolute path.

    Produced by the media probe; cheap to recompute and never persisted.
    """

    model_config = {"frozen": True}

    filename: str = Field(description="Display name")
    path: str = Field(description="Absolute path (source identity)")
    duration: float = Field(ge=0, description="Duration in seconds")
    resolution: str = Field(description="Resolution as 'WxH'")
    codec: str = Field(description="Video codec name")
    has_audio: bool = Field(default=False, description="Container has an audio stream")

    def dimensions(self) -> tuple[int, int] | None:
        """Parse the 'WxH' resolution string."""
        parts = self.resolution.lower().split("x")
        if len(parts) != 2:
            return None
        try:
            width, height = int(parts[0]), int(parts[1])
        except ValueError:
            return None
        if width <= 0 or height <= 0:
            return None
        return width, height


# =============================================================================
# TIMELINE
# =============================================================================


class TimelineClip(BaseModel):
    """
    Placement of a trimmed source on the timeline.

    The trim window is [trim_start, trim_end) in source time; start_time is
    the position on the timeline.
    """

    id: str = Field(description="Timeline clip instance ID")
    source_path: str = Field(description="Path of the referenced source")
    track: TrackIndex = Field(default=TrackIndex.PRIMARY, description="0 = main, 1 = overlay")
    start_time: float = Field(default=0.0, ge=0, description="Position on the timeline in seconds")
    trim_start: float = Field(ge=0, description="Trim in point in seconds")
    trim_end: float = Field(description="Trim out point in seconds")

    @model_validator(mode="after")
    def _check_trim_window(self) -> TimelineClip:
        if self.trim_end <= self.trim_start:
            raise ValueError(
                f"trim_end ({self.trim_end}) must be greater than trim_start ({self.trim_start})"
            )
        return self

    @property
    def duration(self) -> float:
        return self.trim_end - self.trim_start


class ExportRequest(BaseModel):
    """Everything needed to export one timeline."""

    clips: list[TimelineClip] = Field(default_factory=list)
    output_path: str = Field(description="Destination file path")
    resolution: ResolutionTier = Field(default=ResolutionTier.SOURCE)
    format: ExportFormat = Field(default=ExportFormat.MP4)

    @field_validator("resolution", mode="before")
    @classmethod
    def _parse_resolution(cls, value: Any) -> ResolutionTier:
        return ResolutionTier.parse(value)

    @field_validator("format", mode="before")
    @classmethod
    def _parse_format(cls, value: Any) -> ExportFormat:
        return ExportFormat.parse(value)

    def clips_on_track(self, track: TrackIndex) -> list[TimelineClip]:
        """Clips of one track ordered by timeline position (stable)."""
        return sorted(
            (clip for clip in self.clips if clip.track == track),
            key=lambda clip: clip.start_time,
        )

    @property
    def primary_clips(self) -> list[TimelineClip]:
        return self.clips_on_track(TrackIndex.PRIMARY)

    @property
    def overlay_clips(self) -> list[TimelineClip]:
        return self.clips_on_track(TrackIndex.OVERLAY)

    @property
    def duration(self) -> float:
        """Exported duration: the main track played back to back."""
        return sum(clip.duration for clip in self.primary_clips)
