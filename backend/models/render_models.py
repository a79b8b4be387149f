"""
Pydantic models for export rendering.

This module defines the fixed configuration tables used by the graph builder:
- Resolution tier -> pixel size
- Format family -> container and codec settings
- Export option labels shown by the export dialog
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from models.timeline_models import ExportFormat, ResolutionTier


# =============================================================================
# ENUMS
# =============================================================================


class VideoCodec(str, Enum):
    """Supported video encoders."""

    H264 = "libx264"
    VP9 = "libvpx-vp9"


class AudioCodec(str, Enum):
    """Supported audio encoders."""

    AAC = "aac"
    OPUS = "libopus"


class ExportEventType(str, Enum):
    """Kinds of events streamed while an export runs."""

    PROGRESS = "export_progress"
    COMPLETE = "export_complete"
    FAILED = "export_failed"


# =============================================================================
# RESOLUTION TABLE
# =============================================================================


RESOLUTION_DIMENSIONS: dict[ResolutionTier, tuple[int, int] | None] = {
    ResolutionTier.SOURCE: None,  # resolved from the first main-track source
    ResolutionTier.HD_720: (1280, 720),
    ResolutionTier.FULL_HD_1080: (1920, 1080),
    ResolutionTier.QHD_1440: (2560, 1440),
    ResolutionTier.UHD_4K: (3840, 2160),
}

# Used when the SOURCE tier cannot read a usable size from the source metadata
SOURCE_FALLBACK_DIMENSIONS = (1920, 1080)

# Average H.264 bitrates in Mbps, used for size estimates only
ESTIMATED_BITRATES_MBPS: dict[ResolutionTier, float] = {
    ResolutionTier.SOURCE: 8,
    ResolutionTier.HD_720: 5,
    ResolutionTier.FULL_HD_1080: 8,
    ResolutionTier.QHD_1440: 16,
    ResolutionTier.UHD_4K: 45,
}

# Relative to MP4
FORMAT_SIZE_MULTIPLIERS: dict[ExportFormat, float] = {
    ExportFormat.MP4: 1.0,
    ExportFormat.WEBM: 0.8,
    ExportFormat.MOV: 1.2,
}


# =============================================================================
# EXPORT PRESETS
# =============================================================================


class VideoSettings(BaseModel):
    """Video encoding settings."""

    codec: VideoCodec = Field(default=VideoCodec.H264, description="Video encoder")
    crf: int = Field(
        default=23,
        ge=0,
        le=63,
        description="Constant Rate Factor (lower is better quality)",
    )
    preset: str | None = Field(
        default="medium",
        description="x264 speed preset (None for encoders without presets)",
    )
    bitrate: str | None = Field(
        default=None, description="Target bitrate e.g. '0' for constant quality VP9"
    )
    pixel_format: str = Field(default="yuv420p", description="Pixel format")
    extra_args: list[str] = Field(default_factory=list)


class AudioSettings(BaseModel):
    """Audio encoding settings."""

    codec: AudioCodec = Field(default=AudioCodec.AAC, description="Audio encoder")
    bitrate: str = Field(default="192k", description="Audio bitrate")
    sample_rate: int = Field(default=48000, description="Sample rate in Hz")
    channels: int = Field(default=2, description="Number of audio channels")


class ExportPreset(BaseModel):
    """Encoding parameters for one format family."""

    name: str = Field(description="Preset name")
    format: ExportFormat
    container: str = Field(description="File extension / muxer")
    video: VideoSettings = Field(default_factory=VideoSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)

    @classmethod
    def mp4_export(cls) -> ExportPreset:
        """H.264/AAC, best compatibility."""
        return cls(
            name="MP4",
            format=ExportFormat.MP4,
            container="mp4",
            video=VideoSettings(
                codec=VideoCodec.H264,
                crf=23,
                preset="medium",
                extra_args=["-movflags", "+faststart"],
            ),
            audio=AudioSettings(codec=AudioCodec.AAC, bitrate="192k"),
        )

    @classmethod
    def webm_export(cls) -> ExportPreset:
        """VP9/Opus in constant quality mode."""
        return cls(
            name="WebM",
            format=ExportFormat.WEBM,
            container="webm",
            video=VideoSettings(
                codec=VideoCodec.VP9,
                crf=31,
                preset=None,
                bitrate="0",
                extra_args=["-row-mt", "1"],
            ),
            audio=AudioSettings(codec=AudioCodec.OPUS, bitrate="128k"),
        )

    @classmethod
    def mov_export(cls) -> ExportPreset:
        """QuickTime container, higher quality H.264."""
        return cls(
            name="MOV",
            format=ExportFormat.MOV,
            container="mov",
            video=VideoSettings(
                codec=VideoCodec.H264,
                crf=18,
                preset="medium",
            ),
            audio=AudioSettings(codec=AudioCodec.AAC, bitrate="256k"),
        )

    @classmethod
    def for_format(cls, export_format: ExportFormat) -> ExportPreset:
        factory = _PRESET_FACTORIES.get(export_format, cls.mp4_export)
        return factory()

    def to_args(self, include_audio: bool = True) -> list[str]:
        """Encoder arguments in a fixed order."""
        args = ["-c:v", self.video.codec.value]
        if self.video.preset:
            args.extend(["-preset", self.video.preset])
        args.extend(["-crf", str(self.video.crf)])
        if self.video.bitrate is not None:
            args.extend(["-b:v", self.video.bitrate])
        args.extend(["-pix_fmt", self.video.pixel_format])
        args.extend(self.video.extra_args)

        if include_audio:
            args.extend(
                [
                    "-c:a",
                    self.audio.codec.value,
                    "-b:a",
                    self.audio.bitrate,
                    "-ar",
                    str(self.audio.sample_rate),
                    "-ac",
                    str(self.audio.channels),
                ]
            )
        else:
            args.append("-an")
        return args


_PRESET_FACTORIES = {
    ExportFormat.MP4: ExportPreset.mp4_export,
    ExportFormat.WEBM: ExportPreset.webm_export,
    ExportFormat.MOV: ExportPreset.mov_export,
}


# =============================================================================
# EXPORT OPTIONS
# =============================================================================


class ResolutionOption(BaseModel):
    value: ResolutionTier
    label: str
    description: str
    width: int | None = None
    height: int | None = None


class FormatOption(BaseModel):
    value: ExportFormat
    label: str
    description: str


RESOLUTION_OPTIONS: list[ResolutionOption] = [
    ResolutionOption(
        value=ResolutionTier.SOURCE,
        label="Source (Original)",
        description="Keep original resolution",
    ),
    ResolutionOption(
        value=ResolutionTier.HD_720,
        label="720p HD",
        description="1280 × 720",
        width=1280,
        height=720,
    ),
    ResolutionOption(
        value=ResolutionTier.FULL_HD_1080,
        label="1080p Full HD",
        description="1920 × 1080",
        width=1920,
        height=1080,
    ),
    ResolutionOption(
        value=ResolutionTier.QHD_1440,
        label="1440p 2K",
        description="2560 × 1440",
        width=2560,
        height=1440,
    ),
    ResolutionOption(
        value=ResolutionTier.UHD_4K,
        label="4K Ultra HD",
        description="3840 × 2160",
        width=3840,
        height=2160,
    ),
]

FORMAT_OPTIONS: list[FormatOption] = [
    FormatOption(
        value=ExportFormat.MP4,
        label="MP4",
        description="H.264/AAC - Best compatibility",
    ),
    FormatOption(
        value=ExportFormat.WEBM,
        label="WebM",
        description="VP9/Opus - Modern web format",
    ),
    FormatOption(
        value=ExportFormat.MOV,
        label="MOV",
        description="Apple QuickTime format",
    ),
]

# File types the import dialog accepts
IMPORT_EXTENSIONS = ["mp4", "mov", "webm", "mkv", "avi"]
