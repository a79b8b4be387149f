from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from models.render_models import (
    ESTIMATED_BITRATES_MBPS,
    FORMAT_SIZE_MULTIPLIERS,
    RESOLUTION_DIMENSIONS,
    SOURCE_FALLBACK_DIMENSIONS,
    ExportPreset,
)
from models.timeline_models import (
    ExportFormat,
    ExportRequest,
    ResolutionTier,
    SourceMetadata,
    TimelineClip,
)
from utils.errors import (
    EmptyPrimaryTrackError,
    SourceNotFoundError,
    TrimOutOfRangeError,
)

logger = logging.getLogger(__name__)

OUTPUT_FRAMERATE = 30
OVERLAY_WIDTH = 320
OVERLAY_HEIGHT = 180
OVERLAY_MARGIN = 20
TRIM_TOLERANCE_SECONDS = 0.001


@dataclass
class InputSpec:
    index: int
    clip_id: str
    path: str
    trim_start: float
    duration: float

    def to_args(self) -> list[str]:
        return [
            "-ss",
            format_seconds(self.trim_start),
            "-t",
            format_seconds(self.duration),
            "-i",
            self.path,
        ]


@dataclass
class RenderPlan:
    inputs: list[InputSpec]
    filter_complex: str
    output_maps: list[str]
    output_options: list[str]
    output_path: str
    width: int
    height: int
    expected_duration: float
    overlay_clip_id: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_args(self) -> list[str]:
        """Engine arguments, without the executable itself."""
        args = ["-y"]
        for input_spec in self.inputs:
            args.extend(input_spec.to_args())
        args.extend(["-filter_complex", self.filter_complex])
        for output_map in self.output_maps:
            args.extend(["-map", output_map])
        args.extend(self.output_options)
        args.append(self.output_path)
        return args

    def command_string(self, binary: str = "ffmpeg") -> str:
        return shlex.join([binary, *self.to_args()])


def format_seconds(value: float) -> str:
    return f"{value:.3f}"


class TimelineToFFmpeg:
    def __init__(self, request: ExportRequest, sources: list[SourceMetadata]):
        self.request = request
        self.source_map = {source.path: source for source in sources}
        self.preset = ExportPreset.for_format(request.format)

        self._inputs: list[InputSpec] = []
        self._video_filters: list[str] = []
        self._audio_filters: list[str] = []
        self._graph_filters: list[str] = []
        self._warnings: list[str] = []

    def build(self) -> RenderPlan:
        self._inputs = []
        self._video_filters = []
        self._audio_filters = []
        self._graph_filters = []
        self._warnings = []

        primary = self.request.primary_clips
        overlays = self.request.overlay_clips

        if not primary:
            raise EmptyPrimaryTrackError()

        self._validate_sources(self.request.clips)

        width, height = self._resolve_dimensions(primary[0])
        include_audio = any(self._source_for(clip).has_audio for clip in primary)

        video_labels: list[str] = []
        audio_labels: list[str] = []
        for clip in primary:
            input_spec = self._add_input(clip)
            video_labels.append(self._process_primary_video(input_spec, width, height))
            if include_audio:
                audio_labels.append(self._process_primary_audio(input_spec, clip))

        video_out, audio_out = self._concat_segments(video_labels, audio_labels)

        overlay_clip_id = None
        if overlays:
            if len(overlays) > 1:
                ignored = ", ".join(clip.id for clip in overlays[1:])
                message = f"Only the first overlay clip is exported; ignoring {ignored}"
                logger.warning(message)
                self._warnings.append(message)
            overlay = overlays[0]
            overlay_clip_id = overlay.id
            video_out = self._overlay_clip(video_out, overlay)

        output_maps = [f"[{video_out}]"]
        if audio_out:
            output_maps.append(f"[{audio_out}]")

        return RenderPlan(
            inputs=list(self._inputs),
            filter_complex=self._combine_filters(),
            output_maps=output_maps,
            output_options=self.preset.to_args(include_audio=audio_out is not None),
            output_path=self._resolve_output_path(),
            width=width,
            height=height,
            expected_duration=sum(clip.duration for clip in primary),
            overlay_clip_id=overlay_clip_id,
            warnings=list(self._warnings),
        )

    def _validate_sources(self, clips: list[TimelineClip]) -> None:
        for clip in clips:
            source = self.source_map.get(clip.source_path)
            if source is None:
                raise SourceNotFoundError(clip.id, clip.source_path)
            if source.duration > 0 and clip.trim_end > source.duration + TRIM_TOLERANCE_SECONDS:
                raise TrimOutOfRangeError(clip.id, clip.trim_end, source.duration)

    def _source_for(self, clip: TimelineClip) -> SourceMetadata:
        return self.source_map[clip.source_path]

    def _resolve_dimensions(self, first_clip: TimelineClip) -> tuple[int, int]:
        return resolve_dimensions(self.request.resolution, self._source_for(first_clip))

    def _add_input(self, clip: TimelineClip) -> InputSpec:
        input_spec = InputSpec(
            index=len(self._inputs),
            clip_id=clip.id,
            path=self._source_for(clip).path,
            trim_start=clip.trim_start,
            duration=clip.duration,
        )
        self._inputs.append(input_spec)
        return input_spec

    def _process_primary_video(self, input_spec: InputSpec, width: int, height: int) -> str:
        label = f"v{input_spec.index}"
        filters = [
            f"scale={width}:{height}:force_original_aspect_ratio=decrease",
            f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color=black",
            "setsar=1",
            f"fps={OUTPUT_FRAMERATE}",
            "format=yuv420p",
            "setpts=PTS-STARTPTS",
        ]
        self._video_filters.append(f"[{input_spec.index}:v]{','.join(filters)}[{label}]")
        return label

    def _process_primary_audio(self, input_spec: InputSpec, clip: TimelineClip) -> str:
        label = f"a{input_spec.index}"
        audio = self.preset.audio
        duration = format_seconds(input_spec.duration)
        layout = "stereo" if audio.channels == 2 else "mono"

        if self._source_for(clip).has_audio:
            filters = [
                f"aresample={audio.sample_rate}",
                f"aformat=sample_fmts=fltp:channel_layouts={layout}",
                "apad",
                f"atrim=duration={duration}",
                "asetpts=PTS-STARTPTS",
            ]
            self._audio_filters.append(f"[{input_spec.index}:a]{','.join(filters)}[{label}]")
        else:
            self._audio_filters.append(
                f"anullsrc=r={audio.sample_rate}:cl={layout},"
                f"atrim=duration={duration},asetpts=PTS-STARTPTS[{label}]"
            )
        return label

    def _concat_segments(
        self, video_labels: list[str], audio_labels: list[str]
    ) -> tuple[str, str | None]:
        if audio_labels:
            inputs = "".join(f"[{v}][{a}]" for v, a in zip(video_labels, audio_labels))
            self._graph_filters.append(
                f"{inputs}concat=n={len(video_labels)}:v=1:a=1[vcat][acat]"
            )
            return "vcat", "acat"

        inputs = "".join(f"[{v}]" for v in video_labels)
        self._graph_filters.append(f"{inputs}concat=n={len(video_labels)}:v=1:a=0[vcat]")
        return "vcat", None

    def _overlay_clip(self, base_label: str, clip: TimelineClip) -> str:
        input_spec = self._add_input(clip)
        start = format_seconds(clip.start_time)
        self._graph_filters.append(
            f"[{input_spec.index}:v]"
            f"scale={OVERLAY_WIDTH}:{OVERLAY_HEIGHT}:force_original_aspect_ratio=decrease,"
            f"setsar=1,fps={OUTPUT_FRAMERATE},setpts=PTS-STARTPTS+{start}/TB[pip]"
        )
        self._graph_filters.append(
            f"[{base_label}][pip]overlay=x={OVERLAY_MARGIN}:"
            f"y=main_h-overlay_h-{OVERLAY_MARGIN}:eof_action=pass[vout]"
        )
        return "vout"

    def _combine_filters(self) -> str:
        return ";".join(self._video_filters + self._audio_filters + self._graph_filters)

    def _resolve_output_path(self) -> str:
        ext = f".{self.preset.container}"
        output_path = Path(self.request.output_path)
        if output_path.suffix.lower() != ext:
            output_path = output_path.with_suffix(ext)
        return str(output_path)


def resolve_dimensions(
    tier: ResolutionTier, first_source: SourceMetadata | None = None
) -> tuple[int, int]:
    dimensions = RESOLUTION_DIMENSIONS.get(tier)
    if dimensions is not None:
        return dimensions

    source_dimensions = first_source.dimensions() if first_source else None
    if source_dimensions is None:
        return SOURCE_FALLBACK_DIMENSIONS

    # yuv420p needs even sizes
    width, height = source_dimensions
    width, height = width - width % 2, height - height % 2
    if width <= 0 or height <= 0:
        return SOURCE_FALLBACK_DIMENSIONS
    return width, height


def build_render_plan(request: ExportRequest, sources: list[SourceMetadata]) -> RenderPlan:
    converter = TimelineToFFmpeg(request, sources)
    return converter.build()


def estimate_file_size_bytes(
    resolution: ResolutionTier, duration_seconds: float, export_format: ExportFormat
) -> float:
    bitrate = ESTIMATED_BITRATES_MBPS.get(resolution, 8)
    multiplier = FORMAT_SIZE_MULTIPLIERS.get(export_format, 1.0)
    size_mb = (bitrate * max(0.0, duration_seconds) * multiplier) / 8
    return size_mb * 1024 * 1024


def estimate_file_size(
    resolution: ResolutionTier, duration_seconds: float, export_format: ExportFormat
) -> str:
    size_mb = estimate_file_size_bytes(resolution, duration_seconds, export_format) / (1024 * 1024)

    if size_mb < 1:
        return f"{round(size_mb * 1024)} KB"
    if size_mb < 1000:
        return f"{round(size_mb)} MB"
    return f"{size_mb / 1024:.1f} GB"
