from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Callable

from models.timeline_models import ExportFormat, ExportRequest, SourceMetadata
from utils.errors import EngineError, OutputDirectoryError
from utils.ffmpeg_builder import RenderPlan, build_render_plan
from utils.ffmpeg_renderer import (
    FFmpegRenderer,
    ProgressEvent,
    RenderFailed,
    RenderJob,
    RenderSucceeded,
)

logger = logging.getLogger(__name__)


EXPORT_OUTPUT_DIR = Path(os.getenv("EXPORT_OUTPUT_DIR", str(Path.home() / "Videos")))


class ExportIncompleteError(EngineError):
    def __init__(self, output_path: str):
        self.output_path = output_path
        super().__init__(f"Render ended without a terminal event: {output_path}")


def default_output_path(
    output_dir: str | Path | None = None,
    export_format: ExportFormat = ExportFormat.MP4,
    now: datetime | None = None,
) -> Path:
    directory = Path(output_dir) if output_dir is not None else EXPORT_OUTPUT_DIR
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return directory / f"export_{timestamp}.{ExportFormat.parse(export_format).value}"


def prepare_export(request: ExportRequest, sources: list[SourceMetadata]) -> RenderPlan:
    """Build the render plan and make sure its destination directory exists."""
    plan = build_render_plan(request, sources)
    for warning in plan.warnings:
        logger.warning("Export %s: %s", plan.output_path, warning)

    output_dir = Path(plan.output_path).parent
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputDirectoryError(str(output_dir), str(exc)) from exc
    return plan


def start_export(
    request: ExportRequest,
    sources: list[SourceMetadata],
    renderer: FFmpegRenderer | None = None,
) -> RenderJob:
    plan = prepare_export(request, sources)
    logger.info(
        "Starting export: %d clips, %s %s, %dx%d -> %s",
        len(request.clips),
        request.resolution.value,
        request.format.value,
        plan.width,
        plan.height,
        plan.output_path,
    )
    return (renderer or FFmpegRenderer()).execute(plan)


def export_timeline(
    request: ExportRequest,
    sources: list[SourceMetadata],
    on_progress: Callable[[int], None] | None = None,
    renderer: FFmpegRenderer | None = None,
) -> Path:
    """
    Render a timeline to its output file, blocking until ffmpeg exits.

    Args:
        request: Clips, destination, resolution tier and format family
        sources: Probed metadata for every source the clips reference
        on_progress: Called with each emitted percentage (0..100)
        renderer: Renderer to run the plan with

    Returns:
        Path of the finished file

    Raises:
        PlanError: The timeline cannot be turned into a render plan
        OutputDirectoryError: The destination directory cannot be created
        EngineError: ffmpeg is missing, cannot start, or exits non-zero
    """
    job = start_export(request, sources, renderer=renderer)

    for event in job:
        if isinstance(event, ProgressEvent):
            if on_progress is not None:
                on_progress(event.percent)
        elif isinstance(event, RenderSucceeded):
            return Path(event.output_path)
        elif isinstance(event, RenderFailed):
            raise event.error

    raise ExportIncompleteError(job.output_path)
