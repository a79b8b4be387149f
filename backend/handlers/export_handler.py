import logging
from typing import Iterator

from fastapi import APIRouter
from starlette.responses import StreamingResponse

from dependencies.errors import http_error_for
from models.api_models import (
    EstimateRequest,
    EstimateResponse,
    ExportBody,
    ExportCompleteEvent,
    ExportFailedEvent,
    ExportOptionsResponse,
    ExportProgressEvent,
)
from models.render_models import FORMAT_OPTIONS, IMPORT_EXTENSIONS, RESOLUTION_OPTIONS
from models.timeline_models import ExportFormat, ExportRequest, ResolutionTier
from operators.render_operator import default_output_path, start_export
from utils.errors import EditorError, EngineExecutionError
from utils.ffmpeg_builder import estimate_file_size, estimate_file_size_bytes
from utils.ffmpeg_renderer import ProgressEvent, RenderFailed, RenderJob, RenderSucceeded

router = APIRouter(prefix="/exports", tags=["exports"])
logger = logging.getLogger(__name__)


@router.get("/options", response_model=ExportOptionsResponse)
def export_options():
    return ExportOptionsResponse(
        ok=True,
        resolutions=RESOLUTION_OPTIONS,
        formats=FORMAT_OPTIONS,
        import_extensions=IMPORT_EXTENSIONS,
    )


@router.post("/estimate", response_model=EstimateResponse)
def estimate_export(request: EstimateRequest):
    resolution = ResolutionTier.parse(request.resolution)
    export_format = ExportFormat.parse(request.format)
    return EstimateResponse(
        ok=True,
        estimated_size=estimate_file_size(resolution, request.duration, export_format),
        estimated_bytes=int(
            estimate_file_size_bytes(resolution, request.duration, export_format)
        ),
    )


def _stream_export_events(job: RenderJob) -> Iterator[str]:
    try:
        for event in job:
            if isinstance(event, ProgressEvent):
                payload = ExportProgressEvent(percent=event.percent)
            elif isinstance(event, RenderSucceeded):
                payload = ExportCompleteEvent(path=event.output_path)
            elif isinstance(event, RenderFailed):
                returncode = (
                    event.error.returncode
                    if isinstance(event.error, EngineExecutionError)
                    else None
                )
                logger.warning("Export to %s failed: %s", job.output_path, event.reason)
                payload = ExportFailedEvent(error=event.reason, returncode=returncode)
            else:
                continue
            yield f"{payload.model_dump_json()}\n"
    finally:
        # No-op after a full stream; otherwise the client went away early
        job.close()


@router.post("")
def export_timeline(body: ExportBody) -> StreamingResponse:
    export_format = ExportFormat.parse(body.format)
    output_path = body.output_path or str(default_output_path(export_format=export_format))

    request = ExportRequest(
        clips=body.clips,
        output_path=output_path,
        resolution=body.resolution,
        format=export_format,
    )

    logger.info(
        "export_request_received clips=%d resolution=%s format=%s output=%s",
        len(request.clips),
        request.resolution.value,
        request.format.value,
        request.output_path,
    )

    # Plan, source and spawn errors are rejected before the stream starts
    try:
        job = start_export(request, body.sources)
    except EditorError as e:
        raise http_error_for(e)

    return StreamingResponse(_stream_export_events(job), media_type="application/x-ndjson")
