"""Source metadata extraction with ffprobe."""
from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

from models.timeline_models import SourceMetadata
from utils.errors import (
    CodecResolutionError,
    EngineInvocationError,
    NoVideoStreamError,
    UnreadableSourceError,
)
from utils.ffmpeg_binaries import ffprobe_binary

logger = logging.getLogger(__name__)


def probe_media(path: str | Path) -> SourceMetadata:
    """
    Read duration, resolution and codec of a source file.

    Args:
        path: Path to the source video

    Returns:
        SourceMetadata for the best video stream of the file

    Raises:
        UnreadableSourceError: The container cannot be opened or parsed
        NoVideoStreamError: The container holds no video stream
        CodecResolutionError: The video stream has no usable codec or size
        EngineInvocationError: ffprobe could not be started
    """
    source_path = Path(path)
    if not source_path.is_file():
        raise UnreadableSourceError(str(path), "file does not exist")

    data = _run_ffprobe(source_path)

    streams = data.get("streams") or []
    stream = _select_video_stream(streams)
    if stream is None:
        raise NoVideoStreamError(str(source_path))

    codec_name = stream.get("codec_name")
    if not codec_name:
        raise CodecResolutionError(str(source_path), "stream has no codec")

    width = _as_int(stream.get("width"))
    height = _as_int(stream.get("height"))
    if not width or not height:
        raise CodecResolutionError(str(source_path), "stream has no frame size")

    has_audio = any(s.get("codec_type") == "audio" for s in streams)

    metadata = SourceMetadata(
        filename=source_path.name,
        path=str(source_path),
        duration=_resolve_duration(data.get("format") or {}, stream),
        resolution=f"{width}x{height}",
        codec=str(codec_name),
        has_audio=has_audio,
    )
    logger.debug(
        "Probed %s: %.3fs %s %s audio=%s",
        source_path.name,
        metadata.duration,
        metadata.resolution,
        metadata.codec,
        metadata.has_audio,
    )
    return metadata


def _run_ffprobe(source_path: Path) -> dict[str, Any]:
    binary = ffprobe_binary()
    cmd = [
        binary,
        "-v",
        "error",
        "-show_entries",
        "format=duration:stream=index,codec_type,codec_name,width,height,duration"
        ":stream_disposition=attached_pic",
        "-of",
        "json",
        str(source_path),
    ]
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, encoding="utf-8", errors="replace"
        )
    except OSError as exc:
        raise EngineInvocationError(binary, str(exc)) from exc

    if result.returncode != 0:
        reason = (result.stderr or "").strip() or f"ffprobe exited with code {result.returncode}"
        raise UnreadableSourceError(str(source_path), reason)

    try:
        data = json.loads(result.stdout or "{}")
    except json.JSONDecodeError as exc:
        raise UnreadableSourceError(str(source_path), "unparsable ffprobe output") from exc
    if not isinstance(data, dict):
        raise UnreadableSourceError(str(source_path), "unparsable ffprobe output")
    return data


def _select_video_stream(streams: list[dict[str, Any]]) -> dict[str, Any] | None:
    best: dict[str, Any] | None = None
    best_area = -1
    for stream in streams:
        if stream.get("codec_type") != "video":
            continue
        disposition = stream.get("disposition") or {}
        if disposition.get("attached_pic"):
            continue
        area = (_as_int(stream.get("width")) or 0) * (_as_int(stream.get("height")) or 0)
        if area > best_area:
            best = stream
            best_area = area
    return best


def _resolve_duration(format_info: dict[str, Any], stream: dict[str, Any]) -> float:
    for value in (format_info.get("duration"), stream.get("duration")):
        try:
            duration = float(value)
        except (TypeError, ValueError):
            continue
        if duration >= 0:
            return duration
    return 0.0


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
