"""Thumbnail and filmstrip generation for the editor UI."""
from __future__ import annotations

import base64
import logging
import math
import os
import subprocess
import tempfile
import uuid
from pathlib import Path

from utils.errors import (
    ArtifactReadError,
    CacheDirectoryError,
    EngineExecutionError,
    EngineInvocationError,
)
from utils.ffmpeg_binaries import ffmpeg_binary
from utils.media_probe import probe_media
from utils.preview_cache import PreviewCache

logger = logging.getLogger(__name__)

THUMBNAIL_TEMP_DIR = Path(
    os.getenv(
        "THUMBNAIL_TEMP_DIR",
        str(Path(tempfile.gettempdir()) / "video-editor" / "thumbnails"),
    )
)

THUMBNAIL_WIDTH = 320
FILMSTRIP_FRAME_WIDTH = 160
DEFAULT_FILMSTRIP_FRAMES = 20
# Sampling assumes a 30 fps source
FILMSTRIP_BASE_FPS = 30


def generate_thumbnail(
    source_path: str | Path,
    timestamp: float,
    temp_dir: Path | None = None,
) -> str:
    """
    Grab one frame of a source as a JPEG data URI.

    Args:
        source_path: Path to the source video
        timestamp: Seek position in seconds
        temp_dir: Directory for the intermediate JPEG (THUMBNAIL_TEMP_DIR by default)

    Returns:
        "data:image/jpeg;base64,..." string
    """
    directory = Path(temp_dir) if temp_dir is not None else THUMBNAIL_TEMP_DIR
    _ensure_directory(directory)

    output_path = directory / f"thumb_{uuid.uuid4().hex}.jpg"
    cmd = [
        ffmpeg_binary(),
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-ss",
        f"{max(0.0, timestamp):.3f}",
        "-i",
        str(source_path),
        "-frames:v",
        "1",
        "-vf",
        f"scale={THUMBNAIL_WIDTH}:-2",
        "-q:v",
        "2",
        str(output_path),
    ]

    try:
        _run_engine(cmd)
        try:
            data = output_path.read_bytes()
        except OSError as exc:
            raise ArtifactReadError(str(output_path), str(exc)) from exc
    finally:
        output_path.unlink(missing_ok=True)

    encoded = base64.b64encode(data).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def filmstrip_interval(duration: float, frame_count: int) -> int:
    """Number of source frames between two filmstrip samples."""
    return max(1, math.floor(duration * FILMSTRIP_BASE_FPS / frame_count))


def generate_filmstrip(
    source_path: str | Path,
    clip_id: str,
    frame_count: int = DEFAULT_FILMSTRIP_FRAMES,
    cache: PreviewCache | None = None,
) -> str:
    """
    Render a horizontal strip of evenly sampled frames for a clip.

    Cached by (clip_id, frame_count). A cache hit returns immediately
    without probing the source or starting ffmpeg.
    """
    if frame_count < 1:
        raise ValueError("frame_count must be at least 1")

    cache = cache or PreviewCache()
    entry = cache.key_for(clip_id, {"frame_count": frame_count})

    cached = cache.resolve(entry)
    if cached is not None:
        logger.debug("Filmstrip cache hit for clip %s: %s", clip_id, cached)
        return str(cached)

    metadata = probe_media(source_path)
    interval = filmstrip_interval(metadata.duration, frame_count)

    cache.ensure_dir()
    output_path = cache.path_for(entry)
    temp_path = output_path.with_name(f".{output_path.stem}.{uuid.uuid4().hex}.tmp.jpg")

    cmd = [
        ffmpeg_binary(),
        "-hide_banner",
        "-loglevel",
        "error",
        "-y",
        "-i",
        str(source_path),
        "-vf",
        f"select='not(mod(n,{interval}))',"
        f"scale={FILMSTRIP_FRAME_WIDTH}:-2,tile={frame_count}x1",
        "-frames:v",
        "1",
        "-q:v",
        "3",
        str(temp_path),
    ]

    try:
        _run_engine(cmd)
        if not temp_path.is_file():
            raise ArtifactReadError(str(temp_path), "ffmpeg produced no output")
        os.replace(temp_path, output_path)
    finally:
        temp_path.unlink(missing_ok=True)

    logger.info(
        "Generated filmstrip for clip %s (%d frames, every %d): %s",
        clip_id,
        frame_count,
        interval,
        output_path,
    )
    return str(output_path)


def _ensure_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CacheDirectoryError(str(directory), str(exc)) from exc


def _run_engine(cmd: list[str]) -> None:
    logger.debug("Command: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd, capture_output=True, text=True, encoding="utf-8", errors="replace"
        )
    except OSError as exc:
        raise EngineInvocationError(cmd[0], str(exc)) from exc

    if result.returncode != 0:
        logger.error("ffmpeg preview failed (code %s): %s", result.returncode, result.stderr)
        raise EngineExecutionError(result.returncode, result.stderr or "")
