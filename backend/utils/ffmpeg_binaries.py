from __future__ import annotations

import os
import shutil
from pathlib import Path

from utils.errors import EngineNotFoundError

FFMPEG_BIN = os.getenv("FFMPEG_BIN", "ffmpeg")
FFPROBE_BIN = os.getenv("FFPROBE_BIN", "ffprobe")


def resolve_binary(name: str) -> str:
    """Resolve an executable name or path, raising EngineNotFoundError if absent."""
    candidate = Path(name)
    if candidate.is_absolute() or candidate.parent != Path("."):
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return str(candidate)
        raise EngineNotFoundError(name)

    found = shutil.which(name)
    if not found:
        raise EngineNotFoundError(name)
    return found


def ffmpeg_binary() -> str:
    return resolve_binary(FFMPEG_BIN)


def ffprobe_binary() -> str:
    return resolve_binary(FFPROBE_BIN)
