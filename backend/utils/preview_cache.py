"""
Structural cache keys for generated preview artifacts.

Keys are derived from the clip identity and the generation parameters only.
They never look at file contents, so a changed source keeps its old entry:
entries are never invalidated or expired.
"""
from __future__ import annotations

import hashlib
import json
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from utils.errors import CacheDirectoryError

FILMSTRIP_CACHE_DIR = Path(
    os.getenv(
        "FILMSTRIP_CACHE_DIR",
        str(Path(tempfile.gettempdir()) / "video-editor" / "filmstrips"),
    )
)


@dataclass(frozen=True)
class CacheEntryId:
    name: str


def slugify(value: str) -> str:
    base = re.sub(r"\s+", "_", value.strip())
    base = re.sub(r"[^A-Za-z0-9._-]", "", base)
    return base[:64] or "clip"


class PreviewCache:
    def __init__(self, root: Path | None = None, prefix: str = "filmstrip", suffix: str = ".jpg"):
        self.root = Path(root) if root is not None else FILMSTRIP_CACHE_DIR
        self.prefix = prefix
        self.suffix = suffix

    def key_for(self, clip_id: str, params: dict[str, Any] | None = None) -> CacheEntryId:
        config_str = json.dumps(
            {"clip_id": clip_id, "params": params or {}},
            sort_keys=True,
            separators=(",", ":"),
        )
        digest = hashlib.sha256(config_str.encode("utf-8")).hexdigest()[:16]
        return CacheEntryId(name=f"{self.prefix}_{slugify(clip_id)}_{digest}{self.suffix}")

    def path_for(self, entry: CacheEntryId) -> Path:
        return self.root / entry.name

    def resolve(self, entry: CacheEntryId) -> Path | None:
        path = self.path_for(entry)
        return path if path.is_file() else None

    def ensure_dir(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheDirectoryError(str(self.root), str(exc)) from exc
        return self.root
