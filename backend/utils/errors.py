from __future__ import annotations


class EditorError(Exception):
    pass


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(EditorError):
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class UnreadableSourceError(SourceError):
    def __init__(self, path: str, reason: str | None = None):
        message = f"Failed to open video file: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(path, message)


class NoVideoStreamError(SourceError):
    def __init__(self, path: str):
        super().__init__(path, f"No video stream found in file: {path}")


class CodecResolutionError(SourceError):
    def __init__(self, path: str, reason: str):
        super().__init__(path, f"Failed to resolve video decoder for {path}: {reason}")


# =============================================================================
# PLAN ERRORS
# =============================================================================


class PlanError(EditorError):
    pass


class EmptyPrimaryTrackError(PlanError):
    def __init__(self):
        super().__init__("Timeline has no clips on the main track to export")


class SourceNotFoundError(PlanError):
    def __init__(self, clip_id: str, source_path: str):
        self.clip_id = clip_id
        self.source_path = source_path
        super().__init__(
            f"Source for clip {clip_id} not found in metadata: {source_path}"
        )


class TrimOutOfRangeError(PlanError):
    def __init__(self, clip_id: str, trim_end: float, source_duration: float):
        self.clip_id = clip_id
        self.trim_end = trim_end
        self.source_duration = source_duration
        super().__init__(
            f"Trim window of clip {clip_id} ends at {trim_end:.3f}s, "
            f"past the source duration of {source_duration:.3f}s"
        )


# =============================================================================
# ENGINE ERRORS
# =============================================================================


class EngineError(EditorError):
    pass


class EngineInvocationError(EngineError):
    def __init__(self, binary: str, reason: str):
        self.binary = binary
        super().__init__(f"Failed to start {binary}: {reason}")


class EngineNotFoundError(EngineInvocationError):
    def __init__(self, binary: str):
        super().__init__(binary, "binary not found")


class EngineExecutionError(EngineError):
    def __init__(self, returncode: int, stderr: str):
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no diagnostic output"
        super().__init__(f"FFmpeg failed (code {returncode}):\n{detail}")


# =============================================================================
# ARTIFACT ERRORS
# =============================================================================


class ArtifactError(EditorError):
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class CacheDirectoryError(ArtifactError):
    def __init__(self, path: str, reason: str):
        super().__init__(path, f"Failed to create cache directory {path}: {reason}")


class OutputDirectoryError(ArtifactError):
    def __init__(self, path: str, reason: str):
        super().__init__(path, f"Failed to create output directory {path}: {reason}")


class ArtifactReadError(ArtifactError):
    def __init__(self, path: str, reason: str):
        super().__init__(path, f"Failed to read generated file {path}: {reason}")
