import logging

from fastapi import HTTPException

from utils.errors import (
    ArtifactError,
    EditorError,
    EngineError,
    PlanError,
    SourceError,
)

logger = logging.getLogger(__name__)


def http_error_for(exc: EditorError) -> HTTPException:
    """Map an editor error family onto an HTTP status with a single detail string."""
    if isinstance(exc, (SourceError, PlanError)):
        status_code = 422
    elif isinstance(exc, EngineError):
        status_code = 502
    elif isinstance(exc, ArtifactError):
        status_code = 500
    else:
        status_code = 500

    if status_code >= 500:
        logger.error("Request failed: %s", exc)
    return HTTPException(status_code=status_code, detail=str(exc))
