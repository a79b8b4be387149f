from fastapi import APIRouter

from dependencies.errors import http_error_for
from models.api_models import ProbeRequest, ProbeResponse
from utils.errors import EditorError
from utils.media_probe import probe_media

router = APIRouter(prefix="/media", tags=["media"])


@router.post("/probe", response_model=ProbeResponse)
def probe_source(request: ProbeRequest):
    try:
        metadata = probe_media(request.path)
    except EditorError as e:
        raise http_error_for(e)
    return ProbeResponse(ok=True, metadata=metadata)
