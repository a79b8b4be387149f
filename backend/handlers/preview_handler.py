from fastapi import APIRouter

from dependencies.errors import http_error_for
from models.api_models import (
    FilmstripRequest,
    FilmstripResponse,
    ThumbnailRequest,
    ThumbnailResponse,
)
from operators.preview_operator import generate_filmstrip, generate_thumbnail
from utils.errors import EditorError

router = APIRouter(prefix="/previews", tags=["previews"])


@router.post("/thumbnail", response_model=ThumbnailResponse)
def thumbnail(request: ThumbnailRequest):
    try:
        data_uri = generate_thumbnail(request.path, request.timestamp)
    except EditorError as e:
        raise http_error_for(e)
    return ThumbnailResponse(ok=True, data_uri=data_uri)


@router.post("/filmstrip", response_model=FilmstripResponse)
def filmstrip(request: FilmstripRequest):
    try:
        path = generate_filmstrip(
            request.path,
            request.clip_id,
            frame_count=request.frame_count,
        )
    except EditorError as e:
        raise http_error_for(e)
    return FilmstripResponse(ok=True, path=path)
