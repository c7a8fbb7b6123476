"""Object Storage API - Signed uploads and streamed downloads"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from ..deps import get_storage_service
from ...services.object_storage_service import ObjectStorageService
from ...services.storage_providers import DEFAULT_CONTENT_TYPE
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

CACHE_CONTROL = "private, max-age=3600"


# =============================================================================
# Request/Response Models
# =============================================================================

class UploadUrlRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    content_type: str = Field(DEFAULT_CONTENT_TYPE, alias="contentType")


class UploadUrlResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    upload_url: str = Field(..., alias="uploadURL")


class LocalUploadResponse(BaseModel):
    path: str
    size: int


class NormalizeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    attachment_url: str = Field(..., alias="attachmentURL")


class NormalizeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    object_path: str = Field(..., alias="objectPath")


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/objects/upload", response_model=UploadUrlResponse, response_model_by_alias=True)
async def get_upload_url(
    request: Optional[UploadUrlRequest] = None,
    storage: ObjectStorageService = Depends(get_storage_service)
):
    """Signed URL the client PUTs a new attachment to"""
    content_type = request.content_type if request else DEFAULT_CONTENT_TYPE
    return UploadUrlResponse(upload_url=storage.get_object_entity_upload_url(content_type))


@router.put("/storage/upload/local", response_model=LocalUploadResponse)
async def upload_local(
    request: Request,
    path: Optional[str] = Query(None),
    storage: ObjectStorageService = Depends(get_storage_service)
):
    """Target of local-backend upload URLs; the body is streamed to disk"""
    size = await storage.receive_local_upload(path, request.stream())
    return LocalUploadResponse(path=path, size=size)


@router.put("/attachments/normalize", response_model=NormalizeResponse, response_model_by_alias=True)
async def normalize_attachment(
    request: NormalizeRequest,
    storage: ObjectStorageService = Depends(get_storage_service)
):
    """Turn an uploaded attachment URL into its stored object path"""
    return NormalizeResponse(object_path=storage.normalize_object_entity_path(request.attachment_url))


@router.get("/objects/{object_path:path}")
def download_object(
    object_path: str,
    storage: ObjectStorageService = Depends(get_storage_service)
):
    """
    Stream a stored object.

    Sync handler: backend SDK calls run in the threadpool.
    """
    stored = storage.get_object_entity_file(object_path)
    headers = {"Cache-Control": CACHE_CONTROL}
    if stored.content_length is not None:
        headers["Content-Length"] = str(stored.content_length)
    return StreamingResponse(
        stored.stream,
        media_type=stored.content_type or DEFAULT_CONTENT_TYPE,
        headers=headers
    )
