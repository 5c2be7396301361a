from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.concurrency import run_in_threadpool
from core.config import MAX_UPLOAD_SIZE_BYTES, MAX_UPLOAD_SIZE_MB
from core.dependencies import get_storage_provider
from core.exceptions import ValidationError
from core.security import get_current_user
from models.user import User
from schemas.upload_schema import ImageUploadRequest, ImageUploadResponse, PresignRequest, PresignResponse
from services.upload_service import UploadService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["Upload"])

@router.post("/image", response_model=ImageUploadResponse)
def upload_image(request: ImageUploadRequest, user: User = Depends(get_current_user),
                 storage=Depends(get_storage_provider)):
    try:
        return UploadService.upload_image(user, request.base64, request.file_name, storage)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Upload error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="图片上传失败")

@router.post("/presign", response_model=PresignResponse)
def presign_upload(request: PresignRequest, user: User = Depends(get_current_user),
                   storage=Depends(get_storage_provider)):
    return UploadService.presign_upload(user, request.file_name, request.content_type, storage)

@router.put("/direct/{key:path}", response_model=ImageUploadResponse)
async def direct_upload(
    key: str,
    request: Request,
    expires: int = Query(...),
    signature: str = Query(...),
    storage=Depends(get_storage_provider),
):
    content_type = request.headers.get("content-type", "")
    declared = request.headers.get("content-length")
    if declared is not None and not (declared.isascii() and declared.isdigit()):
        raise ValidationError("Content-Length 无效")
    UploadService.authorize_direct_upload(key, content_type, expires, signature, storage,
                                          declared_size=int(declared) if declared is not None else None)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > MAX_UPLOAD_SIZE_BYTES:
            raise ValidationError(f"图片过大，最大 {MAX_UPLOAD_SIZE_MB}MB")

    # file writes stay off the event loop
    return await run_in_threadpool(
        UploadService.store_direct_upload, key, content_type, expires, signature, bytes(body), storage
    )
