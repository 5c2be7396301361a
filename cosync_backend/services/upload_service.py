import base64
import binascii
import logging
import mimetypes
import os
import re
from typing import Optional
from datetime import datetime

from core.config import ALLOWED_IMAGE_EXTENSIONS, MAX_UPLOAD_SIZE_BYTES, MAX_UPLOAD_SIZE_MB, PRESIGN_EXPIRES_SECONDS
from core.exceptions import ExternalServiceError, PermissionDeniedError, ValidationError
from models.user import User
from utils.timeutil import utcnow

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class UploadService:

    @staticmethod
    def _safe_file_name(file_name: str) -> str:
        name = _UNSAFE_CHARS.sub("_", os.path.basename(file_name or "").strip())
        ext = os.path.splitext(name)[1].lower()
        if ext not in ALLOWED_IMAGE_EXTENSIONS:
            raise ValidationError(f"不支持的图片格式，允许: {', '.join(ALLOWED_IMAGE_EXTENSIONS)}")
        return name[-100:]

    @staticmethod
    def build_key(user_id: int, file_name: str, now: Optional[datetime] = None) -> str:
        now = now or utcnow()
        return f"images/{user_id}/{int(now.timestamp() * 1000)}-{UploadService._safe_file_name(file_name)}"

    @staticmethod
    def _content_type(file_name: str) -> str:
        return mimetypes.guess_type(file_name)[0] or "image/jpeg"

    @staticmethod
    def _decode(data: str) -> bytes:
        if data.startswith("data:") and "," in data:
            data = data.split(",", 1)[1]
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("图片数据不是有效的 base64")
        if not raw:
            raise ValidationError("图片内容为空")
        if len(raw) > MAX_UPLOAD_SIZE_BYTES:
            raise ValidationError(f"图片过大，最大 {MAX_UPLOAD_SIZE_MB}MB")
        return raw

    @staticmethod
    def upload_image(user: User, data: str, file_name: str, storage) -> dict:
        raw = UploadService._decode(data)
        key = UploadService.build_key(user.id, file_name)
        try:
            url = storage.put(key, raw, UploadService._content_type(key))
        except RuntimeError:
            logger.error(f"Image upload failed for user_id={user.id}", exc_info=True)
            raise ExternalServiceError("图片上传失败，请稍后重试")
        logger.info(f"Image uploaded for user_id={user.id}: {key}")
        return {"url": url, "key": key}

    @staticmethod
    def presign_upload(user: User, file_name: str, content_type: Optional[str], storage) -> dict:
        key = UploadService.build_key(user.id, file_name)
        content_type = content_type or UploadService._content_type(key)
        if not content_type.startswith("image/"):
            raise ValidationError("只允许上传图片")
        return {
            "upload_url": storage.presign_put(key, content_type, PRESIGN_EXPIRES_SECONDS),
            "url": storage.public_url(key),
            "key": key,
            "content_type": content_type,
            "expires_in": PRESIGN_EXPIRES_SECONDS,
        }

    @staticmethod
    def authorize_direct_upload(key: str, content_type: str, expires: int, signature: str, storage,
                                declared_size: Optional[int] = None) -> None:
        """Signature and size checks that run before the request body is read."""
        if not getattr(storage, "supports_direct_upload", False):
            raise PermissionDeniedError("当前存储不支持直传")
        if not storage.verify_presigned(key, content_type, expires, signature):
            raise PermissionDeniedError("上传签名无效或已过期")
        if declared_size is not None and declared_size > MAX_UPLOAD_SIZE_BYTES:
            raise ValidationError(f"图片过大，最大 {MAX_UPLOAD_SIZE_MB}MB")

    @staticmethod
    def store_direct_upload(key: str, content_type: str, expires: int, signature: str, body: bytes, storage) -> dict:
        UploadService.authorize_direct_upload(key, content_type, expires, signature, storage, declared_size=len(body))
        if not body:
            raise ValidationError("图片内容为空")
        return {"url": storage.put(key, body, content_type), "key": key}
