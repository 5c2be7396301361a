from pydantic import Field
from typing import Optional
from schemas.base_schema import CamelModel

class ImageUploadRequest(CamelModel):
    base64: str = Field(..., min_length=1)
    file_name: str = Field(..., min_length=1, max_length=200)

class ImageUploadResponse(CamelModel):
    url: str
    key: str

class PresignRequest(CamelModel):
    file_name: str = Field(..., min_length=1, max_length=200)
    content_type: Optional[str] = None

class PresignResponse(CamelModel):
    upload_url: str
    url: str
    key: str
    content_type: str
    expires_in: int
