from pydantic import Field, field_validator
from typing import Optional
from schemas.base_schema import CamelModel
from utils.id_card import is_valid_id_number

class VerifyInitRequest(CamelModel):
    real_name: str = Field(..., min_length=2, max_length=20)
    id_number: str
    meta_info: str = Field(..., min_length=1)

    @field_validator("id_number")
    @classmethod
    def validate_id_number(cls, v: str) -> str:
        v = v.strip()
        if not is_valid_id_number(v):
            raise ValueError("身份证号格式不正确")
        return v.upper()

class VerifyInitResponse(CamelModel):
    certify_id: str
    certify_url: str

class CheckResultRequest(CamelModel):
    certify_id: str = Field(..., min_length=1, max_length=64)
    id_number: str

    @field_validator("id_number")
    @classmethod
    def validate_id_number(cls, v: str) -> str:
        v = v.strip()
        if not is_valid_id_number(v):
            raise ValueError("身份证号格式不正确")
        return v.upper()

class CheckResultResponse(CamelModel):
    success: bool
    gender: Optional[int] = None

class VerifyStatusResponse(CamelModel):
    is_verified: bool
    gender: int
    phone: Optional[str] = None
