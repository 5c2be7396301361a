from pydantic import Field, field_validator
from typing import Optional
import re
from schemas.base_schema import CamelModel
from schemas.user_schema import SelfUser

PHONE_PATTERN = re.compile(r"1[0-9]{10}")

def _validate_phone(v: str) -> str:
    v = v.strip()
    if not PHONE_PATTERN.fullmatch(v):
        raise ValueError("手机号格式不正确")
    return v

class SendCodeRequest(CamelModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)

class SendCodeResponse(CamelModel):
    success: bool
    ttl: int

class VerifyCodeRequest(CamelModel):
    phone: str
    code: str = Field(..., min_length=4, max_length=8)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = v.strip()
        if not (v.isascii() and v.isdigit()):
            raise ValueError("验证码必须为数字")
        return v

class VerifyCodeResponse(CamelModel):
    success: bool
    token: Optional[str] = None
    user: Optional[SelfUser] = None
