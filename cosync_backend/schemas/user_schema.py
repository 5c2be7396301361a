from pydantic import ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List
from schemas.base_schema import CamelModel

class PublicUser(CamelModel):
    id: int
    nickname: str
    avatar: Optional[str] = None
    gender: int = 0
    is_verified: bool = False
    bio: Optional[str] = None

class SelfUser(PublicUser):
    phone: Optional[str] = None
    verified_at: Optional[str] = None
    created_at: Optional[str] = None

class ProfileResponse(SelfUser):
    email: Optional[str] = None

class UserProfileUpdateRequest(CamelModel):
    model_config = ConfigDict(extra="forbid")

    nickname: Optional[str] = Field(None, min_length=1, max_length=50)
    avatar: Optional[str] = Field(None, max_length=2000)
    bio: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None

    @field_validator("nickname")
    @classmethod
    def validate_nickname(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("昵称不能为空")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[EmailStr]) -> Optional[EmailStr]:
        blocked_domains = ["example.com", "test.com"]
        if v is not None and v.split("@")[-1].lower() in blocked_domains:
            raise ValueError("请使用有效的邮箱地址")
        return v

class UserProfileUpdateResponse(CamelModel):
    success: bool
    updated_fields: List[str]

class BindPhoneRequest(CamelModel):
    phone: str = Field(..., pattern=r"^1[0-9]{10}$")
    code: str = Field(..., min_length=4, max_length=8, pattern=r"^[0-9]+$")
