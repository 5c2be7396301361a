from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_502_BAD_GATEWAY,
)


class AppError(HTTPException):
    default_detail = "请求失败"
    default_status = HTTP_400_BAD_REQUEST

    def __init__(self, detail: str = None, status_code: int = None):
        super().__init__(
            status_code=status_code or self.default_status,
            detail=detail or self.default_detail,
        )


class ValidationError(AppError):
    default_detail = "请求参数不合法"


class AuthenticationError(AppError):
    default_detail = "请先登录"
    default_status = HTTP_401_UNAUTHORIZED


class PermissionDeniedError(AppError):
    default_detail = "无权操作"
    default_status = HTTP_403_FORBIDDEN


class NotFoundOrExpiredError(AppError):
    """Code or session lookup miss. Reported as an authentication failure."""
    default_detail = "验证码无效或已过期"


class ResourceNotFoundError(AppError):
    default_detail = "资源不存在"
    default_status = HTTP_404_NOT_FOUND


class ConflictError(AppError):
    default_detail = "资源冲突"
    default_status = HTTP_409_CONFLICT


class RateLimitError(AppError):
    default_detail = "请求过于频繁"
    default_status = HTTP_429_TOO_MANY_REQUESTS


class ExternalServiceError(AppError):
    default_detail = "外部服务暂时不可用，请稍后重试"
    default_status = HTTP_502_BAD_GATEWAY
