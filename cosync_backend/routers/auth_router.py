from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from core.database import get_db
from core.dependencies import get_sms_provider
from core.security import get_optional_user, set_session_cookie, clear_session_cookie
from models.user import User
from schemas.auth_schema import SendCodeRequest, SendCodeResponse, VerifyCodeRequest, VerifyCodeResponse
from schemas.base_schema import SuccessResponse
from schemas.user_schema import SelfUser
from services.sms_code_service import SmsCodeService
from services.session_service import SessionService
from utils.serializers import to_self_user
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Phone Auth"])

@router.post("/sms/send-code", response_model=SendCodeResponse)
def send_code(request: SendCodeRequest, db: Session = Depends(get_db), sms_provider=Depends(get_sms_provider)):
    try:
        return SmsCodeService.issue_code(db, request.phone, sms_provider)
    except HTTPException:
        raise
    except Exception:
        logger.error("Send code error", exc_info=True)
        raise HTTPException(status_code=500, detail="验证码发送失败")

@router.post("/sms/verify-code", response_model=VerifyCodeResponse)
def verify_code(request: VerifyCodeRequest, response: Response, db: Session = Depends(get_db)):
    try:
        result = SessionService.login_with_code(db, request.phone, request.code)
        set_session_cookie(response, result["token"])
        return result
    except HTTPException:
        raise
    except Exception:
        logger.exception("Verify code error")
        raise HTTPException(status_code=500, detail="登录失败，请稍后重试")

@router.get("/auth/me", response_model=Optional[SelfUser])
def me(user: Optional[User] = Depends(get_optional_user)):
    return to_self_user(user) if user else None

@router.post("/auth/logout", response_model=SuccessResponse)
def logout(response: Response):
    clear_session_cookie(response)
    return {"success": True}
