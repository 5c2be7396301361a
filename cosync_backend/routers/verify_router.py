from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from core.database import get_db
from core.dependencies import get_identity_provider
from core.security import get_current_user
from models.user import User
from schemas.verify_schema import VerifyInitRequest, VerifyInitResponse, CheckResultRequest, CheckResultResponse, VerifyStatusResponse
from services.identity_verification_service import IdentityVerificationService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/verify", tags=["Identity Verification"])

@router.post("/init", response_model=VerifyInitResponse)
def init_verification(request: VerifyInitRequest, user: User = Depends(get_current_user),
                      db: Session = Depends(get_db), provider=Depends(get_identity_provider)):
    try:
        return IdentityVerificationService.init_verification(
            db=db,
            user=user,
            real_name=request.real_name,
            id_number=request.id_number,
            meta_info=request.meta_info,
            provider=provider,
        )
    except HTTPException:
        raise
    except Exception:
        logger.error("Identity verification init error", exc_info=True)
        raise HTTPException(status_code=500, detail="实人认证发起失败")

@router.post("/check-result", response_model=CheckResultResponse, response_model_exclude_none=True)
def check_result(request: CheckResultRequest, user: User = Depends(get_current_user),
                 db: Session = Depends(get_db), provider=Depends(get_identity_provider)):
    try:
        return IdentityVerificationService.check_result(
            db=db,
            user=user,
            certify_id=request.certify_id,
            id_number=request.id_number,
            provider=provider,
        )
    except HTTPException:
        raise
    except Exception:
        logger.exception("Identity verification result error")
        raise HTTPException(status_code=500, detail="实人认证服务暂时不可用")

@router.get("/status", response_model=VerifyStatusResponse)
def verification_status(user: User = Depends(get_current_user)):
    return IdentityVerificationService.get_status(user)
