from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
from sqlalchemy.orm import Session
from core.database import get_db
from core.security import get_current_user
from models.user import User
from schemas.base_schema import SuccessResponse
from schemas.user_schema import ProfileResponse, PublicUser, UserProfileUpdateRequest, UserProfileUpdateResponse, BindPhoneRequest
from services.user_service import UserService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["User Profile"])

@router.get("/profile", response_model=ProfileResponse)
def get_profile(user: User = Depends(get_current_user)):
    return UserService.get_profile(user)

@router.put("/profile", response_model=UserProfileUpdateResponse)
def update_profile(request: UserProfileUpdateRequest, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    try:
        return UserService.update_profile(db, user, request)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update profile error: {str(e)}")
        raise HTTPException(status_code=500, detail="资料更新失败")

@router.post("/bind-phone", response_model=SuccessResponse)
def bind_phone(request: BindPhoneRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return UserService.bind_phone(db, user, request.phone, request.code)
    except HTTPException:
        raise
    except Exception:
        logger.error("Bind phone error", exc_info=True)
        raise HTTPException(status_code=500, detail="手机号绑定失败")

@router.get("/search", response_model=List[PublicUser])
def search_users(keyword: str = Query(..., min_length=1, max_length=50), db: Session = Depends(get_db)):
    return UserService.search_users(db, keyword)

@router.get("/{user_id}/public", response_model=PublicUser)
def get_public_profile(user_id: int, db: Session = Depends(get_db)):
    return UserService.get_public_profile(db, user_id)
