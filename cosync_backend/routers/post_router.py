from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from core.database import get_db
from core.security import get_current_user, get_optional_user
from models.user import User
from schemas.base_schema import SuccessResponse
from schemas.post_schema import (
    PostPage, PostDetail, CreatePostRequest, CreatePostResponse, ToggleLikeResponse,
    CreateCommentRequest, CreateCommentResponse,
)
from services.post_service import PostService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Posts"])

@router.get("/posts", response_model=PostPage)
def list_posts(
    limit: int = Query(20, ge=1, le=50),
    cursor: Optional[int] = Query(None, description="Return posts with id below this"),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return PostService.list_feed(db, viewer, limit=limit, cursor=cursor)

@router.get("/posts/{post_id}", response_model=PostDetail)
def get_post(post_id: int, viewer: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)):
    return PostService.get_detail(db, post_id, viewer)

@router.post("/posts", response_model=CreatePostResponse, response_model_exclude_none=True)
def create_post(request: CreatePostRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return PostService.create_post(db, user, request.content, request.images)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create post error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="发布失败")

@router.delete("/posts/{post_id}", response_model=SuccessResponse, response_model_exclude_none=True)
def delete_post(post_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return PostService.delete_post(db, user, post_id)

@router.post("/posts/{post_id}/like", response_model=ToggleLikeResponse)
def toggle_like(post_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return PostService.toggle_like(db, user, post_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Toggle like error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="操作失败")

@router.post("/posts/{post_id}/comments", response_model=CreateCommentResponse)
def create_comment(post_id: int, request: CreateCommentRequest, user: User = Depends(get_current_user),
                   db: Session = Depends(get_db)):
    try:
        return PostService.add_comment(
            db, user, post_id,
            content=request.content,
            parent_id=request.parent_id,
            reply_to_user_id=request.reply_to_user_id,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create comment error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="评论失败")

@router.get("/users/{user_id}/posts", response_model=PostPage)
def list_user_posts(
    user_id: int,
    limit: int = Query(20, ge=1, le=50),
    cursor: Optional[int] = Query(None),
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    return PostService.list_user_posts(db, viewer, user_id, limit=limit, cursor=cursor)
