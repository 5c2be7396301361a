from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from core.database import get_db
from schemas.post_schema import SearchResponse
from services.post_service import PostService
from services.user_service import UserService

router = APIRouter(prefix="/api/search", tags=["Search"])

@router.get("", response_model=SearchResponse)
def search_all(keyword: str = Query(..., min_length=1, max_length=50), db: Session = Depends(get_db)):
    return {
        "users": UserService.search_users(db, keyword, limit=10),
        "posts": PostService.search(db, keyword, limit=10),
    }
