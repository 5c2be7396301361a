from pydantic import Field
from typing import Optional, List
from schemas.base_schema import CamelModel
from schemas.user_schema import PublicUser

class PostItem(CamelModel):
    id: int
    content: str
    images: List[str] = []
    like_count: int
    comment_count: int
    created_at: Optional[str] = None
    user: PublicUser
    is_liked: bool = False

class PostPage(CamelModel):
    items: List[PostItem]
    next_cursor: Optional[int] = None

class CommentItem(CamelModel):
    id: int
    content: str
    created_at: Optional[str] = None
    user: PublicUser
    parent_id: Optional[int] = None
    reply_to_user: Optional[PublicUser] = None

class PostDetail(PostItem):
    comments: List[CommentItem] = []

class CreatePostRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=2000)
    images: List[str] = Field(default_factory=list, max_length=9)

class CreatePostResponse(CamelModel):
    success: bool
    post_id: Optional[int] = None
    need_verify: bool = False
    message: Optional[str] = None

class ToggleLikeResponse(CamelModel):
    is_liked: bool
    like_count: int

class CreateCommentRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=500)
    parent_id: Optional[int] = None
    reply_to_user_id: Optional[int] = None

class CreateCommentResponse(CamelModel):
    success: bool
    comment_id: int

class SearchResponse(CamelModel):
    users: List[PublicUser]
    posts: List[PostItem]
