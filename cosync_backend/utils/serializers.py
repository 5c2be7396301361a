from typing import Optional
from models.user import User
from models.post import Post
from utils.timeutil import isoformat


def display_nickname(user) -> str:
    return getattr(user, "nickname", None) or getattr(user, "name", None) or f"用户{user.id}"


def to_public_user(user) -> dict:
    """Projection safe to show to other users. Never carries phone, open_id or email."""
    return {
        "id": user.id,
        "nickname": display_nickname(user),
        "avatar": getattr(user, "avatar", None) or None,
        "gender": getattr(user, "gender", None) or 0,
        "is_verified": bool(getattr(user, "is_verified", False)),
        "bio": getattr(user, "bio", None) or None,
    }


def to_self_user(user: User) -> dict:
    return {
        "id": user.id,
        "nickname": display_nickname(user),
        "avatar": user.avatar,
        "phone": user.phone,
        "bio": user.bio,
        "gender": user.gender or 0,
        "is_verified": bool(user.is_verified),
        "verified_at": isoformat(user.verified_at),
        "created_at": isoformat(user.created_at),
    }


class _MissingUser:
    def __init__(self, user_id: int):
        self.id = user_id


def public_user_or_placeholder(user_map: dict, user_id: Optional[int]) -> Optional[dict]:
    if user_id is None:
        return None
    return to_public_user(user_map.get(user_id) or _MissingUser(user_id))


def to_post_item(post: Post, user_map: dict, liked_ids: set) -> dict:
    return {
        "id": post.id,
        "content": post.content,
        "images": post.images or [],
        "like_count": post.like_count,
        "comment_count": post.comment_count,
        "created_at": isoformat(post.created_at),
        "user": public_user_or_placeholder(user_map, post.user_id),
        "is_liked": post.id in liked_ids,
    }
