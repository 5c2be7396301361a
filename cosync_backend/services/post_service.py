import logging
from typing import Optional, List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, PermissionDeniedError, ResourceNotFoundError, ValidationError
from models.post import Comment
from models.user import User
from repositories.post_repository import PostRepository, LikeRepository, CommentRepository
from repositories.user_repository import UserRepository
from utils.serializers import to_post_item, public_user_or_placeholder
from utils.timeutil import isoformat

logger = logging.getLogger(__name__)


class PostService:

    @staticmethod
    def _page(db: Session, viewer: Optional[User], limit: int, cursor: Optional[int], user_id: Optional[int] = None) -> dict:
        posts = PostRepository.list_posts(db, limit=limit + 1, cursor=cursor, user_id=user_id)
        next_cursor = None
        if len(posts) > limit:
            posts = posts[:limit]
            next_cursor = posts[-1].id

        user_map = {u.id: u for u in UserRepository.get_many(db, [p.user_id for p in posts])}
        liked = LikeRepository.liked_post_ids(db, viewer.id, [p.id for p in posts]) if viewer else set()
        return {
            "items": [to_post_item(p, user_map, liked) for p in posts],
            "next_cursor": next_cursor,
        }

    @staticmethod
    def list_feed(db: Session, viewer: Optional[User], limit: int = 20, cursor: Optional[int] = None) -> dict:
        return PostService._page(db, viewer, limit, cursor)

    @staticmethod
    def list_user_posts(db: Session, viewer: Optional[User], user_id: int, limit: int = 20,
                        cursor: Optional[int] = None) -> dict:
        return PostService._page(db, viewer, limit, cursor, user_id=user_id)

    @staticmethod
    def get_detail(db: Session, post_id: int, viewer: Optional[User]) -> dict:
        post = PostRepository.get_by_id(db, post_id)
        if not post:
            raise ResourceNotFoundError("动态不存在")

        comments = CommentRepository.get_by_post_id(db, post.id)
        user_ids = {post.user_id}
        user_ids.update(c.user_id for c in comments)
        user_ids.update(c.reply_to_user_id for c in comments if c.reply_to_user_id)
        user_map = {u.id: u for u in UserRepository.get_many(db, user_ids)}
        liked = LikeRepository.liked_post_ids(db, viewer.id, [post.id]) if viewer else set()

        detail = to_post_item(post, user_map, liked)
        detail["comments"] = [
            {
                "id": c.id,
                "content": c.content,
                "created_at": isoformat(c.created_at),
                "user": public_user_or_placeholder(user_map, c.user_id),
                "parent_id": c.parent_id,
                "reply_to_user": public_user_or_placeholder(user_map, c.reply_to_user_id),
            }
            for c in comments
        ]
        return detail

    @staticmethod
    def create_post(db: Session, user: User, content: str, images: List[str]) -> dict:
        if not user.is_verified:
            return {"success": False, "message": "请先完成实名认证", "need_verify": True}

        post = PostRepository.create_post(db, user_id=user.id, content=content, images=images or [])
        logger.info(f"Post {post.id} created by user_id={user.id}")
        return {"success": True, "post_id": post.id, "need_verify": False}

    @staticmethod
    def delete_post(db: Session, user: User, post_id: int) -> dict:
        post = PostRepository.get_by_id(db, post_id)
        if not post:
            raise ResourceNotFoundError("动态不存在")
        if post.user_id != user.id:
            raise PermissionDeniedError("无权删除")

        PostRepository.delete_post(db, post)
        logger.info(f"Post {post_id} deleted by user_id={user.id}")
        return {"success": True}

    @staticmethod
    def toggle_like(db: Session, user: User, post_id: int) -> dict:
        """
        Flip the like and adjust the counter in one transaction.

        The post row is locked first, so concurrent toggles on a post are
        serialized and the counter never loses an update.
        """
        post = PostRepository.get_for_update(db, post_id)
        if not post:
            db.rollback()
            raise ResourceNotFoundError("动态不存在")

        try:
            if LikeRepository.get(db, user.id, post_id):
                if LikeRepository.remove(db, user.id, post_id):
                    PostRepository.decrement_like_count(db, post_id)
                is_liked = False
            else:
                LikeRepository.add(db, user.id, post_id)
                PostRepository.increment_like_count(db, post_id)
                is_liked = True
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("操作过于频繁，请稍后重试")

        db.refresh(post)
        return {"is_liked": is_liked, "like_count": post.like_count}

    @staticmethod
    def add_comment(db: Session, user: User, post_id: int, content: str,
                    parent_id: Optional[int] = None, reply_to_user_id: Optional[int] = None) -> dict:
        post = PostRepository.get_by_id(db, post_id)
        if not post:
            raise ResourceNotFoundError("动态不存在")

        if parent_id is not None:
            parent = CommentRepository.get_by_id(db, parent_id)
            if not parent or parent.post_id != post_id:
                raise ValidationError("回复的评论不存在")
            if reply_to_user_id is None:
                reply_to_user_id = parent.user_id

        if reply_to_user_id is not None and not UserRepository.get_by_id(db, reply_to_user_id):
            raise ValidationError("回复的用户不存在")

        comment = CommentRepository.create_comment(db, Comment(
            post_id=post_id,
            user_id=user.id,
            content=content,
            parent_id=parent_id,
            reply_to_user_id=reply_to_user_id,
        ))
        PostRepository.increment_comment_count(db, post_id)
        db.commit()
        return {"success": True, "comment_id": comment.id}

    @staticmethod
    def search(db: Session, keyword: str, limit: int = 10) -> list:
        keyword = keyword.strip()
        if not keyword:
            raise ValidationError("搜索关键词不能为空")
        posts = PostRepository.search_by_content(db, keyword, limit)
        user_map = {u.id: u for u in UserRepository.get_many(db, [p.user_id for p in posts])}
        return [to_post_item(p, user_map, set()) for p in posts]
