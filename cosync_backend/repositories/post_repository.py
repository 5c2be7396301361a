from typing import Optional, List, Iterable
from sqlalchemy import case, update
from sqlalchemy.orm import Session
from models.post import Post, Like, Comment

class PostRepository:

    @staticmethod
    def create_post(db: Session, user_id: int, content: str, images: List[str]) -> Post:
        post = Post(user_id=user_id, content=content, images=images)
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    @staticmethod
    def get_by_id(db: Session, post_id: int) -> Optional[Post]:
        return db.query(Post).filter(Post.id == post_id).first()

    @staticmethod
    def get_for_update(db: Session, post_id: int) -> Optional[Post]:
        return db.query(Post).filter(Post.id == post_id).with_for_update().populate_existing().first()

    @staticmethod
    def list_posts(db: Session, limit: int, cursor: Optional[int] = None, user_id: Optional[int] = None) -> List[Post]:
        query = db.query(Post)
        if cursor is not None:
            query = query.filter(Post.id < cursor)
        if user_id:
            query = query.filter(Post.user_id == user_id)
        return query.order_by(Post.id.desc()).limit(limit).all()

    @staticmethod
    def search_by_content(db: Session, keyword: str, limit: int = 20) -> List[Post]:
        return (
            db.query(Post)
            .filter(Post.content.contains(keyword, autoescape=True))
            .order_by(Post.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def delete_post(db: Session, post: Post) -> None:
        db.query(Like).filter(Like.post_id == post.id).delete(synchronize_session=False)
        db.query(Comment).filter(Comment.post_id == post.id).delete(synchronize_session=False)
        db.delete(post)
        db.commit()

    @staticmethod
    def increment_like_count(db: Session, post_id: int) -> None:
        db.execute(
            update(Post).where(Post.id == post_id)
            .values(like_count=Post.like_count + 1)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def decrement_like_count(db: Session, post_id: int) -> None:
        db.execute(
            update(Post).where(Post.id == post_id)
            .values(like_count=case((Post.like_count > 0, Post.like_count - 1), else_=0))
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def increment_comment_count(db: Session, post_id: int) -> None:
        db.execute(
            update(Post).where(Post.id == post_id)
            .values(comment_count=Post.comment_count + 1)
            .execution_options(synchronize_session=False)
        )


class LikeRepository:

    @staticmethod
    def get(db: Session, user_id: int, post_id: int) -> Optional[Like]:
        return db.query(Like).filter(Like.user_id == user_id, Like.post_id == post_id).first()

    @staticmethod
    def add(db: Session, user_id: int, post_id: int) -> None:
        db.add(Like(user_id=user_id, post_id=post_id))
        db.flush()

    @staticmethod
    def remove(db: Session, user_id: int, post_id: int) -> bool:
        deleted = db.query(Like).filter(Like.user_id == user_id, Like.post_id == post_id).delete(synchronize_session=False)
        return deleted == 1

    @staticmethod
    def liked_post_ids(db: Session, user_id: int, post_ids: Iterable[int]) -> set:
        ids = list(post_ids)
        if not ids:
            return set()
        rows = db.query(Like.post_id).filter(Like.user_id == user_id, Like.post_id.in_(ids)).all()
        return {row.post_id for row in rows}


class CommentRepository:

    @staticmethod
    def create_comment(db: Session, comment: Comment) -> Comment:
        db.add(comment)
        db.flush()
        return comment

    @staticmethod
    def get_by_id(db: Session, comment_id: int) -> Optional[Comment]:
        return db.query(Comment).filter(Comment.id == comment_id).first()

    @staticmethod
    def get_by_post_id(db: Session, post_id: int) -> List[Comment]:
        return (
            db.query(Comment)
            .filter(Comment.post_id == post_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
            .all()
        )
