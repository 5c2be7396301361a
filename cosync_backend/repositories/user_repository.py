from sqlalchemy.orm import Session
from models.user import User
from typing import Optional, List, Iterable

class UserRepository:
    @staticmethod
    def get_by_id(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_open_id(db: Session, open_id: str) -> Optional[User]:
        return db.query(User).filter(User.open_id == open_id).first()

    @staticmethod
    def get_by_phone(db: Session, phone: str) -> Optional[User]:
        return db.query(User).filter(User.phone == phone).first()

    @staticmethod
    def get_many(db: Session, user_ids: Iterable[int]) -> List[User]:
        ids = list(set(user_ids))
        if not ids:
            return []
        return db.query(User).filter(User.id.in_(ids)).all()

    @staticmethod
    def create_user(db: Session, user: User) -> User:
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User) -> User:
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def save(db: Session) -> None:
        db.commit()

    @staticmethod
    def search_by_nickname(db: Session, keyword: str, limit: int = 20) -> List[User]:
        return db.query(User).filter(User.nickname.contains(keyword, autoescape=True)).order_by(User.id.desc()).limit(limit).all()

    @staticmethod
    def lock_many(db: Session, user_ids: Iterable[int]) -> List[User]:
        return (
            db.query(User)
            .filter(User.id.in_(sorted(set(user_ids))))
            .order_by(User.id)
            .with_for_update()
            .all()
        )
