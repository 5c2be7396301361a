from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean, Integer, BigInteger, Text, Index
from core.database import Base

# 0 = not set, 1 = male, 2 = female
GENDER_UNSET = 0
GENDER_MALE = 1
GENDER_FEMALE = 2

class User(Base):
    __tablename__ = "users"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    open_id = Column(String(64), unique=True, nullable=False)
    name = Column(Text, nullable=True)
    email = Column(String(320), nullable=True)
    login_method = Column(String(64), nullable=True)
    role = Column(String(20), default="user", nullable=False)
    phone = Column(String(20), unique=True, nullable=True)
    nickname = Column(String(50), nullable=True)
    avatar = Column(Text, nullable=True)
    bio = Column(String(200), nullable=True)
    # real name and ID number are never stored
    is_verified = Column(Boolean, default=False, nullable=False)
    gender = Column(Integer, default=GENDER_UNSET, nullable=False)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)
    last_signed_in = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        Index("idx_users_nickname", "nickname"),
    )
