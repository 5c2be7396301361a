from datetime import datetime, timezone
import enum
from sqlalchemy import Column, String, DateTime, Integer, BigInteger, Text, Enum as SQLEnum, ForeignKey, Index, UniqueConstraint
from core.database import Base

class ConversationType(str, enum.Enum):
    PRIVATE = "private"
    GROUP = "group"

class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    SYSTEM = "system"


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    type = Column(SQLEnum(ConversationType, values_callable=lambda e: [m.value for m in e]), nullable=False)
    # group only
    name = Column(String(100), nullable=True)
    avatar = Column(Text, nullable=True)
    owner_id = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)


class ConversationMember(Base):
    __tablename__ = "conversation_members"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    conversation_id = Column(BigInteger, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    last_read_message_id = Column(BigInteger, nullable=True)
    joined_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_member_conversation_user"),
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    conversation_id = Column(BigInteger, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(BigInteger, nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(SQLEnum(MessageType, values_callable=lambda e: [m.value for m in e]), default=MessageType.TEXT, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    __table_args__ = (
        Index("idx_message_conversation_id", "conversation_id", "id"),
    )
