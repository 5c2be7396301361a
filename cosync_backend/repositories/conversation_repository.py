from datetime import datetime, timezone
from typing import Optional, List
from sqlalchemy import func, update
from sqlalchemy.orm import Session, aliased
from models.conversation import Conversation, ConversationMember, ConversationType, Message, MessageType

class ConversationRepository:

    @staticmethod
    def create_conversation(db: Session, type: ConversationType, name: str = None, owner_id: int = None) -> Conversation:
        conversation = Conversation(type=type, name=name, owner_id=owner_id)
        db.add(conversation)
        db.flush()
        return conversation

    @staticmethod
    def add_member(db: Session, conversation_id: int, user_id: int) -> ConversationMember:
        member = ConversationMember(conversation_id=conversation_id, user_id=user_id)
        db.add(member)
        db.flush()
        return member

    @staticmethod
    def get_by_id(db: Session, conversation_id: int) -> Optional[Conversation]:
        return db.query(Conversation).filter(Conversation.id == conversation_id).first()

    @staticmethod
    def get_member(db: Session, conversation_id: int, user_id: int) -> Optional[ConversationMember]:
        return db.query(ConversationMember).filter(
            ConversationMember.conversation_id == conversation_id,
            ConversationMember.user_id == user_id,
        ).first()

    @staticmethod
    def get_members(db: Session, conversation_id: int) -> List[ConversationMember]:
        return db.query(ConversationMember).filter(ConversationMember.conversation_id == conversation_id).all()

    @staticmethod
    def get_user_conversations(db: Session, user_id: int) -> List[Conversation]:
        return (
            db.query(Conversation)
            .join(ConversationMember, ConversationMember.conversation_id == Conversation.id)
            .filter(ConversationMember.user_id == user_id)
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            .all()
        )

    @staticmethod
    def find_private_conversation(db: Session, user_id_1: int, user_id_2: int) -> Optional[Conversation]:
        m1 = aliased(ConversationMember)
        m2 = aliased(ConversationMember)
        return (
            db.query(Conversation)
            .join(m1, (m1.conversation_id == Conversation.id) & (m1.user_id == user_id_1))
            .join(m2, (m2.conversation_id == Conversation.id) & (m2.user_id == user_id_2))
            .filter(Conversation.type == ConversationType.PRIVATE)
            .first()
        )

    @staticmethod
    def touch(db: Session, conversation_id: int) -> None:
        db.execute(
            update(Conversation).where(Conversation.id == conversation_id)
            .values(updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )


class MessageRepository:

    @staticmethod
    def create_message(db: Session, conversation_id: int, sender_id: int, content: str,
                       message_type: MessageType = MessageType.TEXT) -> Message:
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=message_type,
        )
        db.add(message)
        db.flush()
        ConversationRepository.touch(db, conversation_id)
        return message

    @staticmethod
    def list_by_conversation(db: Session, conversation_id: int, limit: int, cursor: Optional[int] = None) -> List[Message]:
        query = db.query(Message).filter(Message.conversation_id == conversation_id)
        if cursor is not None:
            query = query.filter(Message.id < cursor)
        return query.order_by(Message.id.desc()).limit(limit).all()

    @staticmethod
    def get_last_message(db: Session, conversation_id: int) -> Optional[Message]:
        return (
            db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.id.desc())
            .first()
        )

    @staticmethod
    def count_unread(db: Session, conversation_id: int, user_id: int, last_read_message_id: Optional[int]) -> int:
        query = db.query(func.count(Message.id)).filter(
            Message.conversation_id == conversation_id,
            Message.sender_id != user_id,
        )
        if last_read_message_id:
            query = query.filter(Message.id > last_read_message_id)
        return query.scalar() or 0
