import logging
from typing import Optional, List
from sqlalchemy.orm import Session

from core.exceptions import PermissionDeniedError, ResourceNotFoundError, ValidationError
from models.conversation import ConversationType, MessageType
from models.user import User
from repositories.conversation_repository import ConversationRepository, MessageRepository
from repositories.user_repository import UserRepository
from utils.serializers import to_public_user, public_user_or_placeholder
from utils.timeutil import isoformat

logger = logging.getLogger(__name__)

GROUP_CREATED_TEXT = "群聊已创建"


class MessageService:

    @staticmethod
    def _require_member(db: Session, conversation_id: int, user_id: int):
        if not ConversationRepository.get_by_id(db, conversation_id):
            raise ResourceNotFoundError("会话不存在")
        member = ConversationRepository.get_member(db, conversation_id, user_id)
        if not member:
            raise PermissionDeniedError("你不在该会话中")
        return member

    @staticmethod
    def list_conversations(db: Session, user: User) -> list:
        items = []
        for conv in ConversationRepository.get_user_conversations(db, user.id):
            members = ConversationRepository.get_members(db, conv.id)
            me = next((m for m in members if m.user_id == user.id), None)
            last = MessageRepository.get_last_message(db, conv.id)

            other_user = None
            if conv.type == ConversationType.PRIVATE:
                other = next((m for m in members if m.user_id != user.id), None)
                if other:
                    other_row = UserRepository.get_by_id(db, other.user_id)
                    other_user = to_public_user(other_row) if other_row else None

            items.append({
                "id": conv.id,
                "type": conv.type.value,
                "name": conv.name,
                "avatar": conv.avatar,
                "last_message": last.content if last else None,
                "last_message_at": isoformat(last.created_at) if last else None,
                "unread_count": MessageRepository.count_unread(
                    db, conv.id, user.id, me.last_read_message_id if me else None
                ),
                "other_user": other_user,
                "member_count": len(members),
            })
        return items

    @staticmethod
    def list_messages(db: Session, user: User, conversation_id: int, limit: int = 50,
                      cursor: Optional[int] = None) -> dict:
        member = MessageService._require_member(db, conversation_id, user.id)

        messages = MessageRepository.list_by_conversation(db, conversation_id, limit=limit + 1, cursor=cursor)
        next_cursor = None
        if len(messages) > limit:
            messages = messages[:limit]
            next_cursor = messages[-1].id

        # newest page read means everything up to its first message is read
        if not cursor and messages:
            newest_id = messages[0].id
            if not member.last_read_message_id or member.last_read_message_id < newest_id:
                member.last_read_message_id = newest_id
                db.commit()

        user_map = {u.id: u for u in UserRepository.get_many(db, [m.sender_id for m in messages])}
        items = [
            {
                "id": m.id,
                "conversation_id": m.conversation_id,
                "sender_id": m.sender_id,
                "content": m.content,
                "message_type": m.message_type.value,
                "created_at": isoformat(m.created_at),
                "sender": public_user_or_placeholder(user_map, m.sender_id),
                "is_mine": m.sender_id == user.id,
            }
            for m in messages
        ]
        items.reverse()
        return {"items": items, "next_cursor": next_cursor}

    @staticmethod
    def send_message(db: Session, user: User, conversation_id: int, content: str,
                     message_type: MessageType = MessageType.TEXT) -> dict:
        MessageService._require_member(db, conversation_id, user.id)
        message = MessageRepository.create_message(db, conversation_id, user.id, content, message_type)
        db.commit()
        return {"success": True, "message_id": message.id}

    @staticmethod
    def start_private_chat(db: Session, user: User, target_user_id: int) -> dict:
        if target_user_id == user.id:
            raise ValidationError("不能和自己聊天")

        # lock both users in id order so two first messages cannot open two chats
        locked = UserRepository.lock_many(db, [user.id, target_user_id])
        if len(locked) != 2:
            db.rollback()
            raise ResourceNotFoundError("用户不存在")

        existing = ConversationRepository.find_private_conversation(db, user.id, target_user_id)
        if existing:
            db.rollback()
            return {"success": True, "conversation_id": existing.id}

        conv = ConversationRepository.create_conversation(db, ConversationType.PRIVATE)
        ConversationRepository.add_member(db, conv.id, user.id)
        ConversationRepository.add_member(db, conv.id, target_user_id)
        db.commit()
        logger.info(f"Private conversation {conv.id} opened between {user.id} and {target_user_id}")
        return {"success": True, "conversation_id": conv.id}

    @staticmethod
    def create_group(db: Session, user: User, name: str, member_ids: List[int]) -> dict:
        others = sorted({m for m in member_ids if m != user.id})
        if not others:
            raise ValidationError("请至少选择一位成员")

        found = {u.id for u in UserRepository.get_many(db, others)}
        missing = [m for m in others if m not in found]
        if missing:
            raise ValidationError(f"用户不存在: {missing}")

        conv = ConversationRepository.create_conversation(db, ConversationType.GROUP, name=name.strip(), owner_id=user.id)
        ConversationRepository.add_member(db, conv.id, user.id)
        for member_id in others:
            ConversationRepository.add_member(db, conv.id, member_id)
        MessageRepository.create_message(db, conv.id, user.id, GROUP_CREATED_TEXT, MessageType.SYSTEM)
        db.commit()
        logger.info(f"Group conversation {conv.id} created by user_id={user.id} with {len(others)} members")
        return {"success": True, "conversation_id": conv.id}
