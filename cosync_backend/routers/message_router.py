from typing import Optional, List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from core.database import get_db
from core.security import get_current_user
from models.conversation import MessageType
from models.user import User
from schemas.message_schema import (
    ConversationItem, MessagePage, SendMessageRequest, SendMessageResponse,
    StartPrivateChatRequest, CreateGroupRequest, ConversationCreatedResponse,
)
from services.message_service import MessageService
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/conversations", tags=["Messages"])

@router.get("", response_model=List[ConversationItem])
def list_conversations(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return MessageService.list_conversations(db, user)

@router.get("/{conversation_id}/messages", response_model=MessagePage)
def list_messages(
    conversation_id: int,
    limit: int = Query(50, ge=1, le=100),
    cursor: Optional[int] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return MessageService.list_messages(db, user, conversation_id, limit=limit, cursor=cursor)

@router.post("/{conversation_id}/messages", response_model=SendMessageResponse)
def send_message(conversation_id: int, request: SendMessageRequest, user: User = Depends(get_current_user),
                 db: Session = Depends(get_db)):
    try:
        return MessageService.send_message(
            db, user, conversation_id, request.content, MessageType(request.message_type)
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Send message error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="消息发送失败")

@router.post("/private", response_model=ConversationCreatedResponse)
def start_private_chat(request: StartPrivateChatRequest, user: User = Depends(get_current_user),
                       db: Session = Depends(get_db)):
    return MessageService.start_private_chat(db, user, request.target_user_id)

@router.post("/group", response_model=ConversationCreatedResponse)
def create_group(request: CreateGroupRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        return MessageService.create_group(db, user, request.name, request.member_ids)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create group error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="群聊创建失败")
