from pydantic import Field
from typing import Optional, List, Literal
from schemas.base_schema import CamelModel
from schemas.user_schema import PublicUser

class ConversationItem(CamelModel):
    id: int
    type: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    last_message: Optional[str] = None
    last_message_at: Optional[str] = None
    unread_count: int = 0
    other_user: Optional[PublicUser] = None
    member_count: int

class MessageItem(CamelModel):
    id: int
    conversation_id: int
    sender_id: int
    content: str
    message_type: str
    created_at: Optional[str] = None
    sender: PublicUser
    is_mine: bool

class MessagePage(CamelModel):
    items: List[MessageItem]
    next_cursor: Optional[int] = None

class SendMessageRequest(CamelModel):
    content: str = Field(..., min_length=1, max_length=2000)
    message_type: Literal["text", "image"] = "text"

class SendMessageResponse(CamelModel):
    success: bool
    message_id: int

class StartPrivateChatRequest(CamelModel):
    target_user_id: int

class CreateGroupRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    member_ids: List[int] = Field(..., min_length=1)

class ConversationCreatedResponse(CamelModel):
    success: bool
    conversation_id: int
