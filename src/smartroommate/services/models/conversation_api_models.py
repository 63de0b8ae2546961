from pydantic import BaseModel, Field
from typing import Any
from datetime import datetime


class ConversationCreateRequest(BaseModel):
    """ recipient_id starts (or reopens) a direct conversation, member_ids a group.
    Ids are checked by the conversation directory so that bad ones surface as InvalidRecipient """
    recipient_id: Any = None
    member_ids: Any = None
    name: str | None = Field(None, max_length=120)
    property_id: int | None = None
    initial_message: str | None = None

class ConversationCreatedResponse(BaseModel):
    id: int
    created: bool

class MemberResponse(BaseModel):
    id: int
    name: str
    profile_image_url: str | None = None

class ConversationResponse(BaseModel):
    id: int
    name: str | None = None
    property_id: int | None = None
    created_at: datetime
    members: list[MemberResponse] = []
    last_message: str | None = None
    last_message_at: datetime | None = None
    unread_count: int = 0

class MessageSendRequest(BaseModel):
    body: str | None = None

class MessageCreatedResponse(BaseModel):
    id: int

class MessageResponse(BaseModel):
    id: int
    body: str
    created_at: datetime
    sender_id: int
    sender_name: str | None = None

class ConversationRenameRequest(BaseModel):
    name: str | None = Field(None, max_length=120)

class UnreadCountResponse(BaseModel):
    count: int
