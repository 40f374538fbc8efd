from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class ConversationType(str, Enum):
    direct = "direct"
    group = "group"
    team_announcement = "team_announcement"


class ConversationCreate(BaseModel):
    type: ConversationType
    title: str | None = Field(None, max_length=255)
    team_id: int | None = None
    recipient_ids: list[str] = Field(default_factory=list)
    content: str = Field(..., min_length=1)
    replies_disabled: bool = False

    @model_validator(mode="after")
    def check_shape(self) -> "ConversationCreate":
        title = (self.title or "").strip()
        if self.type == ConversationType.direct:
            if len(set(self.recipient_ids)) != 1:
                raise ValueError("direct conversations need exactly one recipient")
            self.title = None
            self.team_id = None
            self.replies_disabled = False
        elif self.type == ConversationType.group:
            if not title:
                raise ValueError("group conversations need a title")
            if not self.recipient_ids:
                raise ValueError("group conversations need at least one recipient")
            self.title = title
            self.team_id = None
        else:
            if not title:
                raise ValueError("team announcements need a title")
            if self.team_id is None:
                raise ValueError("team announcements need a team_id")
            self.title = title
        if not self.content.strip():
            raise ValueError("the first message cannot be blank")
        return self


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1)
    parent_message_id: int | None = None


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: str | None = None
    sender_name: str | None = None
    content: str
    parent_message_id: int | None = None
    created_at: datetime
    is_read: bool = True


class MessageThread(MessageResponse):
    replies: list[MessageResponse] = Field(default_factory=list)


class ParticipantResponse(BaseModel):
    user_id: str
    full_name: str
    role: str
    avatar_url: str | None = None


class ConversationSummary(BaseModel):
    id: int
    type: ConversationType
    title: str | None = None
    display_title: str
    team_id: int | None = None
    team_name: str | None = None
    created_by: str | None = None
    is_pinned: bool
    replies_disabled: bool
    can_reply: bool
    unread_count: int
    participants: list[ParticipantResponse] = Field(default_factory=list)
    last_message: MessageResponse | None = None
    created_at: datetime
    updated_at: datetime


class ConversationDetail(ConversationSummary):
    threads: list[MessageThread] = Field(default_factory=list)


class PinState(BaseModel):
    id: int
    is_pinned: bool
