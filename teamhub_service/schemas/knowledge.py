from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    color: str | None = None
    sort_order: int = 0


class CategoryResponse(CategoryCreate):
    id: int

    class Config:
        from_attributes = True


class ArticleCreate(BaseModel):
    category_id: int | None = None
    title: str = Field(..., min_length=1, max_length=255)
    summary: str | None = None
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None
    video_url: str | None = None
    is_published: bool = False


class ArticleUpdate(BaseModel):
    category_id: int | None = None
    title: str | None = Field(None, min_length=1, max_length=255)
    summary: str | None = None
    content: str | None = None
    tags: list[str] | None = None
    image_url: str | None = None
    video_url: str | None = None
    is_published: bool | None = None


class ArticleResponse(BaseModel):
    id: int
    category_id: int | None = None
    category_name: str | None = None
    category_color: str | None = None
    author_id: str | None = None
    author_name: str | None = None
    title: str
    summary: str | None = None
    content: str
    tags: list[str] = Field(default_factory=list)
    image_url: str | None = None
    video_url: str | None = None
    is_published: bool
    view_count: int
    created_at: datetime


class ArticleOpened(ArticleResponse):
    unique_viewers: int


class AssistantRole(str, Enum):
    user = "user"
    assistant = "assistant"


class AIConversationResponse(BaseModel):
    id: int
    title: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AIMessageResponse(BaseModel):
    id: int
    conversation_id: int
    role: AssistantRole
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class AssistantSend(BaseModel):
    message: str = Field(..., min_length=1)
    conversation_id: int | None = None


class AssistantExchange(BaseModel):
    conversation: AIConversationResponse
    user_message: AIMessageResponse
    assistant_message: AIMessageResponse
