from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime


class MessageCreate(BaseModel):
    viewer_id: int
    text: str = Field(max_length=1000)

    @field_validator("text")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("消息不能为空")
        return value


class PostMessageResult(BaseModel):
    message_id: int
    stream_id: int
    viewer_id: int
    points_total: int
    leveled_up: bool
    new_level: int
    created_at: datetime


class MessageResponse(BaseModel):
    id: int
    stream_id: int
    account_id: int
    sender_name: Optional[str] = None
    avatar_url: Optional[str] = None
    kind: str = "text"
    content: Optional[str] = None
    gift_id: Optional[int] = None
    gift_send_id: Optional[int] = None
    sender_level: int
    created_at: datetime


class ChatHistoryResponse(BaseModel):
    messages: List[MessageResponse]
    last_message_id: Optional[int]
