"""Chat schemas (DTOs) for REST responses and WebSocket frames."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .models import Message


# Inbound frames
class ChatFrame(BaseModel):
    """Envelope of every WebSocket frame: {"event": ..., "data": {...}}."""

    event: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)


class NewMessagePayload(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)


class TypingPayload(BaseModel):
    is_typing: bool


class PinMessagePayload(BaseModel):
    message_id: int
    pinned: bool


# Response schemas
class MessageResponse(BaseModel):
    """Chat message with its author's display name."""

    id: int
    content: str
    sender_id: int
    author_name: str
    author_last_name: str
    pinned: bool
    created_at: datetime

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            content=message.content,
            sender_id=message.sender_id,
            author_name=message.sender.name,
            author_last_name=message.sender.last_name,
            pinned=message.pinned,
            created_at=message.created_at,
        )
