"""Pydantic schemas for match conversations."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import DEFAULT_MESSAGE_TYPE, MAX_CONTENT_LENGTH, MAX_MESSAGE_TYPE_LENGTH, Message


class SendMessageRequest(BaseModel):
	content: str = Field(..., min_length=1, max_length=MAX_CONTENT_LENGTH)
	message_type: str = Field(default=DEFAULT_MESSAGE_TYPE, min_length=1, max_length=MAX_MESSAGE_TYPE_LENGTH)


class MessageResponse(BaseModel):
	message_id: str = Field(..., examples=["01HZY5AJ6HT7PM1F8M3X2W8Z9V"])
	match_id: str
	sender_id: str
	content: str
	message_type: str
	is_read: bool
	sent_at: datetime

	@classmethod
	def from_model(cls, message: Message) -> "MessageResponse":
		return cls(
			message_id=message.message_id,
			match_id=message.match_id,
			sender_id=message.sender_id,
			content=message.content,
			message_type=message.message_type,
			is_read=message.is_read,
			sent_at=message.sent_at,
		)


class MessageListResponse(BaseModel):
	items: List[MessageResponse]
	next_cursor: Optional[str] = None


class MarkReadResponse(BaseModel):
	match_id: str
	marked_read: int
