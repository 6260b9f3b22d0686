"""Domain models for match conversations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

DEFAULT_MESSAGE_TYPE = "text"
MAX_MESSAGE_TYPE_LENGTH = 20
MAX_CONTENT_LENGTH = 4000


@dataclass(slots=True)
class Message:
	message_id: str
	match_id: str
	sender_id: str
	content: str
	sent_at: datetime
	message_type: str = DEFAULT_MESSAGE_TYPE
	is_read: bool = False

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Message":
		return cls(
			message_id=str(record["id"]),
			match_id=str(record["match_id"]),
			sender_id=str(record["sender_id"]),
			content=record["content"],
			sent_at=record["sent_at"],
			message_type=record["message_type"],
			is_read=bool(record["is_read"]),
		)
