"""Match conversation exports."""

from .service import get_conversation_messages, mark_read, send_message

__all__ = [
	"get_conversation_messages",
	"mark_read",
	"send_message",
]
