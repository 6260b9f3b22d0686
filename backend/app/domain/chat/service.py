"""Conversation gatekeeping and message flows for matches."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from app.api.pagination import encode_cursor
from app.domain.discovery.repo import ProfileRepository
from app.domain.matching import notifications
from app.domain.matching.exceptions import MatchForbidden, MatchInactive, MatchNotFound, UserBlocked
from app.domain.matching.repo import MatchingRepository
from app.obs import metrics as obs_metrics
from app.settings import settings

from . import policy
from .models import DEFAULT_MESSAGE_TYPE
from .repo import ChatRepository
from .schemas import MessageListResponse, MessageResponse

logger = logging.getLogger(__name__)


class ConversationService:
	def __init__(
		self,
		repository: ChatRepository | None = None,
		matches: MatchingRepository | None = None,
		profiles: ProfileRepository | None = None,
	) -> None:
		self._repo = repository or ChatRepository()
		self._matches = matches or MatchingRepository()
		self._profiles = profiles or ProfileRepository()

	async def send_message(
		self,
		match_id: str,
		sender_id: str,
		content: str,
		message_type: str = DEFAULT_MESSAGE_TYPE,
	) -> MessageResponse:
		"""Store a message from one participant of an active match with no block between them."""
		sender_id = str(sender_id)
		try:
			policy.ensure_content(content)
			match = policy.ensure_found(await self._matches.get_match(match_id))
			policy.ensure_participant(match, sender_id)
			policy.ensure_not_blocked(await self._matches.is_blocked(match.user1_id, match.user2_id))
			policy.ensure_active(match)
			message = await self._repo.create_message(
				match.id,
				sender_id,
				content,
				message_type or DEFAULT_MESSAGE_TYPE,
				datetime.now(timezone.utc),
			)
		except (MatchNotFound, MatchForbidden, UserBlocked, MatchInactive) as exc:
			obs_metrics.inc_message_reject(exc.reason)
			logger.info("message_rejected", extra={"match_id": str(match_id), "reason": exc.reason})
			raise
		except ValueError as exc:
			obs_metrics.inc_message_reject(str(exc))
			raise
		obs_metrics.inc_message_sent()
		logger.info("message_sent", extra={"match_id": match.id, "message_id": message.message_id})
		sender = await self._profiles.get_profile(sender_id)
		await notifications.notify_new_message(match, sender_id, sender_name=sender.first_name if sender else None)
		return MessageResponse.from_model(message)

	async def get_conversation_messages(
		self,
		match_id: str,
		requester_id: str,
		*,
		limit: Optional[int] = None,
		before: Optional[datetime] = None,
		before_id: Optional[str] = None,
	) -> MessageListResponse:
		"""One page of a match's history, oldest first.

		Readable by both participants even after the match was dissolved.
		`next_cursor` points at the next older page when there is one.
		"""
		match = policy.ensure_found(await self._matches.get_match(match_id))
		policy.ensure_participant(match, requester_id)
		limit = max(1, min(limit or settings.messages_default_limit, settings.messages_max_limit))
		if before is not None and before.tzinfo is None:
			before = before.replace(tzinfo=timezone.utc)
		rows = await self._repo.list_messages(match.id, before=before, before_id=before_id, limit=limit + 1)
		page = rows[:limit]
		next_cursor = None
		if len(rows) > limit and page:
			oldest = page[-1]
			next_cursor = encode_cursor(oldest.sent_at, oldest.message_id)
		items = [MessageResponse.from_model(message) for message in reversed(page)]
		return MessageListResponse(items=items, next_cursor=next_cursor)

	async def mark_read(self, match_id: str, reader_id: str) -> int:
		"""Mark the peer's unread messages as read; returns how many changed."""
		match = policy.ensure_found(await self._matches.get_match(match_id))
		policy.ensure_participant(match, reader_id)
		count = await self._repo.mark_read(match.id, str(reader_id))
		obs_metrics.inc_messages_read(count)
		return count


_SERVICE = ConversationService()


async def send_message(
	match_id: str,
	sender_id: str,
	content: str,
	message_type: str = DEFAULT_MESSAGE_TYPE,
) -> MessageResponse:
	return await _SERVICE.send_message(match_id, sender_id, content, message_type)


async def get_conversation_messages(
	match_id: str,
	requester_id: str,
	*,
	limit: Optional[int] = None,
	before: Optional[datetime] = None,
	before_id: Optional[str] = None,
) -> MessageListResponse:
	return await _SERVICE.get_conversation_messages(
		match_id,
		requester_id,
		limit=limit,
		before=before,
		before_id=before_id,
	)


async def mark_read(match_id: str, reader_id: str) -> int:
	return await _SERVICE.mark_read(match_id, reader_id)
