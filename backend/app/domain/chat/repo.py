"""Message persistence for match conversations, backed by asyncpg with an in-memory fallback."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

import ulid

from app.domain.matching import repo as matching_repo
from app.domain.matching.exceptions import MatchInactive, MatchNotFound
from app.infra import postgres
from app.infra.postgres import as_uuid

from .models import Message

_MESSAGE_COLUMNS = "id, match_id, sender_id, content, message_type, is_read, sent_at"


def _older_than(message: Message, before: Optional[datetime], before_id: Optional[str]) -> bool:
	if before is None:
		return True
	if before_id is None:
		return message.sent_at < before
	return (message.sent_at, message.message_id) < (before, before_id)


class _InMemoryStore:
	"""Fallback store used in tests when Postgres is unavailable."""

	def __init__(self) -> None:
		self._messages: Dict[str, List[Message]] = {}

	async def create_message(
		self,
		match_id: str,
		sender_id: str,
		content: str,
		message_type: str,
		sent_at: datetime,
	) -> Message:
		matches = matching_repo.memory_store()
		# Same lock as unmatch, so the active check and the append cannot interleave with it.
		async with matches.match_lock(match_id):
			match = await matches.get_match(match_id)
			if match is None:
				raise MatchNotFound()
			if not match.is_active:
				raise MatchInactive()
			message = Message(
				message_id=str(ulid.new()),
				match_id=str(match_id),
				sender_id=str(sender_id),
				content=content,
				sent_at=sent_at,
				message_type=message_type,
			)
			self._messages.setdefault(str(match_id), []).append(message)
			return message

	async def list_messages(
		self,
		match_id: str,
		*,
		before: Optional[datetime],
		before_id: Optional[str],
		limit: int,
	) -> List[Message]:
		messages = [m for m in self._messages.get(str(match_id), []) if _older_than(m, before, before_id)]
		messages.sort(key=lambda m: (m.sent_at, m.message_id), reverse=True)
		return messages[:limit]

	async def mark_read(self, match_id: str, reader_id: str) -> int:
		count = 0
		for message in self._messages.get(str(match_id), []):
			if message.sender_id != str(reader_id) and not message.is_read:
				message.is_read = True
				count += 1
		return count

	def clear(self) -> None:
		self._messages.clear()


_MEMORY_STORE = _InMemoryStore()


def memory_store() -> _InMemoryStore:
	return _MEMORY_STORE


class ChatRepository:
	"""Repository backed by asyncpg with an in-memory fallback."""

	def __init__(self) -> None:
		self._pool_checked = False
		self._pool = None

	async def _pool_or_none(self):
		if self._pool_checked:
			return self._pool
		self._pool_checked = True
		self._pool = await postgres.pool_or_none()
		return self._pool

	async def create_message(
		self,
		match_id: str,
		sender_id: str,
		content: str,
		message_type: str,
		sent_at: datetime,
	) -> Message:
		"""Insert a message while the match is active.

		The match row is share-locked for the insert so a concurrent unmatch
		either lands first (MatchInactive) or waits for the insert to commit.
		"""
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.create_message(match_id, sender_id, content, message_type, sent_at)
		mid = as_uuid(match_id)
		if mid is None:
			raise MatchNotFound()
		async with pool.acquire() as conn:
			async with conn.transaction():
				is_active = await conn.fetchval("SELECT is_active FROM matches WHERE id = $1 FOR SHARE", mid)
				if is_active is None:
					raise MatchNotFound()
				if not is_active:
					raise MatchInactive()
				row = await conn.fetchrow(
					f"""
					INSERT INTO messages (id, match_id, sender_id, content, message_type, sent_at)
					VALUES ($1, $2, $3, $4, $5, $6)
					RETURNING {_MESSAGE_COLUMNS}
					""",
					str(ulid.new()),
					mid,
					as_uuid(sender_id),
					content,
					message_type,
					sent_at,
				)
		return Message.from_record(row)

	async def list_messages(
		self,
		match_id: str,
		*,
		before: Optional[datetime] = None,
		before_id: Optional[str] = None,
		limit: int,
	) -> List[Message]:
		"""Newest-first page of messages older than the (before, before_id) keyset."""
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.list_messages(match_id, before=before, before_id=before_id, limit=limit)
		mid = as_uuid(match_id)
		if mid is None:
			return []
		async with pool.acquire() as conn:
			if before is None:
				rows = await conn.fetch(
					f"""
					SELECT {_MESSAGE_COLUMNS} FROM messages
					WHERE match_id = $1
					ORDER BY sent_at DESC, id DESC
					LIMIT $2
					""",
					mid,
					limit,
				)
			elif before_id is None:
				rows = await conn.fetch(
					f"""
					SELECT {_MESSAGE_COLUMNS} FROM messages
					WHERE match_id = $1 AND sent_at < $2
					ORDER BY sent_at DESC, id DESC
					LIMIT $3
					""",
					mid,
					before,
					limit,
				)
			else:
				rows = await conn.fetch(
					f"""
					SELECT {_MESSAGE_COLUMNS} FROM messages
					WHERE match_id = $1 AND (sent_at, id) < ($2, $3)
					ORDER BY sent_at DESC, id DESC
					LIMIT $4
					""",
					mid,
					before,
					before_id,
					limit,
				)
		return [Message.from_record(row) for row in rows]

	async def mark_read(self, match_id: str, reader_id: str) -> int:
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.mark_read(match_id, reader_id)
		mid = as_uuid(match_id)
		if mid is None:
			return 0
		async with pool.acquire() as conn:
			status = await conn.execute(
				"""
				UPDATE messages SET is_read = TRUE
				WHERE match_id = $1 AND sender_id <> $2 AND NOT is_read
				""",
				mid,
				as_uuid(reader_id),
			)
		# asyncpg returns the command tag, e.g. "UPDATE 3"
		return int(status.split()[-1])
