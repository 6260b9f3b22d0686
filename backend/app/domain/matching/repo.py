"""Swipe and match persistence, backed by asyncpg with an in-memory fallback."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple
from uuid import uuid4

from app.infra import postgres
from app.infra.postgres import as_uuid

from .exceptions import SwipeConflict, UserBlocked
from .models import BlockOutcome, Match, Swipe, SwipeAction, SwipeOutcome, canonical_pair, pair_key

_MATCH_COLUMNS = "id, user1_id, user2_id, matched_at, is_active"

_BLOCK_BETWEEN_SQL = """
SELECT 1 FROM user_blocks
WHERE (blocker_id = $1 AND blocked_id = $2) OR (blocker_id = $2 AND blocked_id = $1)
LIMIT 1
"""


class _InMemoryStore:
	"""Fallback store used in tests when Postgres is unavailable.

	Swipes and blocks serialize on one lock per unordered pair; a match's lock
	guards its active flag against concurrent message inserts.
	"""

	def __init__(self) -> None:
		self._swipes: Dict[Tuple[str, str], Swipe] = {}
		self._matches: Dict[str, Match] = {}
		self._pair_matches: Dict[Tuple[str, str], str] = {}
		self._pair_locks: Dict[Tuple[str, str], asyncio.Lock] = {}
		self._match_locks: Dict[str, asyncio.Lock] = {}
		self._blocks: Set[Tuple[str, str]] = set()

	def pair_lock(self, user_a: str, user_b: str) -> asyncio.Lock:
		return self._pair_locks.setdefault(canonical_pair(user_a, user_b), asyncio.Lock())

	def match_lock(self, match_id: str) -> asyncio.Lock:
		return self._match_locks.setdefault(str(match_id), asyncio.Lock())

	async def record_swipe(self, actor_id: str, target_id: str, action: SwipeAction, now: datetime) -> SwipeOutcome:
		async with self.pair_lock(actor_id, target_id):
			if self._blocked_between(actor_id, target_id):
				raise UserBlocked()
			if (actor_id, target_id) in self._swipes:
				raise SwipeConflict()
			swipe = Swipe(id=str(uuid4()), swiper_id=actor_id, swiped_id=target_id, action=action, created_at=now)
			self._swipes[(actor_id, target_id)] = swipe
			if action is not SwipeAction.LIKE:
				return SwipeOutcome(swipe=swipe)
			reverse = self._swipes.get((target_id, actor_id))
			pair = canonical_pair(actor_id, target_id)
			if reverse is None or reverse.action is not SwipeAction.LIKE or pair in self._pair_matches:
				return SwipeOutcome(swipe=swipe)
			match = Match(id=str(uuid4()), user1_id=pair[0], user2_id=pair[1], matched_at=now)
			self._matches[match.id] = match
			self._pair_matches[pair] = match.id
			return SwipeOutcome(swipe=swipe, match=match)

	async def swiped_ids(self, user_id: str) -> Set[str]:
		return {target for (swiper, target) in self._swipes if swiper == user_id}

	async def get_match(self, match_id: str) -> Optional[Match]:
		return self._matches.get(str(match_id))

	async def list_matches(self, user_id: str, *, include_inactive: bool) -> List[Match]:
		matches = [
			m
			for m in self._matches.values()
			if m.is_participant(user_id) and (include_inactive or m.is_active)
		]
		matches.sort(key=lambda m: (m.matched_at, m.id), reverse=True)
		return matches

	async def deactivate_match(self, match_id: str) -> Tuple[Optional[Match], bool]:
		async with self.match_lock(match_id):
			match = self._matches.get(str(match_id))
			if match is None or not match.is_active:
				return match, False
			match.is_active = False
			return match, True

	def _blocked_between(self, user_a: str, user_b: str) -> bool:
		return (user_a, user_b) in self._blocks or (user_b, user_a) in self._blocks

	async def block(self, blocker_id: str, blocked_id: str) -> BlockOutcome:
		async with self.pair_lock(blocker_id, blocked_id):
			created = (blocker_id, blocked_id) not in self._blocks
			self._blocks.add((blocker_id, blocked_id))
			match_id = self._pair_matches.get(canonical_pair(blocker_id, blocked_id))
			if match_id is None:
				return BlockOutcome(created=created)
			async with self.match_lock(match_id):
				match = self._matches[match_id]
				if not match.is_active:
					return BlockOutcome(created=created)
				match.is_active = False
				return BlockOutcome(created=created, dissolved_match=match)

	async def unblock(self, blocker_id: str, blocked_id: str) -> bool:
		async with self.pair_lock(blocker_id, blocked_id):
			if (blocker_id, blocked_id) not in self._blocks:
				return False
			self._blocks.discard((blocker_id, blocked_id))
			return True

	async def blocked_ids(self, user_id: str) -> Set[str]:
		outgoing = {blocked for (blocker, blocked) in self._blocks if blocker == user_id}
		incoming = {blocker for (blocker, blocked) in self._blocks if blocked == user_id}
		return outgoing | incoming

	async def is_blocked(self, user_a: str, user_b: str) -> bool:
		return self._blocked_between(user_a, user_b)

	def clear(self) -> None:
		self._swipes.clear()
		self._blocks.clear()
		self._matches.clear()
		self._pair_matches.clear()
		self._pair_locks.clear()
		self._match_locks.clear()


_MEMORY_STORE = _InMemoryStore()


def memory_store() -> _InMemoryStore:
	return _MEMORY_STORE


class MatchingRepository:
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

	async def record_swipe(self, actor_id: str, target_id: str, action: SwipeAction, now: datetime) -> SwipeOutcome:
		"""Persist a swipe and create the match when it completes a mutual like.

		Raises SwipeConflict when the actor already swiped on the target and
		UserBlocked when either user has blocked the other.
		"""
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.record_swipe(actor_id, target_id, action, now)
		actor, target = as_uuid(actor_id), as_uuid(target_id)
		async with pool.acquire() as conn:
			async with conn.transaction():
				# Both directions of a pair queue behind one lock for the rest of the transaction.
				await conn.execute("SELECT pg_advisory_xact_lock(hashtext($1))", pair_key(str(actor), str(target)))
				if await conn.fetchval(_BLOCK_BETWEEN_SQL, actor, target):
					raise UserBlocked()
				row = await conn.fetchrow(
					"""
					INSERT INTO swipes (swiper_id, swiped_id, action, created_at)
					VALUES ($1, $2, $3::swipe_action, $4)
					ON CONFLICT (swiper_id, swiped_id) DO NOTHING
					RETURNING id, swiper_id, swiped_id, action::text AS action, created_at
					""",
					actor,
					target,
					action.value,
					now,
				)
				if row is None:
					raise SwipeConflict()
				swipe = Swipe.from_record(row)
				if action is not SwipeAction.LIKE:
					return SwipeOutcome(swipe=swipe)
				reciprocal = await conn.fetchval(
					"""
					SELECT 1 FROM swipes
					WHERE swiper_id = $1 AND swiped_id = $2 AND action = 'like'
					""",
					target,
					actor,
				)
				if not reciprocal:
					return SwipeOutcome(swipe=swipe)
				user1, user2 = canonical_pair(str(actor), str(target))
				match_row = await conn.fetchrow(
					f"""
					INSERT INTO matches (user1_id, user2_id, matched_at, is_active)
					VALUES ($1, $2, $3, TRUE)
					ON CONFLICT (user1_id, user2_id) DO NOTHING
					RETURNING {_MATCH_COLUMNS}
					""",
					as_uuid(user1),
					as_uuid(user2),
					now,
				)
		match = Match.from_record(match_row) if match_row else None
		return SwipeOutcome(swipe=swipe, match=match)

	async def swiped_ids(self, user_id: str) -> Set[str]:
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.swiped_ids(user_id)
		uid = as_uuid(user_id)
		if uid is None:
			return set()
		async with pool.acquire() as conn:
			rows = await conn.fetch("SELECT swiped_id FROM swipes WHERE swiper_id = $1", uid)
		return {str(row["swiped_id"]) for row in rows}

	async def get_match(self, match_id: str) -> Optional[Match]:
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.get_match(match_id)
		mid = as_uuid(match_id)
		if mid is None:
			return None
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_MATCH_COLUMNS} FROM matches WHERE id = $1", mid)
		return Match.from_record(row) if row else None

	async def list_matches(self, user_id: str, *, include_inactive: bool = False) -> List[Match]:
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.list_matches(user_id, include_inactive=include_inactive)
		uid = as_uuid(user_id)
		if uid is None:
			return []
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_MATCH_COLUMNS}
				FROM matches
				WHERE (user1_id = $1 OR user2_id = $1)
				  AND ($2::boolean OR is_active)
				ORDER BY matched_at DESC, id DESC
				""",
				uid,
				include_inactive,
			)
		return [Match.from_record(row) for row in rows]

	async def deactivate_match(self, match_id: str) -> Tuple[Optional[Match], bool]:
		"""Flip a match to inactive. Returns (match, changed); match is None when unknown."""
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.deactivate_match(match_id)
		mid = as_uuid(match_id)
		if mid is None:
			return None, False
		async with pool.acquire() as conn:
			async with conn.transaction():
				row = await conn.fetchrow(
					f"""
					UPDATE matches SET is_active = FALSE
					WHERE id = $1 AND is_active
					RETURNING {_MATCH_COLUMNS}
					""",
					mid,
				)
				if row is not None:
					return Match.from_record(row), True
				row = await conn.fetchrow(f"SELECT {_MATCH_COLUMNS} FROM matches WHERE id = $1", mid)
		return (Match.from_record(row) if row else None), False

	async def block(self, blocker_id: str, blocked_id: str, now: datetime) -> BlockOutcome:
		"""Record a block and dissolve the pair's active match in the same transaction.

		Takes the pair's advisory lock, so a mutual like racing the block either
		lands first (and its match is dissolved here) or sees the block.
		"""
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.block(blocker_id, blocked_id)
		blocker, blocked = as_uuid(blocker_id), as_uuid(blocked_id)
		user1, user2 = canonical_pair(str(blocker), str(blocked))
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute("SELECT pg_advisory_xact_lock(hashtext($1))", pair_key(str(blocker), str(blocked)))
				created = await conn.fetchval(
					"""
					INSERT INTO user_blocks (blocker_id, blocked_id, created_at)
					VALUES ($1, $2, $3)
					ON CONFLICT (blocker_id, blocked_id) DO NOTHING
					RETURNING TRUE
					""",
					blocker,
					blocked,
					now,
				)
				row = await conn.fetchrow(
					f"""
					UPDATE matches SET is_active = FALSE
					WHERE user1_id = $1 AND user2_id = $2 AND is_active
					RETURNING {_MATCH_COLUMNS}
					""",
					as_uuid(user1),
					as_uuid(user2),
				)
		return BlockOutcome(created=bool(created), dissolved_match=Match.from_record(row) if row else None)

	async def unblock(self, blocker_id: str, blocked_id: str) -> bool:
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.unblock(blocker_id, blocked_id)
		async with pool.acquire() as conn:
			status = await conn.execute(
				"DELETE FROM user_blocks WHERE blocker_id = $1 AND blocked_id = $2",
				as_uuid(blocker_id),
				as_uuid(blocked_id),
			)
		# "DELETE n"
		return int(status.split()[-1]) > 0

	async def blocked_ids(self, user_id: str) -> Set[str]:
		"""Users on either side of a block with `user_id`."""
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.blocked_ids(user_id)
		uid = as_uuid(user_id)
		if uid is None:
			return set()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT blocked_id AS other_id FROM user_blocks WHERE blocker_id = $1
				UNION
				SELECT blocker_id AS other_id FROM user_blocks WHERE blocked_id = $1
				""",
				uid,
			)
		return {str(row["other_id"]) for row in rows}

	async def is_blocked(self, user_a: str, user_b: str) -> bool:
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.is_blocked(str(user_a), str(user_b))
		a, b = as_uuid(user_a), as_uuid(user_b)
		if a is None or b is None:
			return False
		async with pool.acquire() as conn:
			return bool(await conn.fetchval(_BLOCK_BETWEEN_SQL, a, b))
