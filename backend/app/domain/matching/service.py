"""Swipe recording, mutual-match detection and match management."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from app.domain.chat import policy
from app.domain.discovery.repo import ProfileRepository
from app.obs import metrics as obs_metrics

from . import notifications
from .exceptions import BlockSelfError, SwipeConflict, SwipeSelfError, UserBlocked, UserNotFound
from .models import SwipeAction
from .repo import MatchingRepository
from .schemas import BlockResult, MatchListResponse, MatchSummary, SwipeResult

logger = logging.getLogger(__name__)


class MatchingService:
	def __init__(
		self,
		repository: MatchingRepository | None = None,
		profiles: ProfileRepository | None = None,
	) -> None:
		self._repo = repository or MatchingRepository()
		self._profiles = profiles or ProfileRepository()

	@property
	def repository(self) -> MatchingRepository:
		return self._repo

	async def record_swipe(
		self,
		actor_id: str,
		target_id: str,
		action: SwipeAction | str,
		*,
		now: Optional[datetime] = None,
	) -> SwipeResult:
		"""Record actor's swipe on target; a like answering the target's like creates the match.

		Raises SwipeSelfError, UserNotFound, UserBlocked when a block stands
		between the two, or SwipeConflict when the actor has already swiped on
		the target (whatever the action).
		"""
		action = SwipeAction(action)
		actor_id, target_id = str(actor_id), str(target_id)
		if actor_id == target_id:
			raise SwipeSelfError()
		profiles = await self._profiles.get_profiles([actor_id, target_id])
		if actor_id not in profiles or target_id not in profiles:
			raise UserNotFound()
		now = now or datetime.now(timezone.utc)
		try:
			outcome = await self._repo.record_swipe(actor_id, target_id, action, now)
		except SwipeConflict:
			obs_metrics.inc_swipe_conflict()
			logger.info("swipe_conflict", extra={"actor_id": actor_id, "target_id": target_id})
			raise
		except UserBlocked:
			logger.info("swipe_blocked", extra={"actor_id": actor_id, "target_id": target_id})
			raise
		obs_metrics.inc_swipe(action.value)
		match = outcome.match
		if match is not None:
			obs_metrics.inc_match_created()
			logger.info(
				"match_created",
				extra={"match_id": match.id, "user1_id": match.user1_id, "user2_id": match.user2_id},
			)
			first_names = {uid: profile.first_name for uid, profile in profiles.items()}
			await notifications.notify_new_match(match, first_names)
		return SwipeResult(
			swipe_id=outcome.swipe.id,
			is_match=match is not None,
			match_id=match.id if match else None,
		)

	async def list_matches(self, user_id: str, *, include_inactive: bool = False) -> MatchListResponse:
		matches = await self._repo.list_matches(str(user_id), include_inactive=include_inactive)
		peers = await self._profiles.get_profiles(m.peer_of(user_id) for m in matches)
		items = []
		for match in matches:
			peer = peers.get(match.peer_of(user_id) or "")
			items.append(
				MatchSummary.from_model(match, str(user_id), peer_first_name=peer.first_name if peer else None)
			)
		return MatchListResponse(items=items)

	async def unmatch(self, match_id: str, user_id: str) -> MatchSummary:
		"""Deactivate a match on behalf of one participant. Repeating it is a no-op."""
		match = policy.ensure_found(await self._repo.get_match(match_id))
		policy.ensure_participant(match, user_id)
		updated, changed = await self._repo.deactivate_match(match.id)
		match = policy.ensure_found(updated)
		if changed:
			obs_metrics.inc_unmatch()
			logger.info("match_deactivated", extra={"match_id": match.id, "actor_id": str(user_id)})
		peer = await self._profiles.get_profile(match.peer_of(user_id) or "")
		return MatchSummary.from_model(match, str(user_id), peer_first_name=peer.first_name if peer else None)

	async def block_user(self, blocker_id: str, blocked_id: str, *, now: Optional[datetime] = None) -> BlockResult:
		"""Block another user. Their active match, if any, is dissolved; repeating is a no-op."""
		blocker_id, blocked_id = str(blocker_id), str(blocked_id)
		if blocker_id == blocked_id:
			raise BlockSelfError()
		profiles = await self._profiles.get_profiles([blocker_id, blocked_id])
		if blocker_id not in profiles or blocked_id not in profiles:
			raise UserNotFound()
		outcome = await self._repo.block(blocker_id, blocked_id, now or datetime.now(timezone.utc))
		if outcome.created:
			obs_metrics.inc_block("block")
			logger.info("user_blocked", extra={"blocker_id": blocker_id, "blocked_id": blocked_id})
		dissolved = outcome.dissolved_match
		if dissolved is not None:
			obs_metrics.inc_unmatch()
			logger.info("match_deactivated", extra={"match_id": dissolved.id, "actor_id": blocker_id, "reason": "blocked"})
		return BlockResult(user_id=blocked_id, blocked=True, dissolved_match_id=dissolved.id if dissolved else None)

	async def unblock_user(self, blocker_id: str, blocked_id: str) -> BlockResult:
		"""Lift a block this user placed. A dissolved match stays dissolved."""
		blocker_id, blocked_id = str(blocker_id), str(blocked_id)
		if await self._repo.unblock(blocker_id, blocked_id):
			obs_metrics.inc_block("unblock")
			logger.info("user_unblocked", extra={"blocker_id": blocker_id, "blocked_id": blocked_id})
		return BlockResult(user_id=blocked_id, blocked=False)


_SERVICE = MatchingService()


def get_service() -> MatchingService:
	return _SERVICE


async def record_swipe(actor_id: str, target_id: str, action: SwipeAction | str) -> SwipeResult:
	return await _SERVICE.record_swipe(actor_id, target_id, action)


async def list_matches(user_id: str, *, include_inactive: bool = False) -> MatchListResponse:
	return await _SERVICE.list_matches(user_id, include_inactive=include_inactive)


async def unmatch(match_id: str, user_id: str) -> MatchSummary:
	return await _SERVICE.unmatch(match_id, user_id)


async def block_user(blocker_id: str, blocked_id: str) -> BlockResult:
	return await _SERVICE.block_user(blocker_id, blocked_id)


async def unblock_user(blocker_id: str, blocked_id: str) -> BlockResult:
	return await _SERVICE.unblock_user(blocker_id, blocked_id)
