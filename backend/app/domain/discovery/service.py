"""Discovery feed: filter, rank and page the candidates around a user."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from app.domain.matching.exceptions import UserNotFound
from app.domain.matching.repo import MatchingRepository
from app.obs import metrics as obs_metrics
from app.settings import settings

from .filters import eligible_candidates
from .ranking import paginate, rank_candidates
from .repo import ProfileRepository
from .schemas import DiscoveryCard, DiscoveryFeedResponse

logger = logging.getLogger(__name__)


def clamp_limit(limit: Optional[int]) -> int:
	if limit is None:
		return settings.discovery_default_limit
	return max(1, min(int(limit), settings.discovery_max_limit))


class DiscoveryService:
	def __init__(
		self,
		profiles: ProfileRepository | None = None,
		swipes: MatchingRepository | None = None,
	) -> None:
		self._profiles = profiles or ProfileRepository()
		self._swipes = swipes or MatchingRepository()

	async def get_feed(
		self,
		requester_id: str,
		*,
		limit: Optional[int] = None,
		offset: int = 0,
		now: Optional[datetime] = None,
	) -> DiscoveryFeedResponse:
		"""Return one page of eligible candidates, nearest first.

		Unknown requesters raise UserNotFound. A requester without a location or
		birth date gets an empty page flagged `incomplete_profile`.
		"""
		limit = clamp_limit(limit)
		offset = max(0, int(offset))
		requester = await self._profiles.get_profile(str(requester_id))
		if requester is None:
			raise UserNotFound()
		if not requester.is_discoverable():
			obs_metrics.inc_discovery_feed("incomplete")
			logger.info("discovery_feed_incomplete", extra={"requester_id": requester.user_id})
			return DiscoveryFeedResponse(items=[], limit=limit, offset=offset, incomplete_profile=True)
		today: date = (now or datetime.now(timezone.utc)).date()
		pool = await self._profiles.list_candidates(requester, today=today, limit=settings.discovery_pool_limit)
		swiped = await self._swipes.swiped_ids(requester.user_id)
		blocked = await self._swipes.blocked_ids(requester.user_id)
		eligible = eligible_candidates(requester, pool, swiped_ids=swiped, blocked_ids=blocked, today=today)
		ranked = rank_candidates(eligible)
		page = paginate(ranked, limit=limit, offset=offset)
		photos = await self._profiles.load_photos(c.user_id for c in page)
		items = [DiscoveryCard.from_candidate(c, photos=photos.get(c.user_id)) for c in page]
		obs_metrics.observe_discovery_candidates(len(ranked))
		obs_metrics.inc_discovery_feed("ok" if items else "empty")
		logger.info(
			"discovery_feed_served",
			extra={"requester_id": requester.user_id, "eligible": len(ranked), "returned": len(items), "offset": offset},
		)
		return DiscoveryFeedResponse(items=items, limit=limit, offset=offset)


_SERVICE = DiscoveryService()


async def get_discovery_feed(
	requester_id: str,
	*,
	limit: Optional[int] = None,
	offset: int = 0,
	now: Optional[datetime] = None,
) -> DiscoveryFeedResponse:
	return await _SERVICE.get_feed(requester_id, limit=limit, offset=offset, now=now)
