"""Read access to user profiles for discovery, backed by asyncpg with an in-memory fallback."""

from __future__ import annotations

import asyncio
import math
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional

from app.infra import postgres
from app.infra.postgres import as_uuid

from .filters import birth_date_bounds
from .geo import EARTH_RADIUS_KM
from .models import UserProfile

_KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180

_PROFILE_COLUMNS = """
	u.id, u.first_name, u.birth_date, u.gender::text AS gender, u.bio,
	u.latitude, u.longitude, u.max_distance, u.age_min, u.age_max, u.show_me, u.is_verified
"""


class _InMemoryStore:
	"""Fallback store used in tests when Postgres is unavailable."""

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._profiles: Dict[str, UserProfile] = {}
		self._photos: Dict[str, List[str]] = defaultdict(list)

	async def upsert_profile(self, profile: UserProfile) -> None:
		async with self._lock:
			self._profiles[profile.user_id] = profile

	async def add_photo(self, user_id: str, url: str, *, primary: bool = False) -> None:
		async with self._lock:
			photos = self._photos[user_id]
			if primary:
				photos.insert(0, url)
			else:
				photos.append(url)

	async def get_profile(self, user_id: str) -> Optional[UserProfile]:
		async with self._lock:
			return self._profiles.get(user_id)

	async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
		async with self._lock:
			return {uid: self._profiles[uid] for uid in user_ids if uid in self._profiles}

	async def list_candidates(self, requester: UserProfile) -> List[UserProfile]:
		async with self._lock:
			return [p for uid, p in self._profiles.items() if uid != requester.user_id]

	async def load_photos(self, user_ids: Iterable[str]) -> Dict[str, List[str]]:
		async with self._lock:
			return {uid: list(self._photos[uid]) for uid in user_ids if self._photos.get(uid)}

	def clear(self) -> None:
		self._profiles.clear()
		self._photos.clear()


_MEMORY_STORE = _InMemoryStore()


def memory_store() -> _InMemoryStore:
	return _MEMORY_STORE


class ProfileRepository:
	"""Profile store used by discovery and matching. The core never writes profiles."""

	def __init__(self) -> None:
		self._pool_checked = False
		self._pool = None

	async def _pool_or_none(self):
		if self._pool_checked:
			return self._pool
		self._pool_checked = True
		self._pool = await postgres.pool_or_none()
		return self._pool

	async def get_profile(self, user_id: str) -> Optional[UserProfile]:
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.get_profile(user_id)
		uid = as_uuid(user_id)
		if uid is None:
			return None
		async with pool.acquire() as conn:
			row = await conn.fetchrow(f"SELECT {_PROFILE_COLUMNS} FROM users u WHERE u.id = $1", uid)
		return UserProfile.from_record(row) if row else None

	async def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, UserProfile]:
		ids = list(dict.fromkeys(str(uid) for uid in user_ids))
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.get_profiles(ids)
		uuids = [u for u in (as_uuid(uid) for uid in ids) if u is not None]
		if not uuids:
			return {}
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"SELECT {_PROFILE_COLUMNS} FROM users u WHERE u.id = ANY($1::uuid[])",
				uuids,
			)
		profiles = [UserProfile.from_record(row) for row in rows]
		return {p.user_id: p for p in profiles}

	async def list_candidates(self, requester: UserProfile, *, today: date, limit: int) -> List[UserProfile]:
		"""Return a pre-filtered candidate pool for `requester`, nearest first.

		The SQL narrows by latitude band, birth-date window, gender, prior
		outgoing swipes and blocks in either direction; the discovery filter
		re-checks every rule exactly. The distance ordering wraps longitude so
		users across the antimeridian rank by their real offset.
		"""
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.list_candidates(requester)
		origin = requester.location
		if origin is None:
			return []
		prefs = requester.preferences
		lat_span = prefs.max_distance_km / _KM_PER_DEGREE
		lat_low = max(-90.0, origin.lat - lat_span)
		lat_high = min(90.0, origin.lat + lat_span)
		earliest, latest = birth_date_bounds(today, prefs.age_min, prefs.age_max)
		lon_scale = max(math.cos(math.radians(origin.lat)), 0.01)
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT {_PROFILE_COLUMNS}
				FROM users u
				WHERE u.id <> $1
				  AND u.latitude BETWEEN $2 AND $3
				  AND u.longitude IS NOT NULL
				  AND u.birth_date BETWEEN $4 AND $5
				  AND ($6::text IS NULL OR u.gender::text = $6)
				  AND NOT EXISTS (
					SELECT 1 FROM swipes s WHERE s.swiper_id = $1 AND s.swiped_id = u.id
				  )
				  AND NOT EXISTS (
					SELECT 1 FROM user_blocks b
					WHERE (b.blocker_id = $1 AND b.blocked_id = u.id)
					   OR (b.blocker_id = u.id AND b.blocked_id = $1)
				  )
				ORDER BY
					power(u.latitude - $7, 2)
					+ power(((u.longitude - $8 + 540.0)::numeric % 360 - 180)::double precision * $9, 2),
					u.id
				LIMIT $10
				""",
				as_uuid(requester.user_id),
				lat_low,
				lat_high,
				earliest,
				latest,
				prefs.wanted_gender,
				origin.lat,
				origin.lon,
				lon_scale,
				limit,
			)
		return [UserProfile.from_record(row) for row in rows]

	async def load_photos(self, user_ids: Iterable[str]) -> Dict[str, List[str]]:
		"""Photo URLs per user, primary photo first."""
		ids = list(user_ids)
		if not ids:
			return {}
		pool = await self._pool_or_none()
		if pool is None:
			return await _MEMORY_STORE.load_photos(ids)
		uuids = [u for u in (as_uuid(uid) for uid in ids) if u is not None]
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT user_id, photo_url
				FROM profile_photos
				WHERE user_id = ANY($1::uuid[])
				ORDER BY user_id, is_primary DESC, order_index ASC, created_at ASC
				""",
				uuids,
			)
		photos: Dict[str, List[str]] = defaultdict(list)
		for row in rows:
			photos[str(row["user_id"])].append(row["photo_url"])
		return dict(photos)
