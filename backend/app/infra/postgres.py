"""AsyncPG pool management for the backend."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import asyncpg

from app.settings import settings

_pool: Optional[asyncpg.pool.Pool] = None


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		# Force 127.0.0.1 instead of localhost to avoid IPv6 resolution issues
		dsn = settings.postgres_url.replace("localhost", "127.0.0.1")
		_pool = await asyncpg.create_pool(
			dsn=dsn,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl="require" if settings.postgres_ssl else "disable",
		)
	return _pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	assert _pool is not None
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None


async def pool_or_none() -> Optional[asyncpg.pool.Pool]:
	"""Return the shared pool, or None when Postgres is not configured/reachable.

	Repositories use this to decide between SQL and their in-memory stores.
	"""
	try:
		return await get_pool()
	except AssertionError:
		return None
	except (OSError, asyncpg.PostgresError):
		return None


def as_uuid(value: object) -> Optional[UUID]:
	"""Parse an id for a UUID column; None when it cannot be one (so lookups miss instead of erroring)."""
	if isinstance(value, UUID):
		return value
	try:
		return UUID(str(value))
	except (TypeError, ValueError):
		return None
