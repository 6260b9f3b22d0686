"""Liveness and readiness checks.

Readiness needs Postgres with the matching schema in place. Redis only feeds
the notification stream, which is best-effort, so an unreachable Redis marks
the service degraded without taking it out of rotation.
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Tuple

import asyncpg
from redis.exceptions import RedisError

from app.infra import postgres
from app.infra.redis import redis_client
from app.obs import metrics
from app.settings import settings

LOGGER = logging.getLogger(__name__)

REQUIRED_TABLES = ("users", "profile_photos", "swipes", "matches", "messages", "user_blocks", "schema_migrations")


def _elapsed_ms(start: float) -> float:
	return round((perf_counter() - start) * 1000, 2)


async def _redis_check(timeout: float = 0.2) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=timeout)
	except (RedisError, OSError, asyncio.TimeoutError) as exc:
		metrics.mark_redis(False)
		LOGGER.warning("readiness_redis_failed", extra={"error": str(exc) or type(exc).__name__})
		return {"ok": False, "error": str(exc) or type(exc).__name__}
	metrics.mark_redis(True, latency_seconds=perf_counter() - start)
	return {"ok": True, "latency_ms": _elapsed_ms(start)}


async def _database_checks(timeout: float = 0.5) -> Tuple[Dict[str, Any], Dict[str, Any]]:
	"""(postgres, schema) checks: connectivity, then the matching tables and migration level."""
	pool = await postgres.pool_or_none()
	if pool is None:
		metrics.mark_postgres(False)
		return {"ok": False, "error": "pool_unavailable"}, {"ok": False, "error": "pool_unavailable"}
	start = perf_counter()
	try:
		async with pool.acquire() as conn:
			rows = await asyncio.wait_for(
				conn.fetch(
					"SELECT name, to_regclass(name) IS NOT NULL AS present FROM unnest($1::text[]) AS name",
					list(REQUIRED_TABLES),
				),
				timeout=timeout,
			)
			missing = [row["name"] for row in rows if not row["present"]]
			version = None
			if "schema_migrations" not in missing:
				version = await asyncio.wait_for(
					conn.fetchval("SELECT max(version) FROM schema_migrations"),
					timeout=timeout,
				)
	except (asyncpg.PostgresError, OSError, asyncio.TimeoutError) as exc:
		metrics.mark_postgres(False)
		LOGGER.warning("readiness_postgres_failed", extra={"error": str(exc) or type(exc).__name__})
		return {"ok": False, "error": str(exc) or type(exc).__name__}, {"ok": False, "error": "unchecked"}
	metrics.mark_postgres(True, latency_seconds=perf_counter() - start)
	required = settings.health_min_migration
	current = str(version) if version is not None else None
	schema = {
		"ok": not missing and current is not None and current >= required,
		"missing_tables": missing,
		"version": current,
		"required": required,
	}
	return {"ok": True, "latency_ms": _elapsed_ms(start)}, schema


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	postgres_state, schema_state = await _database_checks()
	redis_state = await _redis_check()
	ready = postgres_state["ok"] and schema_state["ok"]
	if not ready:
		status = "unavailable"
	elif not redis_state["ok"]:
		status = "degraded"
	else:
		status = "ok"
	return (
		200 if ready else 503,
		{
			"status": status,
			"checks": {"postgres": postgres_state, "schema": schema_state, "redis": redis_state},
		},
	)
