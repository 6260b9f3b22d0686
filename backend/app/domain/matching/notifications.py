"""Hand-off of match and message notifications to the dispatcher stream.

Delivery (push, email, in-app) belongs to whatever consumes the stream. Any
failure here is logged and counted, never raised to the caller, and each
hand-off is bounded by `notifications_timeout_seconds`.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from redis.exceptions import RedisError

from app.infra.redis import redis_client
from app.obs import metrics as obs_metrics
from app.settings import settings

from .models import Match

logger = logging.getLogger(__name__)

NEW_MATCH = "new_match"
NEW_MESSAGE = "new_message"


async def dispatch(
	kind: str,
	user_id: str,
	*,
	related_id: str,
	title: str,
	message: str,
) -> bool:
	"""Append one notification event to the stream. Returns False when it could not be queued."""
	fields: dict[str, Any] = {
		"kind": kind,
		"user_id": str(user_id),
		"related_id": str(related_id),
		"title": title,
		"message": message,
		"created_at": datetime.now(timezone.utc).isoformat(),
	}
	try:
		await asyncio.wait_for(
			redis_client.xadd_capped(
				settings.notifications_stream,
				fields,
				maxlen=settings.notifications_stream_maxlen,
			),
			timeout=settings.notifications_timeout_seconds,
		)
	except asyncio.TimeoutError:
		obs_metrics.inc_notification_failure(kind)
		logger.warning(
			"notification_dispatch_failed",
			extra={"kind": kind, "recipient_id": str(user_id), "related_id": str(related_id), "error": "timeout"},
		)
		return False
	except (RedisError, OSError) as exc:
		obs_metrics.inc_notification_failure(kind)
		logger.warning(
			"notification_dispatch_failed",
			extra={"kind": kind, "recipient_id": str(user_id), "related_id": str(related_id), "error": str(exc)},
		)
		return False
	return True


async def notify_new_match(match: Match, first_names: dict[str, Optional[str]]) -> None:
	sends = []
	for user_id in match.participants():
		peer_id = match.peer_of(user_id)
		peer_name = first_names.get(peer_id or "") or "someone"
		sends.append(
			dispatch(
				NEW_MATCH,
				user_id,
				related_id=match.id,
				title="It's a match!",
				message=f"You and {peer_name} liked each other.",
			)
		)
	await asyncio.gather(*sends)


async def notify_new_message(match: Match, sender_id: str, *, sender_name: Optional[str] = None) -> None:
	recipient_id = match.peer_of(sender_id)
	if recipient_id is None:
		return
	await dispatch(
		NEW_MESSAGE,
		recipient_id,
		related_id=match.id,
		title="New message",
		message=f"{sender_name or 'Your match'} sent you a message.",
	)
