"""Guard checks for match conversations."""

from __future__ import annotations

from typing import Optional

from app.domain.matching.exceptions import MatchForbidden, MatchInactive, MatchNotFound, UserBlocked
from app.domain.matching.models import Match


def ensure_found(match: Optional[Match]) -> Match:
	if match is None:
		raise MatchNotFound()
	return match


def ensure_participant(match: Match, user_id: str) -> None:
	if not match.is_participant(user_id):
		raise MatchForbidden()


def ensure_not_blocked(blocked: bool) -> None:
	if blocked:
		raise UserBlocked()


def ensure_active(match: Match) -> None:
	if not match.is_active:
		raise MatchInactive()


def ensure_content(content: str) -> None:
	if not (content or "").strip():
		raise ValueError("empty_message")
