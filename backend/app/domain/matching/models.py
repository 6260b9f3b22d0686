"""Domain models for swipes and matches."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


class SwipeAction(str, Enum):
	LIKE = "like"
	PASS = "pass"


def canonical_pair(user_a: str, user_b: str) -> Tuple[str, str]:
	"""Order two user ids so the smaller one comes first (matches are stored this way)."""
	a, b = str(user_a), str(user_b)
	return (a, b) if a < b else (b, a)


def pair_key(user_a: str, user_b: str) -> str:
	first, second = canonical_pair(user_a, user_b)
	return f"{first}:{second}"


@dataclass(slots=True)
class Swipe:
	id: str
	swiper_id: str
	swiped_id: str
	action: SwipeAction
	created_at: datetime

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Swipe":
		return cls(
			id=str(record["id"]),
			swiper_id=str(record["swiper_id"]),
			swiped_id=str(record["swiped_id"]),
			action=SwipeAction(str(record["action"])),
			created_at=record["created_at"],
		)


@dataclass(slots=True)
class Match:
	"""A mutual like between two users, stored on the canonical pair."""

	id: str
	user1_id: str
	user2_id: str
	matched_at: datetime
	is_active: bool = True

	def participants(self) -> Tuple[str, str]:
		return (self.user1_id, self.user2_id)

	def is_participant(self, user_id: str) -> bool:
		return str(user_id) in self.participants()

	def peer_of(self, user_id: str) -> Optional[str]:
		user_id = str(user_id)
		if user_id == self.user1_id:
			return self.user2_id
		if user_id == self.user2_id:
			return self.user1_id
		return None

	@classmethod
	def from_record(cls, record: Mapping[str, Any]) -> "Match":
		return cls(
			id=str(record["id"]),
			user1_id=str(record["user1_id"]),
			user2_id=str(record["user2_id"]),
			matched_at=record["matched_at"],
			is_active=bool(record["is_active"]),
		)


@dataclass(slots=True)
class SwipeOutcome:
	swipe: Swipe
	match: Optional[Match] = None


@dataclass(slots=True)
class BlockOutcome:
	"""Result of a block: whether it was new, and the match it dissolved, if any."""

	created: bool
	dissolved_match: Optional[Match] = None
