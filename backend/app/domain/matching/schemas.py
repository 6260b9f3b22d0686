"""Pydantic schemas for swipes and matches."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import Match, SwipeAction


class SwipeRequest(BaseModel):
	target_id: str = Field(..., min_length=1, description="User being swiped on")
	action: SwipeAction


class SwipeResult(BaseModel):
	swipe_id: str
	is_match: bool = False
	match_id: Optional[str] = None


class MatchSummary(BaseModel):
	match_id: str
	peer_id: str
	peer_first_name: Optional[str] = None
	matched_at: datetime
	is_active: bool

	@classmethod
	def from_model(cls, match: Match, viewer_id: str, *, peer_first_name: Optional[str] = None) -> "MatchSummary":
		return cls(
			match_id=match.id,
			peer_id=match.peer_of(viewer_id) or "",
			peer_first_name=peer_first_name,
			matched_at=match.matched_at,
			is_active=match.is_active,
		)


class MatchListResponse(BaseModel):
	items: List[MatchSummary] = Field(default_factory=list)


class BlockRequest(BaseModel):
	user_id: str = Field(..., min_length=1, description="User to block")


class BlockResult(BaseModel):
	user_id: str
	blocked: bool
	dissolved_match_id: Optional[str] = None
