"""Schemas for the discovery feed."""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, Field

from .models import Candidate


class DiscoveryCard(BaseModel):
	user_id: str
	first_name: Optional[str] = None
	age: int
	bio: Optional[str] = None
	distance_km: float = Field(..., ge=0, description="Great-circle distance, one decimal place")
	photos: list[str] = Field(default_factory=list)

	@classmethod
	def from_candidate(cls, candidate: Candidate, *, photos: Iterable[str] | None = None) -> "DiscoveryCard":
		profile = candidate.profile
		return cls(
			user_id=profile.user_id,
			first_name=profile.first_name,
			age=candidate.age,
			bio=profile.bio,
			distance_km=round(candidate.distance_km, 1),
			photos=list(photos or []),
		)


class DiscoveryFeedResponse(BaseModel):
	items: list[DiscoveryCard] = Field(default_factory=list)
	limit: int
	offset: int
	incomplete_profile: bool = Field(
		default=False,
		description="True when the requester has no location or birth date yet",
	)
