"""Ordering and paging for discovery candidates."""

from __future__ import annotations

from typing import List, Sequence, TypeVar

from .models import Candidate

T = TypeVar("T")


def rank_candidates(candidates: Sequence[Candidate]) -> List[Candidate]:
	"""Closest first; equal distances fall back to the user id so pages are stable."""
	return sorted(candidates, key=lambda c: (c.distance_km, c.user_id))


def paginate(items: Sequence[T], *, limit: int, offset: int) -> List[T]:
	if limit <= 0 or offset < 0:
		return []
	return list(items[offset : offset + limit])
