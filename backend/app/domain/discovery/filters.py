"""Candidate filter for the discovery feed.

Pure functions: the caller supplies the requester, the candidate pool and the
ids the requester has already swiped on or is blocked with. No I/O happens
here.
"""

from __future__ import annotations

from datetime import date
from typing import AbstractSet, Iterable, List, Optional, Tuple

from .models import Candidate, UserProfile


def age_on(birth_date: date, today: date) -> int:
	"""Whole years between birth_date and today (birthday not yet reached counts one less)."""
	before_birthday = (today.month, today.day) < (birth_date.month, birth_date.day)
	return today.year - birth_date.year - int(before_birthday)


def _years_before(today: date, years: int) -> date:
	try:
		return today.replace(year=today.year - years)
	except ValueError:
		# Feb 29 on a non-leap target year
		return today.replace(year=today.year - years, day=28)


def birth_date_bounds(today: date, age_min: int, age_max: int) -> Tuple[date, date]:
	"""(earliest, latest) birth-date window covering ages in [age_min, age_max].

	The window may admit one extra day at the old end; it only narrows SQL
	candidate queries and `evaluate` stays the authority.
	"""
	latest = _years_before(today, age_min)
	earliest = _years_before(today, age_max + 1)
	return earliest, latest


def matches_gender(requester: UserProfile, candidate: UserProfile) -> bool:
	wanted = requester.preferences.wanted_gender
	if wanted is None:
		return True
	return (candidate.gender or "").strip().lower() == wanted


def evaluate(requester: UserProfile, candidate: UserProfile, *, today: date) -> Optional[Candidate]:
	"""Return the annotated candidate when it passes age, distance and gender rules."""
	origin = requester.location
	target = candidate.location
	if origin is None or target is None or candidate.birth_date is None:
		return None
	prefs = requester.preferences
	age = age_on(candidate.birth_date, today)
	if age < prefs.age_min or age > prefs.age_max:
		return None
	distance_km = origin.distance_to(target)
	if distance_km > prefs.max_distance_km:
		return None
	if not matches_gender(requester, candidate):
		return None
	return Candidate(profile=candidate, distance_km=distance_km, age=age)


def eligible_candidates(
	requester: UserProfile,
	pool: Iterable[UserProfile],
	*,
	swiped_ids: AbstractSet[str],
	today: date,
	blocked_ids: AbstractSet[str] = frozenset(),
) -> List[Candidate]:
	"""Filter `pool` down to the profiles eligible for the requester's feed.

	A requester without a location or birth date gets nothing back. Only the
	requester's own outgoing swipes exclude a candidate; someone who swiped on
	the requester stays visible until the requester answers. A block in either
	direction hides both users from each other.
	"""
	if not requester.is_discoverable():
		return []
	results: List[Candidate] = []
	for profile in pool:
		if profile.user_id == requester.user_id or profile.user_id in swiped_ids:
			continue
		if profile.user_id in blocked_ids:
			continue
		candidate = evaluate(requester, profile, today=today)
		if candidate is not None:
			results.append(candidate)
	return results
