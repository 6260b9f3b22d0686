"""Domain models for discovery profiles and feed candidates."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from .geo import GeoPoint

DEFAULT_MAX_DISTANCE_KM = 50
DEFAULT_AGE_MIN = 18
DEFAULT_AGE_MAX = 100
DEFAULT_SHOW_ME = "everyone"

GENDERS = ("male", "female", "non_binary", "other")
# show_me values that narrow the feed, mapped to the gender they admit.
SHOW_ME_GENDERS = {"men": "male", "women": "female"}


@dataclass(frozen=True, slots=True)
class DiscoveryPreferences:
	max_distance_km: float = DEFAULT_MAX_DISTANCE_KM
	age_min: int = DEFAULT_AGE_MIN
	age_max: int = DEFAULT_AGE_MAX
	show_me: str = DEFAULT_SHOW_ME

	@classmethod
	def resolve(
		cls,
		*,
		max_distance_km: Optional[float] = None,
		age_min: Optional[int] = None,
		age_max: Optional[int] = None,
		show_me: Optional[str] = None,
	) -> "DiscoveryPreferences":
		"""Build preferences, substituting defaults for unset values."""
		return cls(
			max_distance_km=DEFAULT_MAX_DISTANCE_KM if max_distance_km is None else max_distance_km,
			age_min=DEFAULT_AGE_MIN if age_min is None else age_min,
			age_max=DEFAULT_AGE_MAX if age_max is None else age_max,
			show_me=(show_me or DEFAULT_SHOW_ME).strip().lower(),
		)

	@property
	def wanted_gender(self) -> Optional[str]:
		"""Gender admitted by show_me, or None when everyone is shown."""
		return SHOW_ME_GENDERS.get(self.show_me.lower())


@dataclass(slots=True)
class UserProfile:
	user_id: str
	first_name: Optional[str] = None
	birth_date: Optional[date] = None
	gender: Optional[str] = None
	bio: Optional[str] = None
	latitude: Optional[float] = None
	longitude: Optional[float] = None
	preferences: DiscoveryPreferences = field(default_factory=DiscoveryPreferences)
	is_verified: bool = False

	@property
	def location(self) -> Optional[GeoPoint]:
		if self.latitude is None or self.longitude is None:
			return None
		return GeoPoint(lat=float(self.latitude), lon=float(self.longitude))

	def is_discoverable(self) -> bool:
		"""A profile takes part in discovery once it has a location and a birth date."""
		return self.location is not None and self.birth_date is not None

	@classmethod
	def from_record(cls, row: Mapping[str, Any]) -> "UserProfile":
		birth_date = row.get("birth_date")
		if isinstance(birth_date, datetime):
			birth_date = birth_date.date()
		return cls(
			user_id=str(row["id"]),
			first_name=row.get("first_name"),
			birth_date=birth_date,
			gender=row.get("gender"),
			bio=row.get("bio"),
			latitude=row.get("latitude"),
			longitude=row.get("longitude"),
			preferences=DiscoveryPreferences.resolve(
				max_distance_km=row.get("max_distance"),
				age_min=row.get("age_min"),
				age_max=row.get("age_max"),
				show_me=row.get("show_me"),
			),
			is_verified=bool(row.get("is_verified", False)),
		)


@dataclass(frozen=True, slots=True)
class Candidate:
	"""A profile that passed the discovery filter, with its computed distance and age."""

	profile: UserProfile
	distance_km: float
	age: int

	@property
	def user_id(self) -> str:
		return self.profile.user_id
