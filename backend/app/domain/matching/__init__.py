"""Matching domain exports."""

from .exceptions import (  # noqa: F401
	BlockSelfError,
	MatchForbidden,
	MatchInactive,
	MatchingError,
	MatchNotFound,
	SwipeConflict,
	SwipeSelfError,
	UserBlocked,
	UserNotFound,
)
from .models import Match, Swipe, SwipeAction  # noqa: F401
