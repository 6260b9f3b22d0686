"""Domain-level exceptions for swipes, matches and conversations."""

from __future__ import annotations


class MatchingError(Exception):
    """Base class for matching feature errors."""

    reason: str = "unknown"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class SwipeConflict(MatchingError):
    """A swipe already exists for this (actor, target) pair."""

    reason = "swipe_exists"


class SwipeSelfError(MatchingError):
    reason = "self_swipe"


class UserNotFound(MatchingError):
    reason = "user_not_found"


class MatchNotFound(MatchingError):
    reason = "match_not_found"


class MatchForbidden(MatchingError):
    """The requesting user is not one of the match's participants."""

    reason = "not_participant"


class MatchInactive(MatchingError):
    """The match was dissolved; its conversation is read-only."""

    reason = "match_inactive"


class BlockSelfError(MatchingError):
    reason = "self_block"


class UserBlocked(MatchingError):
    """One of the two users has blocked the other."""

    reason = "blocked"
