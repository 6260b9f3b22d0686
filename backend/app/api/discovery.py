"""Discovery feed and swipe endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.errors import map_error
from app.domain.discovery import service as discovery_service
from app.domain.discovery.schemas import DiscoveryFeedResponse
from app.domain.matching import service as matching_service
from app.domain.matching.exceptions import MatchingError
from app.domain.matching.schemas import SwipeRequest, SwipeResult
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/discovery", tags=["discovery"])


@router.get("/feed", response_model=DiscoveryFeedResponse)
async def discovery_feed(
	*,
	limit: Optional[int] = Query(default=None, ge=1),
	offset: int = Query(default=0, ge=0),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> DiscoveryFeedResponse:
	try:
		return await discovery_service.get_discovery_feed(auth_user.id, limit=limit, offset=offset)
	except MatchingError as exc:
		raise map_error(exc) from None


@router.post("/swipes", response_model=SwipeResult, status_code=status.HTTP_200_OK)
async def discovery_swipe(
	payload: SwipeRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> SwipeResult:
	try:
		return await matching_service.record_swipe(auth_user.id, payload.target_id, payload.action)
	except (MatchingError, ValueError) as exc:
		raise map_error(exc) from None
