"""Match list, unmatch and conversation endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.errors import map_error
from app.api.pagination import decode_cursor
from app.domain.chat import service as chat_service
from app.domain.chat.schemas import MarkReadResponse, MessageListResponse, MessageResponse, SendMessageRequest
from app.domain.matching import service as matching_service
from app.domain.matching.exceptions import MatchingError
from app.domain.matching.schemas import MatchListResponse, MatchSummary
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/matches", tags=["matches"])


@router.get("", response_model=MatchListResponse)
async def list_matches(
	include_inactive: bool = Query(default=False),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MatchListResponse:
	return await matching_service.list_matches(auth_user.id, include_inactive=include_inactive)


@router.post("/{match_id}/unmatch", response_model=MatchSummary)
async def unmatch(
	match_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MatchSummary:
	try:
		return await matching_service.unmatch(match_id, auth_user.id)
	except MatchingError as exc:
		raise map_error(exc) from None


@router.post("/{match_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
	match_id: str,
	payload: SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MessageResponse:
	try:
		return await chat_service.send_message(match_id, auth_user.id, payload.content, payload.message_type)
	except (MatchingError, ValueError) as exc:
		raise map_error(exc) from None


@router.get("/{match_id}/messages", response_model=MessageListResponse)
async def list_messages(
	match_id: str,
	*,
	limit: Optional[int] = Query(default=None, ge=1),
	before: Optional[datetime] = Query(default=None),
	cursor: Optional[str] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MessageListResponse:
	before_id: Optional[str] = None
	try:
		if cursor:
			before, before_id = decode_cursor(cursor)
		return await chat_service.get_conversation_messages(
			match_id,
			auth_user.id,
			limit=limit,
			before=before,
			before_id=before_id,
		)
	except (MatchingError, ValueError) as exc:
		raise map_error(exc) from None


@router.post("/{match_id}/messages/read", response_model=MarkReadResponse)
async def mark_read(
	match_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> MarkReadResponse:
	try:
		count = await chat_service.mark_read(match_id, auth_user.id)
	except MatchingError as exc:
		raise map_error(exc) from None
	return MarkReadResponse(match_id=match_id, marked_read=count)
