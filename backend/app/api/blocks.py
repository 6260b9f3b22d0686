"""Block and unblock endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.errors import map_error
from app.domain.matching import service as matching_service
from app.domain.matching.exceptions import MatchingError
from app.domain.matching.schemas import BlockRequest, BlockResult
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/blocks", tags=["blocks"])


@router.post("", response_model=BlockResult)
async def block_user(
	payload: BlockRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> BlockResult:
	try:
		return await matching_service.block_user(auth_user.id, payload.user_id)
	except MatchingError as exc:
		raise map_error(exc) from None


@router.delete("/{user_id}", response_model=BlockResult)
async def unblock_user(
	user_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> BlockResult:
	return await matching_service.unblock_user(auth_user.id, user_id)
