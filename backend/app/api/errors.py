"""Error mapping and global handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.request_id import get_request_id
from app.domain.matching.exceptions import (
	BlockSelfError,
	MatchForbidden,
	MatchInactive,
	MatchNotFound,
	SwipeConflict,
	SwipeSelfError,
	UserBlocked,
	UserNotFound,
)


def map_error(exc: Exception) -> HTTPException:
	"""Translate a domain error into the HTTP error the API returns for it."""
	if isinstance(exc, (SwipeConflict, MatchInactive)):
		return HTTPException(status.HTTP_409_CONFLICT, detail=getattr(exc, "reason", "conflict"))
	if isinstance(exc, (MatchForbidden, UserBlocked)):
		return HTTPException(status.HTTP_403_FORBIDDEN, detail=getattr(exc, "reason", "forbidden"))
	if isinstance(exc, (UserNotFound, MatchNotFound)):
		return HTTPException(status.HTTP_404_NOT_FOUND, detail=getattr(exc, "reason", "not_found"))
	if isinstance(exc, (SwipeSelfError, BlockSelfError)):
		return HTTPException(status.HTTP_400_BAD_REQUEST, detail=exc.reason)
	return HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc))


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		rid = get_request_id(request)
		payload = {"detail": exc.detail, "request_id": rid}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		rid = get_request_id(request)
		payload = {"detail": "validation_error", "errors": jsonable_errors(exc), "request_id": rid}
		return JSONResponse(status_code=422, content=payload)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
	# pydantic may put exception instances in "ctx", which JSONResponse cannot encode
	errors = []
	for error in exc.errors():
		item = dict(error)
		if "ctx" in item:
			item["ctx"] = {key: str(value) for key, value in item["ctx"].items()}
		errors.append(item)
	return errors
