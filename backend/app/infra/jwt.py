"""Access tokens for the matching API.

Tokens are minted by the account service and verified here: HS256 over
settings.secret_key, issuer `amora-api`, audience `amora-app`, subject is the
user id. `issue_access_token` mints the same shape for local tools and tests.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from jwt import InvalidTokenError

from app.settings import settings

ISSUER = "amora-api"
AUDIENCE = "amora-app"
ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 3600
LEEWAY_SECONDS = 5


@dataclass(frozen=True, slots=True)
class AccessClaims:
	user_id: str
	expires_at: int
	session_id: Optional[str] = None


def issue_access_token(
	user_id: str,
	*,
	session_id: Optional[str] = None,
	ttl_seconds: int = DEFAULT_TTL_SECONDS,
) -> str:
	now = int(time.time())
	claims: Dict[str, Any] = {"iss": ISSUER, "aud": AUDIENCE, "sub": str(user_id), "iat": now, "exp": now + ttl_seconds}
	if session_id:
		claims["sid"] = session_id
	return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def read_access_token(token: str) -> AccessClaims:
	"""Verify signature, expiry, issuer and audience. Raises jwt.InvalidTokenError."""
	payload = jwt.decode(
		token,
		settings.secret_key,
		algorithms=[ALGORITHM],
		audience=AUDIENCE,
		issuer=ISSUER,
		leeway=LEEWAY_SECONDS,
		options={"require": ["exp", "iat", "iss", "aud", "sub"]},
	)
	user_id = str(payload["sub"]).strip()
	if not user_id:
		raise InvalidTokenError("empty_subject")
	session_id = payload.get("sid")
	return AccessClaims(
		user_id=user_id,
		expires_at=int(payload["exp"]),
		session_id=str(session_id) if session_id else None,
	)
