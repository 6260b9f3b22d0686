import json
import logging
import time
from datetime import datetime, timezone

import jwt as pyjwt
import pytest
from fastapi import HTTPException

from app.api.pagination import decode_cursor, encode_cursor
from app.infra import jwt as jwt_helper
from app.infra.auth import verify_access_jwt
from app.obs.logging import JSONLogFormatter, is_sensitive
from app.settings import settings


def test_cursor_round_trip_keeps_timezone():
	dt = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)
	assert decode_cursor(encode_cursor(dt, "01ABC")) == (dt, "01ABC")


@pytest.mark.parametrize("raw", ["not-base64!!", "e30=", ""])
def test_malformed_cursor_raises_value_error(raw):
	with pytest.raises(ValueError, match="invalid_cursor"):
		decode_cursor(raw)


def test_access_token_resolves_user():
	token = jwt_helper.issue_access_token("user-1", session_id="session-1")
	user = verify_access_jwt(token)
	assert user.id == "user-1"
	assert user.session_id == "session-1"


def test_session_claim_is_optional():
	claims = jwt_helper.read_access_token(jwt_helper.issue_access_token("user-2"))
	assert claims.user_id == "user-2"
	assert claims.session_id is None


def _foreign_token(**overrides) -> str:
	now = int(time.time())
	claims = {"iss": jwt_helper.ISSUER, "aud": jwt_helper.AUDIENCE, "sub": "user-1", "iat": now, "exp": now + 60}
	claims.update(overrides)
	return pyjwt.encode({k: v for k, v in claims.items() if v is not None}, settings.secret_key, algorithm="HS256")


def test_expired_or_foreign_tokens_are_rejected():
	expired = jwt_helper.issue_access_token("user-1", ttl_seconds=-60)
	wrong_issuer = _foreign_token(iss="someone-else")
	wrong_audience = _foreign_token(aud="admin-console")
	no_subject = _foreign_token(sub=None)
	wrong_key = pyjwt.encode({"sub": "user-1"}, "another-secret-key-0123456789abcdef", algorithm="HS256")
	for token in (expired, wrong_issuer, wrong_audience, no_subject, wrong_key, "garbage"):
		with pytest.raises(HTTPException) as exc:
			verify_access_jwt(token)
		assert exc.value.status_code == 401
		assert exc.value.detail == "invalid_token"


@pytest.mark.parametrize(
	"key,expected",
	[
		("content", True),
		("latitude", True),
		("lat", True),
		("user_lon", True),
		("authorization", True),
		("latency_ms", False),
		("related_id", False),
		("match_id", False),
	],
)
def test_sensitive_keys(key, expected):
	assert is_sensitive(key) is expected


def test_formatter_redacts_sensitive_extras():
	record = logging.LogRecord("amora", logging.INFO, __file__, 1, "message_sent", None, None)
	record.content = "secret words"
	record.match_id = "m1"
	payload = json.loads(JSONLogFormatter().format(record))
	assert payload["msg"] == "message_sent"
	assert payload["content"] == "[redacted]"
	assert payload["match_id"] == "m1"
