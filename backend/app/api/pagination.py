"""Opaque keyset cursors shared by paginated endpoints."""

from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime


def encode_cursor(dt: datetime, id: str) -> str:
	payload = {"t": dt.isoformat(), "id": id}
	return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def decode_cursor(s: str) -> tuple[datetime, str]:
	"""Inverse of encode_cursor; raises ValueError("invalid_cursor") on malformed input."""
	try:
		data = json.loads(base64.urlsafe_b64decode(s.encode()).decode())
		return (datetime.fromisoformat(data["t"]), str(data["id"]))
	except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError, KeyError, TypeError, ValueError):
		raise ValueError("invalid_cursor") from None
