import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-amora-suite-0123456789")

from app.domain.chat import repo as chat_repo
from app.domain.discovery import repo as discovery_repo
from app.domain.discovery.models import DiscoveryPreferences, UserProfile
from app.domain.matching import repo as matching_repo
from app.infra import postgres
from app.main import app
from app.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from app.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def clear_memory_stores():
	"""Repositories fall back to in-process stores without Postgres; start each test empty."""
	discovery_repo.memory_store().clear()
	matching_repo.memory_store().clear()
	chat_repo.memory_store().clear()
	yield
	discovery_repo.memory_store().clear()
	matching_repo.memory_store().clear()
	chat_repo.memory_store().clear()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via the X-User-Id header, which is only accepted in
	dev mode.
	"""
	original_env = settings.environment
	settings.environment = "dev"
	try:
		yield
	finally:
		settings.environment = original_env


def birth_date_for(age: int, today: Optional[date] = None) -> date:
	"""A birth date that makes someone exactly `age` on `today` (Jan 1 of the birth year)."""
	today = today or date.today()
	return date(today.year - age, 1, 1)


@pytest.fixture
def make_profile():
	store = discovery_repo.memory_store()

	async def _make(
		*,
		first_name: str = "Alex",
		age: Optional[int] = 30,
		gender: Optional[str] = "female",
		lat: Optional[float] = 40.0,
		lon: Optional[float] = -74.0,
		user_id: Optional[str] = None,
		bio: Optional[str] = None,
		today: Optional[date] = None,
		**prefs,
	) -> UserProfile:
		profile = UserProfile(
			user_id=user_id or str(uuid4()),
			first_name=first_name,
			birth_date=birth_date_for(age, today) if age is not None else None,
			gender=gender,
			bio=bio,
			latitude=lat,
			longitude=lon,
			preferences=DiscoveryPreferences.resolve(**prefs),
		)
		await store.upsert_profile(profile)
		return profile

	return _make


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
