import pytest

from app.domain.discovery import service as discovery_service
from app.infra import jwt as jwt_helper
from app.settings import settings


def _auth(user_id: str) -> dict[str, str]:
	return {"X-User-Id": user_id}


@pytest.mark.asyncio
async def test_feed_scenario_and_mutual_like(api_client, make_profile):
	a = await make_profile(first_name="Ana", age=30, lat=40.0, lon=-74.0)
	b = await make_profile(first_name="Bea", age=28, lat=40.05, lon=-74.0)

	feed = await api_client.get("/discovery/feed", headers=_auth(a.user_id))
	assert feed.status_code == 200
	body = feed.json()
	assert body["incomplete_profile"] is False
	assert [item["user_id"] for item in body["items"]] == [b.user_id]
	assert body["items"][0]["distance_km"] == pytest.approx(5.6, abs=0.05)
	assert body["items"][0]["age"] == 28

	first = await api_client.post(
		"/discovery/swipes",
		json={"target_id": a.user_id, "action": "like"},
		headers=_auth(b.user_id),
	)
	assert first.status_code == 200
	assert first.json()["is_match"] is False

	second = await api_client.post(
		"/discovery/swipes",
		json={"target_id": b.user_id, "action": "like"},
		headers=_auth(a.user_id),
	)
	assert second.status_code == 200
	assert second.json()["is_match"] is True
	assert second.json()["match_id"]

	after = await api_client.get("/discovery/feed", headers=_auth(a.user_id))
	assert after.json()["items"] == []


@pytest.mark.asyncio
async def test_swipe_errors_map_to_http(api_client, make_profile):
	a = await make_profile()
	b = await make_profile()
	headers = _auth(a.user_id)

	ok = await api_client.post("/discovery/swipes", json={"target_id": b.user_id, "action": "pass"}, headers=headers)
	assert ok.status_code == 200

	dup = await api_client.post("/discovery/swipes", json={"target_id": b.user_id, "action": "like"}, headers=headers)
	assert dup.status_code == 409
	assert dup.json()["detail"] == "swipe_exists"
	assert "request_id" in dup.json()

	self_swipe = await api_client.post("/discovery/swipes", json={"target_id": a.user_id, "action": "like"}, headers=headers)
	assert self_swipe.status_code == 400
	assert self_swipe.json()["detail"] == "self_swipe"

	ghost = await api_client.post("/discovery/swipes", json={"target_id": "ghost", "action": "like"}, headers=headers)
	assert ghost.status_code == 404
	assert ghost.json()["detail"] == "user_not_found"

	bad_action = await api_client.post("/discovery/swipes", json={"target_id": b.user_id, "action": "maybe"}, headers=headers)
	assert bad_action.status_code == 422


@pytest.mark.asyncio
async def test_feed_paging_parameters(api_client, make_profile):
	a = await make_profile()
	for idx in range(3):
		await make_profile(first_name=f"C{idx}", lat=40.0 + 0.01 * (idx + 1))

	page = await api_client.get("/discovery/feed", params={"limit": 2, "offset": 2}, headers=_auth(a.user_id))
	assert page.status_code == 200
	body = page.json()
	assert (body["limit"], body["offset"], len(body["items"])) == (2, 2, 1)

	bad = await api_client.get("/discovery/feed", params={"limit": 0}, headers=_auth(a.user_id))
	assert bad.status_code == 422


@pytest.mark.asyncio
async def test_feed_for_unknown_or_incomplete_user(api_client, make_profile):
	missing = await api_client.get("/discovery/feed", headers=_auth("nobody"))
	assert missing.status_code == 404

	incomplete = await make_profile(age=None)
	resp = await api_client.get("/discovery/feed", headers=_auth(incomplete.user_id))
	assert resp.status_code == 200
	assert resp.json()["incomplete_profile"] is True


@pytest.mark.asyncio
async def test_requests_need_credentials(api_client):
	resp = await api_client.get("/discovery/feed")
	assert resp.status_code == 401
	assert resp.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_dev_header_is_ignored_outside_dev(api_client, make_profile, monkeypatch):
	a = await make_profile()
	monkeypatch.setattr(settings, "environment", "production")

	header_only = await api_client.get("/discovery/feed", headers=_auth(a.user_id))
	assert header_only.status_code == 401

	token = jwt_helper.issue_access_token(a.user_id, session_id="s1")
	with_token = await api_client.get("/discovery/feed", headers={"Authorization": f"Bearer {token}"})
	assert with_token.status_code == 200


@pytest.mark.asyncio
async def test_feed_endpoint_passes_through_to_service(api_client, monkeypatch):
	calls = []

	async def fake_feed(requester_id, *, limit, offset):
		calls.append((requester_id, limit, offset))
		return discovery_service.DiscoveryFeedResponse(items=[], limit=limit or 20, offset=offset)

	monkeypatch.setattr(discovery_service, "get_discovery_feed", fake_feed)

	resp = await api_client.get("/discovery/feed", params={"offset": 4}, headers=_auth("user-9"))

	assert resp.status_code == 200
	assert calls == [("user-9", None, 4)]


@pytest.mark.asyncio
async def test_feed_limit_follows_configured_maximum(api_client, make_profile, monkeypatch):
	a = await make_profile()
	for idx in range(4):
		await make_profile(first_name=f"C{idx}", lat=40.0 + 0.01 * (idx + 1))

	monkeypatch.setattr(settings, "discovery_max_limit", 3)
	capped = await api_client.get("/discovery/feed", params={"limit": 500}, headers=_auth(a.user_id))
	assert capped.status_code == 200
	assert (capped.json()["limit"], len(capped.json()["items"])) == (3, 3)

	monkeypatch.setattr(settings, "discovery_max_limit", 200)
	wide = await api_client.get("/discovery/feed", params={"limit": 150}, headers=_auth(a.user_id))
	assert wide.status_code == 200
	assert wide.json()["limit"] == 150
