from datetime import datetime, timezone

import pytest

from app.domain.discovery import repo as discovery_repo
from app.domain.discovery import service
from app.domain.discovery.schemas import DiscoveryFeedResponse
from app.domain.matching import service as matching_service
from app.domain.matching.exceptions import UserNotFound


@pytest.mark.asyncio
async def test_feed_projects_cards_nearest_first(make_profile):
	requester = await make_profile(first_name="Ana", age=30, lat=40.0, lon=-74.0)
	near = await make_profile(first_name="Bea", age=28, lat=40.05, lon=-74.0, bio="hi")
	far = await make_profile(first_name="Cat", age=29, lat=40.2, lon=-74.0)
	await discovery_repo.memory_store().add_photo(near.user_id, "https://cdn.example/b-2.jpg")
	await discovery_repo.memory_store().add_photo(near.user_id, "https://cdn.example/b-1.jpg", primary=True)

	resp: DiscoveryFeedResponse = await service.get_discovery_feed(requester.user_id, limit=10, offset=0)

	assert [card.user_id for card in resp.items] == [near.user_id, far.user_id]
	card = resp.items[0]
	assert card.first_name == "Bea"
	assert card.age == 28
	assert card.bio == "hi"
	assert card.distance_km == 5.6
	assert card.photos == ["https://cdn.example/b-1.jpg", "https://cdn.example/b-2.jpg"]
	assert resp.items[1].photos == []
	assert resp.incomplete_profile is False


@pytest.mark.asyncio
async def test_feed_hides_users_the_requester_swiped_on(make_profile):
	requester = await make_profile(first_name="Ana")
	liked = await make_profile(first_name="Liked", lat=40.01)
	passed = await make_profile(first_name="Passed", lat=40.02)
	fresh = await make_profile(first_name="Fresh", lat=40.03)

	await matching_service.record_swipe(requester.user_id, liked.user_id, "like")
	await matching_service.record_swipe(requester.user_id, passed.user_id, "pass")

	resp = await service.get_discovery_feed(requester.user_id)

	assert [card.user_id for card in resp.items] == [fresh.user_id]


@pytest.mark.asyncio
async def test_incoming_swipes_do_not_hide_the_swiper(make_profile):
	requester = await make_profile(first_name="Ana")
	admirer = await make_profile(first_name="Admirer", lat=40.01)
	await matching_service.record_swipe(admirer.user_id, requester.user_id, "like")

	resp = await service.get_discovery_feed(requester.user_id)

	assert [card.user_id for card in resp.items] == [admirer.user_id]


@pytest.mark.asyncio
async def test_feed_respects_requester_preferences(make_profile):
	requester = await make_profile(max_distance_km=50, age_min=25, age_max=35)
	await make_profile(first_name="TooOld", age=36, lat=40.01)
	await make_profile(first_name="TooFar", age=30, lat=40.54)
	ok = await make_profile(first_name="Ok", age=35, lat=40.01)

	resp = await service.get_discovery_feed(requester.user_id)

	assert [card.user_id for card in resp.items] == [ok.user_id]


@pytest.mark.asyncio
async def test_pages_are_disjoint_and_stable(make_profile):
	requester = await make_profile()
	for idx in range(5):
		await make_profile(first_name=f"C{idx}", lat=40.0 + 0.01 * (idx + 1))

	first = await service.get_discovery_feed(requester.user_id, limit=2, offset=0)
	second = await service.get_discovery_feed(requester.user_id, limit=2, offset=2)
	whole = await service.get_discovery_feed(requester.user_id, limit=5, offset=0)

	first_ids = [card.user_id for card in first.items]
	second_ids = [card.user_id for card in second.items]
	assert not set(first_ids) & set(second_ids)
	assert first_ids + second_ids == [card.user_id for card in whole.items][:4]

	beyond = await service.get_discovery_feed(requester.user_id, limit=2, offset=10)
	assert beyond.items == []


@pytest.mark.asyncio
async def test_incomplete_requester_gets_flagged_empty_feed(make_profile):
	requester = await make_profile(lat=None, lon=None)
	await make_profile(first_name="Someone")

	resp = await service.get_discovery_feed(requester.user_id)

	assert resp.items == []
	assert resp.incomplete_profile is True


@pytest.mark.asyncio
async def test_unknown_requester_raises():
	with pytest.raises(UserNotFound):
		await service.get_discovery_feed("nobody")


@pytest.mark.asyncio
async def test_limit_is_clamped_to_configured_bounds(make_profile):
	requester = await make_profile()
	resp = await service.get_discovery_feed(requester.user_id, limit=10_000)
	assert resp.limit == 100
	resp = await service.get_discovery_feed(requester.user_id)
	assert resp.limit == 20


@pytest.mark.asyncio
async def test_ages_are_computed_against_the_supplied_clock(make_profile):
	now = datetime(2030, 1, 1, tzinfo=timezone.utc)
	requester = await make_profile(age=30, today=now.date(), age_min=18, age_max=40)
	candidate = await make_profile(first_name="B", age=20, lat=40.01, today=now.date())

	resp = await service.get_discovery_feed(requester.user_id, now=now)

	assert [(card.user_id, card.age) for card in resp.items] == [(candidate.user_id, 20)]
