import asyncio

import pytest

from app.domain.chat import service as chat_service
from app.domain.discovery import service as discovery_service
from app.domain.matching import service
from app.domain.matching.exceptions import BlockSelfError, MatchInactive, UserBlocked, UserNotFound
from app.domain.matching.repo import memory_store


async def _feed_ids(user_id: str) -> list[str]:
	resp = await discovery_service.get_discovery_feed(user_id, limit=50)
	return [card.user_id for card in resp.items]


@pytest.mark.asyncio
async def test_block_hides_both_users_from_each_others_feed(make_profile):
	ana = await make_profile(first_name="Ana")
	bea = await make_profile(first_name="Bea", lat=40.01)
	cat = await make_profile(first_name="Cat", lat=40.02)

	await service.block_user(ana.user_id, bea.user_id)

	assert await _feed_ids(ana.user_id) == [cat.user_id]
	assert await _feed_ids(bea.user_id) == [cat.user_id]


@pytest.mark.asyncio
async def test_unblock_brings_the_user_back(make_profile):
	ana = await make_profile(first_name="Ana")
	bea = await make_profile(first_name="Bea", lat=40.01)
	await service.block_user(ana.user_id, bea.user_id)

	result = await service.unblock_user(ana.user_id, bea.user_id)

	assert result.blocked is False
	assert await _feed_ids(ana.user_id) == [bea.user_id]


@pytest.mark.asyncio
async def test_only_the_blocker_can_lift_a_block(make_profile):
	ana = await make_profile(first_name="Ana")
	bea = await make_profile(first_name="Bea", lat=40.01)
	await service.block_user(ana.user_id, bea.user_id)

	await service.unblock_user(bea.user_id, ana.user_id)

	assert await memory_store().is_blocked(ana.user_id, bea.user_id)
	assert await _feed_ids(bea.user_id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("swiper", ["blocker", "blocked"])
async def test_swipes_across_a_block_are_refused(make_profile, swiper):
	ana = await make_profile(first_name="Ana")
	bea = await make_profile(first_name="Bea")
	await service.block_user(ana.user_id, bea.user_id)
	actor, target = (ana, bea) if swiper == "blocker" else (bea, ana)

	with pytest.raises(UserBlocked):
		await service.record_swipe(actor.user_id, target.user_id, "like")
	assert await memory_store().swiped_ids(actor.user_id) == set()


@pytest.mark.asyncio
async def test_block_dissolves_the_match_and_stops_messages(make_profile):
	ana = await make_profile(first_name="Ana")
	bea = await make_profile(first_name="Bea")
	await service.record_swipe(ana.user_id, bea.user_id, "like")
	match_id = (await service.record_swipe(bea.user_id, ana.user_id, "like")).match_id
	await chat_service.send_message(match_id, ana.user_id, "hi")

	result = await service.block_user(bea.user_id, ana.user_id)

	assert result.dissolved_match_id == match_id
	assert (await memory_store().get_match(match_id)).is_active is False
	for sender in (ana, bea):
		with pytest.raises(UserBlocked):
			await chat_service.send_message(match_id, sender.user_id, "still there?")
	history = await chat_service.get_conversation_messages(match_id, ana.user_id)
	assert [m.content for m in history.items] == ["hi"]


@pytest.mark.asyncio
async def test_unblocking_does_not_revive_the_match(make_profile):
	ana = await make_profile(first_name="Ana")
	bea = await make_profile(first_name="Bea")
	await service.record_swipe(ana.user_id, bea.user_id, "like")
	match_id = (await service.record_swipe(bea.user_id, ana.user_id, "like")).match_id
	await service.block_user(ana.user_id, bea.user_id)

	await service.unblock_user(ana.user_id, bea.user_id)

	with pytest.raises(MatchInactive):
		await chat_service.send_message(match_id, ana.user_id, "hello again")


@pytest.mark.asyncio
async def test_blocking_twice_is_a_no_op(make_profile):
	ana = await make_profile(first_name="Ana")
	bea = await make_profile(first_name="Bea")

	first = await service.block_user(ana.user_id, bea.user_id)
	second = await service.block_user(ana.user_id, bea.user_id)

	assert first.blocked and second.blocked
	assert await memory_store().blocked_ids(ana.user_id) == {bea.user_id}
	assert await memory_store().blocked_ids(bea.user_id) == {ana.user_id}


@pytest.mark.asyncio
async def test_block_validation(make_profile):
	ana = await make_profile(first_name="Ana")

	with pytest.raises(BlockSelfError):
		await service.block_user(ana.user_id, ana.user_id)
	with pytest.raises(UserNotFound):
		await service.block_user(ana.user_id, "ghost")


@pytest.mark.asyncio
async def test_block_racing_a_mutual_like_leaves_no_active_match(make_profile):
	ana = await make_profile(first_name="Ana")
	bea = await make_profile(first_name="Bea")
	await service.record_swipe(bea.user_id, ana.user_id, "like")

	await asyncio.gather(
		service.record_swipe(ana.user_id, bea.user_id, "like"),
		service.block_user(bea.user_id, ana.user_id),
		return_exceptions=True,
	)

	listing = await service.list_matches(ana.user_id)
	assert listing.items == []
