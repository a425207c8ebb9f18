"""Tests for online/offline transitions."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import BrokenChannel, RecordingChannel
from zynchat.repositories.user_repository import InMemoryUserRepository
from zynchat.services.presence_service import PresenceService
from zynchat.utils.errors import StoreUnavailable


@pytest.mark.asyncio
async def test_connect_marks_user_online(presence_service, registry, user_repo):
    await user_repo.upsert_user("alice", "Alice")
    channel = RecordingChannel("alice")

    await presence_service.connect("alice", channel)

    assert await registry.lookup("alice") is channel
    user = await user_repo.get_user("alice")
    assert user["is_online"] is True
    assert user["last_seen"] is None


@pytest.mark.asyncio
async def test_disconnect_marks_user_offline_with_last_seen(presence_service, registry, user_repo):
    await user_repo.upsert_user("alice", "Alice")
    channel = RecordingChannel("alice")
    await presence_service.connect("alice", channel)

    assert await presence_service.disconnect("alice", channel) is True

    assert await registry.lookup("alice") is None
    user = await user_repo.get_user("alice")
    assert user["is_online"] is False
    assert user["last_seen"] is not None

    status = await presence_service.status("alice")
    assert status.online is False
    assert status.last_seen == user["last_seen"]


@pytest.mark.asyncio
async def test_stale_disconnect_leaves_user_online(presence_service, registry, user_repo):
    await user_repo.upsert_user("alice", "Alice")
    first, second = RecordingChannel("first"), RecordingChannel("second")
    await presence_service.connect("alice", first)
    await presence_service.connect("alice", second)

    assert await presence_service.disconnect("alice", first) is False

    assert await registry.lookup("alice") is second
    assert (await user_repo.get_user("alice"))["is_online"] is True
    assert (await presence_service.status("alice")).online is True


@pytest.mark.asyncio
async def test_transitions_are_broadcast_to_online_contacts(presence_service, friend_repo):
    await friend_repo.add("alice", "bob")
    bob, carol = RecordingChannel("bob"), RecordingChannel("carol")
    await presence_service.connect("bob", bob)
    await presence_service.connect("carol", carol)

    alice = RecordingChannel("alice")
    await presence_service.connect("alice", alice)
    await presence_service.disconnect("alice", alice)

    assert [(e["user_id"], e["online"]) for e in bob.events] == [("alice", True), ("alice", False)]
    assert bob.events[1]["last_seen"] is not None
    # not a contact
    assert carol.events == []


@pytest.mark.asyncio
async def test_presence_write_failure_is_tolerated(registry, friend_repo):
    user_repo = AsyncMock()
    user_repo.set_presence.side_effect = StoreUnavailable("users collection down")
    service = PresenceService(registry, user_repo, friend_repo)
    channel = RecordingChannel("alice")

    await service.connect("alice", channel)
    assert await registry.lookup("alice") is channel

    assert await service.disconnect("alice", channel) is True
    assert await registry.lookup("alice") is None
    assert user_repo.set_presence.await_count == 2


@pytest.mark.asyncio
async def test_broadcast_survives_broken_contact_channel(presence_service, registry, friend_repo):
    await friend_repo.add("alice", "bob")
    await friend_repo.add("alice", "carol")
    broken, carol = BrokenChannel(), RecordingChannel("carol")
    await registry.register("bob", broken)
    await registry.register("carol", carol)

    await presence_service.connect("alice", RecordingChannel("alice"))

    assert broken.attempts == 1
    assert len(carol.events) == 1


@pytest.mark.asyncio
async def test_status_of_unknown_user(presence_service):
    status = await presence_service.status("ghost")
    assert status.online is False
    assert status.last_seen is None


class GatedOfflineUserRepository(InMemoryUserRepository):
    """Holds every offline write until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.offline_write_started = asyncio.Event()
        self.gate = asyncio.Event()

    async def set_presence(self, user_id, is_online, last_seen):
        if not is_online:
            self.offline_write_started.set()
            await self.gate.wait()
        return await super().set_presence(user_id, is_online, last_seen)


class HungUserRepository(InMemoryUserRepository):
    """Identity store that never answers."""

    async def set_presence(self, user_id, is_online, last_seen):
        await asyncio.Event().wait()

    async def get_user(self, user_id):
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_reconnect_during_slow_disconnect_ends_online(registry, friend_repo):
    user_repo = GatedOfflineUserRepository()
    await user_repo.upsert_user("alice", "Alice")
    await friend_repo.add("alice", "bob")
    service = PresenceService(registry, user_repo, friend_repo)
    bob = RecordingChannel("bob")
    await registry.register("bob", bob)
    old, new = RecordingChannel("old"), RecordingChannel("new")
    await service.connect("alice", old)

    leaving = asyncio.create_task(service.disconnect("alice", old))
    await user_repo.offline_write_started.wait()
    joining = asyncio.create_task(service.connect("alice", new))
    await asyncio.sleep(0.01)
    # the reconnect waits for the offline transition to finish
    assert not joining.done()

    user_repo.gate.set()
    assert await leaving is True
    await joining

    assert await registry.lookup("alice") is new
    assert (await user_repo.get_user("alice"))["is_online"] is True
    assert [(e["user_id"], e["online"]) for e in bob.events] == [
        ("alice", True), ("alice", False), ("alice", True),
    ]


@pytest.mark.asyncio
async def test_hung_identity_store_does_not_block_connect(registry, friend_repo):
    service = PresenceService(registry, HungUserRepository(), friend_repo, store_timeout=0.05)
    channel = RecordingChannel("alice")

    await asyncio.wait_for(service.connect("alice", channel), timeout=2)
    assert await registry.lookup("alice") is channel

    assert await asyncio.wait_for(service.disconnect("alice", channel), timeout=2) is True
    status = await asyncio.wait_for(service.status("alice"), timeout=2)
    assert status.online is False
    assert status.last_seen is None


@pytest.mark.asyncio
async def test_hung_contact_store_skips_broadcast(registry, user_repo):
    async def never_answers(user_id):
        await asyncio.Event().wait()

    friend_repo = AsyncMock()
    friend_repo.list_friends.side_effect = never_answers
    service = PresenceService(registry, user_repo, friend_repo, store_timeout=0.05)
    channel = RecordingChannel("alice")

    await asyncio.wait_for(service.connect("alice", channel), timeout=2)

    assert await registry.lookup("alice") is channel
    assert channel.events == []
