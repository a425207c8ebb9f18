"""Shared test fixtures and helpers for the zynchat test suite."""
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from zynchat.config import Settings
from zynchat.main import create_app
from zynchat.repositories.friend_repository import InMemoryFriendRepository
from zynchat.repositories.message_repository import InMemoryMessageStore
from zynchat.repositories.user_repository import InMemoryUserRepository
from zynchat.services.chat_service import ChatService
from zynchat.services.presence_service import PresenceService
from zynchat.utils.errors import ChannelPushFailure
from zynchat.utils.websocket_manager import Channel, ConnectionRegistry


class RecordingChannel(Channel):
    """Channel that keeps every pushed event in memory."""

    def __init__(self, name: str = "channel") -> None:
        self.name = name
        self.events: List[Dict[str, Any]] = []

    async def push(self, event: Dict[str, Any]) -> None:
        self.events.append(event)

    def __repr__(self) -> str:
        return f"<RecordingChannel {self.name}>"


class BrokenChannel(Channel):
    """Channel whose socket went away mid-send."""

    def __init__(self) -> None:
        self.attempts = 0

    async def push(self, event: Dict[str, Any]) -> None:
        self.attempts += 1
        raise ChannelPushFailure("connection closed")


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def user_repo():
    return InMemoryUserRepository()


@pytest.fixture
def friend_repo():
    return InMemoryFriendRepository()


@pytest.fixture
def chat_service(store, registry, friend_repo):
    return ChatService(store, registry, friend_repo=friend_repo, store_timeout=1.0)


@pytest.fixture
def presence_service(registry, user_repo, friend_repo):
    return PresenceService(registry, user_repo, friend_repo)


@pytest.fixture
def api_client():
    """TestClient for an app running on the in-memory backend, lifespan included."""
    app = create_app(Settings(STORE_BACKEND="memory", LOG_LEVEL="DEBUG"))
    with TestClient(app) as client:
        yield client
