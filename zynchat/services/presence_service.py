import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Optional

from zynchat.repositories.friend_repository import FriendRepository
from zynchat.repositories.user_repository import UserRepository
from zynchat.schemas.events import PresenceEvent
from zynchat.schemas.user import PresenceOut
from zynchat.utils.errors import ChatError, PresenceWriteFailure
from zynchat.utils.timeouts import with_store_timeout
from zynchat.utils.websocket_manager import Channel, ConnectionRegistry

logger = logging.getLogger(__name__)


class PresenceService:
    """
    Tracks online/offline transitions and tells the user's online contacts.

    Transitions of one user run one at a time, so a reconnect never has its
    online write or event overtaken by the previous socket's offline ones.
    Writes to the identity store are best-effort; if one is lost the stored
    flag stays stale until the next connect or disconnect.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        user_repo: UserRepository,
        friend_repo: Optional[FriendRepository] = None,
        store_timeout: float = 5.0,
    ) -> None:
        self._registry = registry
        self._user_repo = user_repo
        self._friend_repo = friend_repo
        self._store_timeout = store_timeout
        self._user_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def connect(self, user_id: str, channel: Channel) -> None:
        async with self._user_locks[user_id]:
            await self._registry.register(user_id, channel)
            logger.info("User %s connected", user_id)
            await self._record(user_id, online=True, last_seen=None)
            await self._broadcast(PresenceEvent(user_id=user_id, online=True))

    async def disconnect(self, user_id: str, channel: Channel) -> bool:
        """Returns False when *channel* had already been replaced by a newer connection."""
        async with self._user_locks[user_id]:
            if not await self._registry.unregister(user_id, channel):
                logger.debug("Ignoring stale disconnect for %s", user_id)
                return False
            last_seen = datetime.now(timezone.utc)
            logger.info("User %s disconnected", user_id)
            await self._record(user_id, online=False, last_seen=last_seen)
            await self._broadcast(PresenceEvent(user_id=user_id, online=False, last_seen=last_seen))
            return True

    async def status(self, user_id: str) -> PresenceOut:
        online = await self._registry.is_online(user_id)
        last_seen = None
        if not online:
            try:
                user = await with_store_timeout(self._user_repo.get_user(user_id), self._store_timeout)
            except ChatError as exc:
                logger.warning("Could not read last_seen for %s: %s", user_id, exc)
                user = None
            if user:
                last_seen = user.get("last_seen")
        return PresenceOut(user_id=user_id, online=online, last_seen=last_seen)

    async def _record(self, user_id: str, online: bool, last_seen: Optional[datetime]) -> None:
        try:
            await with_store_timeout(self._user_repo.set_presence(user_id, online, last_seen), self._store_timeout)
        except ChatError as exc:
            failure = PresenceWriteFailure(f"user {user_id} online={online}: {exc}")
            logger.warning("%s", failure)

    async def _broadcast(self, event: PresenceEvent) -> None:
        if self._friend_repo is None:
            return
        try:
            contacts = await with_store_timeout(self._friend_repo.list_friends(event.user_id), self._store_timeout)
        except ChatError as exc:
            logger.warning("Could not load contacts of %s for presence: %s", event.user_id, exc)
            return
        payload = event.model_dump(mode="json")
        channels = [await self._registry.lookup(c) for c in contacts]
        results = await asyncio.gather(
            *(ch.push(payload) for ch in channels if ch is not None),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.debug("Presence push for %s failed: %s", event.user_id, result)
