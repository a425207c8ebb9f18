import asyncio
import logging
from typing import Any, Dict, List, Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from zynchat.utils.errors import ChannelPushFailure

logger = logging.getLogger(__name__)


class Channel:
    """A live realtime connection that events can be pushed to."""

    async def push(self, event: Dict[str, Any]) -> None:
        raise NotImplementedError


class WebSocketChannel(Channel):

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    async def push(self, event: Dict[str, Any]) -> None:
        if self.websocket.application_state != WebSocketState.CONNECTED:
            raise ChannelPushFailure("WebSocket is no longer connected")
        try:
            await self.websocket.send_json(event)
        except Exception as exc:
            raise ChannelPushFailure(f"WebSocket send failed: {exc}") from exc

    def __repr__(self) -> str:
        return f"<WebSocketChannel {id(self.websocket):#x}>"


class ConnectionRegistry:
    """
    Process-local map of user id -> the one channel currently addressing that user.

    Entries do not survive a restart; clients reconnect. The lock only guards
    the dict and is never held while awaiting a channel or the message store.
    """

    def __init__(self) -> None:
        self._channels: Dict[str, Channel] = {}
        self._lock = asyncio.Lock()

    async def register(self, user_id: str, channel: Channel) -> Optional[Channel]:
        """Insert or replace the channel for *user_id*; returns the abandoned one."""
        async with self._lock:
            previous = self._channels.get(user_id)
            self._channels[user_id] = channel
        if previous is not None and previous is not channel:
            logger.info("User %s reconnected, replacing channel %r", user_id, previous)
            return previous
        return None

    async def unregister(self, user_id: str, channel: Channel) -> bool:
        """Remove the mapping only if *channel* is still the current one."""
        async with self._lock:
            if self._channels.get(user_id) is not channel:
                return False
            del self._channels[user_id]
        return True

    async def lookup(self, user_id: str) -> Optional[Channel]:
        async with self._lock:
            return self._channels.get(user_id)

    async def is_online(self, user_id: str) -> bool:
        return await self.lookup(user_id) is not None

    async def online_user_ids(self) -> List[str]:
        async with self._lock:
            return list(self._channels)

    def __len__(self) -> int:
        return len(self._channels)
