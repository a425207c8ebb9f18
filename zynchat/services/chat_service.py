import logging
from typing import List, Optional

from zynchat.repositories.friend_repository import FriendRepository
from zynchat.repositories.message_repository import MessageStore
from zynchat.schemas.events import ReceiveMessageEvent
from zynchat.schemas.message import HistoryMessage, MessageOut
from zynchat.utils.errors import EmptyMessage, InvalidRecipient, RecipientNotAllowed
from zynchat.utils.timeouts import with_store_timeout
from zynchat.utils.websocket_manager import ConnectionRegistry

logger = logging.getLogger(__name__)


class ChatService:
    """
    Sends direct messages and serves conversation history.

    The message store is the source of truth. Realtime push is best-effort:
    a recipient that missed a push sees the message on its next history load.
    """

    def __init__(
        self,
        message_store: MessageStore,
        registry: ConnectionRegistry,
        friend_repo: Optional[FriendRepository] = None,
        store_timeout: float = 5.0,
        enforce_contacts: bool = False,
    ) -> None:
        self._message_store = message_store
        self._registry = registry
        self._friend_repo = friend_repo
        self._store_timeout = store_timeout
        self._enforce_contacts = enforce_contacts

    async def send_message(self, sender_id: str, receiver_id: str, content: str) -> MessageOut:
        if sender_id == receiver_id:
            raise InvalidRecipient()
        if not content or not content.strip():
            raise EmptyMessage()
        if self._enforce_contacts:
            await self._check_contacts(sender_id, receiver_id)

        message = await with_store_timeout(self._message_store.append(sender_id, receiver_id, content), self._store_timeout)
        logger.debug("Stored message %s from %s to %s", message.id, sender_id, receiver_id)

        # never under the registry lock: lookup returns before we push
        channel = await self._registry.lookup(receiver_id)
        if channel is None:
            logger.debug("Receiver %s offline, message %s waits for history load", receiver_id, message.id)
            return message
        event = ReceiveMessageEvent(message=message).model_dump(mode="json")
        try:
            await channel.push(event)
        except Exception as exc:
            logger.warning("Realtime push of message %s to %s failed: %s", message.id, receiver_id, exc)
        return message

    async def load_history(self, caller_id: str, other_id: str) -> List[HistoryMessage]:
        messages = await with_store_timeout(self._message_store.list_conversation(caller_id, other_id), self._store_timeout)
        return [HistoryMessage.for_caller(m, caller_id) for m in messages]

    async def _check_contacts(self, sender_id: str, receiver_id: str) -> None:
        if self._friend_repo is None:
            return
        allowed = await with_store_timeout(self._friend_repo.are_contacts(sender_id, receiver_id), self._store_timeout)
        if not allowed:
            raise RecipientNotAllowed()

