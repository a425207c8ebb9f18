import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from zynchat.models.message import MessageDocument
from zynchat.schemas.message import MessageOut, conversation_key
from zynchat.utils.errors import EmptyMessage, StoreUnavailable

logger = logging.getLogger(__name__)


class MessageStore:
    """
    Durable, append-only message log.

    append() assigns id and created_at. list_conversation() returns both
    directions of a user pair, oldest first; it is a snapshot, not a stream.
    """

    name = "abstract"

    def __init__(self) -> None:
        self._last_ts: datetime | None = None

    async def ensure_indexes(self) -> None:
        return

    async def append(self, sender_id: str, receiver_id: str, text: str) -> MessageOut:
        raise NotImplementedError

    async def list_conversation(self, user_a: str, user_b: str) -> List[MessageOut]:
        raise NotImplementedError

    def _next_timestamp(self) -> datetime:
        # BSON dates keep milliseconds; bump past the previous stamp so
        # back-to-back appends never share a created_at
        now = datetime.now(timezone.utc)
        now = now.replace(microsecond=now.microsecond // 1000 * 1000)
        if self._last_ts is not None and now <= self._last_ts:
            now = self._last_ts + timedelta(milliseconds=1)
        self._last_ts = now
        return now

    @staticmethod
    def _check_content(text: str) -> str:
        # whitespace-only is rejected; anything else is kept byte for byte
        if not text or not text.strip():
            raise EmptyMessage()
        return text


class MessageRepository(MessageStore):

    name = "mongo"

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        super().__init__()
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index(
            [("sender_id", ASCENDING), ("receiver_id", ASCENDING), ("created_at", ASCENDING)]
        )

    async def append(self, sender_id: str, receiver_id: str, text: str) -> MessageOut:
        doc: MessageDocument = {
            "sender_id": sender_id,
            "receiver_id": receiver_id,
            "content": self._check_content(text),
            "created_at": self._next_timestamp(),
        }
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as exc:
            logger.error("Failed to append message from %s: %s", sender_id, exc)
            raise StoreUnavailable(str(exc)) from exc
        doc["_id"] = str(result.inserted_id)
        return MessageOut.from_document(doc)

    async def list_conversation(self, user_a: str, user_b: str) -> List[MessageOut]:
        query = {
            "$or": [
                {"sender_id": user_a, "receiver_id": user_b},
                {"sender_id": user_b, "receiver_id": user_a},
            ]
        }
        try:
            cursor = self.collection.find(query).sort([("created_at", ASCENDING), ("_id", ASCENDING)])
            items = await cursor.to_list(length=None)
        except PyMongoError as exc:
            logger.error("Failed to load conversation %s/%s: %s", user_a, user_b, exc)
            raise StoreUnavailable(str(exc)) from exc
        return [MessageOut.from_document(it) for it in items]


class InMemoryMessageStore(MessageStore):
    """Process-local store for single-node runs and tests."""

    name = "memory"

    def __init__(self) -> None:
        super().__init__()
        self._messages: List[MessageOut] = []
        self._lock = asyncio.Lock()

    async def append(self, sender_id: str, receiver_id: str, text: str) -> MessageOut:
        content = self._check_content(text)
        async with self._lock:
            message = MessageOut(
                id=f"{len(self._messages) + 1:012d}",
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
                created_at=self._next_timestamp(),
            )
            self._messages.append(message)
        return message

    async def list_conversation(self, user_a: str, user_b: str) -> List[MessageOut]:
        key = conversation_key(user_a, user_b)
        async with self._lock:
            return [m for m in self._messages if conversation_key(m.sender_id, m.receiver_id) == key]

    def __len__(self) -> int:
        return len(self._messages)
