from datetime import datetime, timezone
from typing import List, Set, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from zynchat.models.friend import FriendDocument
from zynchat.utils.errors import StoreUnavailable


class FriendRepository:
    """Contact rows, stored once per direction."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("friends")

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("user_id", ASCENDING), ("friend_id", ASCENDING)], unique=True)

    async def add(self, user_id: str, friend_id: str) -> bool:
        created = False
        now = datetime.now(timezone.utc)
        for a, b in ((user_id, friend_id), (friend_id, user_id)):
            try:
                doc: FriendDocument = {"user_id": a, "friend_id": b, "created_at": now}
                await self._collection.insert_one(doc)
                created = True
            except DuplicateKeyError:
                continue
            except PyMongoError as exc:
                raise StoreUnavailable(str(exc)) from exc
        return created

    async def remove(self, user_id: str, friend_id: str) -> bool:
        try:
            result = await self._collection.delete_many({
                "$or": [
                    {"user_id": user_id, "friend_id": friend_id},
                    {"user_id": friend_id, "friend_id": user_id},
                ]
            })
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return result.deleted_count > 0

    async def list_friends(self, user_id: str) -> List[str]:
        try:
            cursor = self._collection.find({"user_id": user_id}).sort("created_at", ASCENDING)
            return [doc["friend_id"] async for doc in cursor]
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def are_contacts(self, user_id: str, friend_id: str) -> bool:
        try:
            doc = await self._collection.find_one({"user_id": user_id, "friend_id": friend_id})
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return doc is not None


class InMemoryFriendRepository(FriendRepository):

    def __init__(self) -> None:
        self._rows: List[Tuple[str, str]] = []
        self._index: Set[Tuple[str, str]] = set()

    async def ensure_indexes(self) -> None:
        return

    async def add(self, user_id: str, friend_id: str) -> bool:
        created = False
        for row in ((user_id, friend_id), (friend_id, user_id)):
            if row not in self._index:
                self._index.add(row)
                self._rows.append(row)
                created = True
        return created

    async def remove(self, user_id: str, friend_id: str) -> bool:
        doomed = {(user_id, friend_id), (friend_id, user_id)} & self._index
        self._index -= doomed
        self._rows = [r for r in self._rows if r not in doomed]
        return bool(doomed)

    async def list_friends(self, user_id: str) -> List[str]:
        return [b for a, b in self._rows if a == user_id]

    async def are_contacts(self, user_id: str, friend_id: str) -> bool:
        return (user_id, friend_id) in self._index
