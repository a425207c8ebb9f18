from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from zynchat.models.user import UserDocument
from zynchat.utils.errors import StoreUnavailable


class UserRepository:
    """Read access to the identity store plus the two presence fields we own."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")

    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        try:
            return await self._collection.find_one({"_id": user_id}, {"email": 0})
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def get_users(self, user_ids: Iterable[str]) -> List[UserDocument]:
        ids = list(user_ids)
        if not ids:
            return []
        try:
            cursor = self._collection.find({"_id": {"$in": ids}}, {"email": 0})
            return await cursor.to_list(length=len(ids))
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc

    async def set_presence(self, user_id: str, is_online: bool, last_seen: Optional[datetime]) -> bool:
        try:
            result = await self._collection.update_one(
                {"_id": user_id},
                {"$set": {"is_online": is_online, "last_seen": last_seen}},
            )
        except PyMongoError as exc:
            raise StoreUnavailable(str(exc)) from exc
        return bool(result.matched_count)

    async def upsert_user(self, user_id: str, name: str, email: str | None = None, avatar_url: str | None = None) -> None:
        doc: Dict[str, Any] = {"name": name, "email": email, "avatar_url": avatar_url}
        await self._collection.update_one(
            {"_id": user_id},
            {"$set": doc, "$setOnInsert": {"is_online": False, "last_seen": None}},
            upsert=True,
        )


class InMemoryUserRepository(UserRepository):

    def __init__(self) -> None:
        self._users: Dict[str, UserDocument] = {}

    async def get_user(self, user_id: str) -> Optional[UserDocument]:
        user = self._users.get(user_id)
        return dict(user) if user else None  # type: ignore[return-value]

    async def get_users(self, user_ids: Iterable[str]) -> List[UserDocument]:
        return [dict(self._users[u]) for u in user_ids if u in self._users]  # type: ignore[misc]

    async def set_presence(self, user_id: str, is_online: bool, last_seen: Optional[datetime]) -> bool:
        user = self._users.get(user_id)
        if user is None:
            return False
        user["is_online"] = is_online
        user["last_seen"] = last_seen
        return True

    async def upsert_user(self, user_id: str, name: str, email: str | None = None, avatar_url: str | None = None) -> None:
        user = self._users.setdefault(user_id, {"_id": user_id, "is_online": False, "last_seen": None})
        user.update({"name": name, "email": email, "avatar_url": avatar_url})
