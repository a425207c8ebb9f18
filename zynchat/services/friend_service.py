import logging
from typing import List

from zynchat.repositories.friend_repository import FriendRepository
from zynchat.repositories.user_repository import UserRepository
from zynchat.schemas.user import ContactOut
from zynchat.utils.errors import InvalidRecipient
from zynchat.utils.websocket_manager import ConnectionRegistry

logger = logging.getLogger(__name__)


class FriendService:
    def __init__(self, friend_repo: FriendRepository, user_repo: UserRepository, registry: ConnectionRegistry):
        self.friend_repo = friend_repo
        self.user_repo = user_repo
        self.registry = registry

    async def add_contact(self, user_id: str, friend_id: str) -> bool:
        if user_id == friend_id:
            raise InvalidRecipient("Cannot add yourself as a contact")
        created = await self.friend_repo.add(user_id, friend_id)
        if created:
            logger.info("Contact added: %s <-> %s", user_id, friend_id)
        return created

    async def remove_contact(self, user_id: str, friend_id: str) -> bool:
        return await self.friend_repo.remove(user_id, friend_id)

    async def list_contacts(self, user_id: str) -> List[ContactOut]:
        friend_ids = await self.friend_repo.list_friends(user_id)
        profiles = {u["_id"]: u for u in await self.user_repo.get_users(friend_ids)}
        contacts = []
        for fid in friend_ids:
            profile = profiles.get(fid, {})
            # the registry is authoritative for online; the stored flag can be stale
            online = await self.registry.is_online(fid)
            contacts.append(ContactOut(
                id=fid,
                name=profile.get("name"),
                avatar_url=profile.get("avatar_url"),
                is_online=online,
                last_seen=None if online else profile.get("last_seen"),
            ))
        return contacts
