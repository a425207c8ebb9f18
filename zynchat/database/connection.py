import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from zynchat.config import settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db_name: str = settings.MONGODB_DB


async def connect_to_mongo(
    url: str | None = None,
    db_name: str | None = None,
    timeout_seconds: float | None = None,
) -> None:
    global _client, _db_name
    _db_name = db_name or settings.MONGODB_DB
    if _client is None:
        timeout = settings.STORE_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        _client = AsyncIOMotorClient(
            url or settings.MONGODB_URL,
            serverSelectionTimeoutMS=int(timeout * 1000),
            tz_aware=True,
        )
        logger.info("Connected to MongoDB database %s", _db_name)


async def close_mongo_connection() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed")


def get_database() -> AsyncIOMotorDatabase:
    if _client is None:
        raise RuntimeError("MongoDB client is not connected; call connect_to_mongo() first")
    return _client[_db_name]
