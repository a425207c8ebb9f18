import asyncio
import logging
from typing import Awaitable, TypeVar

from zynchat.utils.errors import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_store_timeout(call: Awaitable[T], timeout: float) -> T:
    """Await a store call, turning a hang into StoreUnavailable."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.error("Store did not answer within %ss", timeout)
        raise StoreUnavailable(f"Store timed out after {timeout}s") from exc
