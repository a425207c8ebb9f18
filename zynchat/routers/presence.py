from fastapi import APIRouter, Depends

from zynchat.schemas.user import PresenceOut
from zynchat.services.presence_service import PresenceService
from zynchat.utils.dependencies import get_presence_service


router = APIRouter(prefix="/presence", tags=["chat"])


@router.get("/{user_id}", response_model=PresenceOut)
async def presence(user_id: str, service: PresenceService = Depends(get_presence_service)):
    """
    Online status comes from the live connection registry; last_seen from the identity store.
    """
    return await service.status(user_id)
