from fastapi import APIRouter, Depends, HTTPException

from zynchat.services.friend_service import FriendService
from zynchat.utils.dependencies import get_current_user_id, get_friend_service

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("")
async def contact_list(current_user_id: str = Depends(get_current_user_id), service: FriendService = Depends(get_friend_service)):
    contacts = await service.list_contacts(current_user_id)
    return {"contacts": [c.model_dump(mode="json") for c in contacts]}


@router.post("/{friend_id}")
async def add_contact(friend_id: str, current_user_id: str = Depends(get_current_user_id), service: FriendService = Depends(get_friend_service)):
    created = await service.add_contact(current_user_id, friend_id)
    return {"msg": "Contact added" if created else "Already a contact"}


@router.delete("/{friend_id}")
async def remove_contact(friend_id: str, current_user_id: str = Depends(get_current_user_id), service: FriendService = Depends(get_friend_service)):
    ok = await service.remove_contact(current_user_id, friend_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Contact not found.")
    return {"msg": "Contact removed"}
