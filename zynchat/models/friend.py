from datetime import datetime
from typing import TypedDict


class FriendDocument(TypedDict, total=False):
    _id: str
    user_id: str
    friend_id: str
    created_at: datetime
