from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class UserPublic(BaseModel):

    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class ContactOut(UserPublic):

    is_online: bool = False
    last_seen: Optional[datetime] = None


class PresenceOut(BaseModel):

    user_id: str
    online: bool
    last_seen: Optional[datetime] = None
