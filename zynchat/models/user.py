from datetime import datetime
from typing import Optional, TypedDict


class UserDocument(TypedDict, total=False):

    _id: str
    name: str
    email: str
    avatar_url: Optional[str]
    # presence mirror, written only by the presence service
    is_online: bool
    last_seen: Optional[datetime]
