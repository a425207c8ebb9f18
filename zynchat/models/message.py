from datetime import datetime
from typing import TypedDict


class MessageDocument(TypedDict, total=False):
    _id: str
    sender_id: str
    receiver_id: str
    content: str
    # assigned by the store, authoritative for ordering
    created_at: datetime
