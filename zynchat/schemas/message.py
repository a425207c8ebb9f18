from datetime import datetime
from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field


def conversation_key(user_a: str, user_b: str) -> Tuple[str, str]:
    """A conversation is the unordered pair of its two participants."""
    return tuple(sorted((user_a, user_b)))  # type: ignore[return-value]


class MessageOut(BaseModel):

    model_config = ConfigDict(frozen=True)

    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "MessageOut":
        return cls(
            id=str(doc["_id"]),
            sender_id=doc["sender_id"],
            receiver_id=doc["receiver_id"],
            content=doc["content"],
            created_at=doc["created_at"],
        )


class HistoryMessage(MessageOut):
    """A stored message labelled from the requesting user's point of view."""

    from_me: bool

    @classmethod
    def for_caller(cls, message: MessageOut, caller_id: str) -> "HistoryMessage":
        return cls(**message.model_dump(), from_me=message.sender_id == caller_id)


class SendMessageRequest(BaseModel):

    receiver_id: str = Field(min_length=1)
    content: str
