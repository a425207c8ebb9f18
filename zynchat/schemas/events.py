"""Websocket event payloads.

Every frame on ``/ws/chat/{user_id}`` is a JSON object with a ``type`` tag,
sent as a text or binary (UTF-8) frame.
Client frames are validated here before they reach the chat service; anything
that does not parse becomes ``MalformedPayload``.
"""
import json
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from zynchat.schemas.message import MessageOut
from zynchat.utils.errors import MalformedPayload


class SendMessageEvent(BaseModel):
    """client -> server: intent to send a direct message."""

    type: Literal["send_message"]
    receiver_id: str = Field(min_length=1)
    content: str
    client_message_id: Optional[str] = None


class ReceiveMessageEvent(BaseModel):
    """server -> recipient: realtime delivery of a persisted message."""

    type: Literal["receive_message"] = "receive_message"
    message: MessageOut


class MessageSentEvent(BaseModel):
    """server -> sender: acknowledgement carrying the persisted message."""

    type: Literal["message_sent"] = "message_sent"
    client_message_id: Optional[str] = None
    message: MessageOut


class ErrorEvent(BaseModel):

    type: Literal["error"] = "error"
    code: str
    detail: str
    client_message_id: Optional[str] = None


class PresenceEvent(BaseModel):

    type: Literal["presence"] = "presence"
    user_id: str
    online: bool
    last_seen: Optional[datetime] = None


def parse_client_event(raw: str | bytes) -> SendMessageEvent:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedPayload("Payload is not valid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedPayload("Payload must be a JSON object")
    try:
        return SendMessageEvent.model_validate(data)
    except PydanticValidationError as exc:
        raise MalformedPayload(f"Invalid {data.get('type')!r} payload") from exc
