import logging

import anyio
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from zynchat.schemas.events import ErrorEvent, MessageSentEvent, parse_client_event
from zynchat.schemas.message import MessageOut, SendMessageRequest
from zynchat.services.chat_service import ChatService
from zynchat.services.presence_service import PresenceService
from zynchat.utils.dependencies import (
    get_chat_service,
    get_current_user_id,
    get_ws_chat_service,
    get_ws_presence_service,
)
from zynchat.utils.errors import ChatError, MalformedPayload
from zynchat.utils.websocket_manager import WebSocketChannel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.websocket("/ws/chat/{user_id}")
async def chat_socket(
    websocket: WebSocket,
    user_id: str,
    service: ChatService = Depends(get_ws_chat_service),
    presence: PresenceService = Depends(get_ws_presence_service),
):
    await websocket.accept()
    channel = WebSocketChannel(websocket)
    await presence.connect(user_id, channel)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            data = frame.get("text")
            if data is None:
                data = frame.get("bytes") or b""
            await _handle_frame(websocket, service, user_id, data)
    except WebSocketDisconnect:
        pass
    finally:
        # the server may be cancelling this task; the offline transition must still run
        with anyio.CancelScope(shield=True):
            await presence.disconnect(user_id, channel)


async def _handle_frame(websocket: WebSocket, service: ChatService, user_id: str, data: str | bytes) -> None:
    try:
        event = parse_client_event(data)
    except MalformedPayload as exc:
        await websocket.send_json(ErrorEvent(code=exc.code, detail=exc.detail).model_dump(mode="json"))
        return

    try:
        message = await service.send_message(user_id, event.receiver_id, event.content)
    except ChatError as exc:
        logger.info("Send from %s rejected: %s", user_id, exc.code)
        reply = ErrorEvent(code=exc.code, detail=exc.detail, client_message_id=event.client_message_id)
    else:
        reply = MessageSentEvent(client_message_id=event.client_message_id, message=message)
    await websocket.send_json(reply.model_dump(mode="json"))


@router.post("/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def send_message(
    body: SendMessageRequest,
    current_user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    return await service.send_message(current_user_id, body.receiver_id, body.content)


@router.get("/messages/{friend_id}")
async def get_history(
    friend_id: str,
    current_user_id: str = Depends(get_current_user_id),
    service: ChatService = Depends(get_chat_service),
):
    messages = await service.load_history(current_user_id, friend_id)
    return {"messages": [m.model_dump(mode="json") for m in messages]}
