from fastapi import Header, HTTPException, Request, WebSocket
from starlette.requests import HTTPConnection

from zynchat.services.chat_service import ChatService
from zynchat.services.friend_service import FriendService
from zynchat.services.presence_service import PresenceService


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    # identity is asserted by the auth proxy in front of us
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def _state(conn: HTTPConnection):
    return conn.app.state


def get_chat_service(request: Request) -> ChatService:
    return _state(request).chat_service


def get_friend_service(request: Request) -> FriendService:
    return _state(request).friend_service


def get_presence_service(request: Request) -> PresenceService:
    return _state(request).presence_service


def get_ws_chat_service(websocket: WebSocket) -> ChatService:
    return _state(websocket).chat_service


def get_ws_presence_service(websocket: WebSocket) -> PresenceService:
    return _state(websocket).presence_service
