import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from zynchat.config import Settings, get_settings
from zynchat.database.connection import close_mongo_connection, connect_to_mongo, get_database
from zynchat.repositories.friend_repository import FriendRepository, InMemoryFriendRepository
from zynchat.repositories.message_repository import InMemoryMessageStore, MessageRepository
from zynchat.repositories.user_repository import InMemoryUserRepository, UserRepository
from zynchat.routers.chat import router as chat_router
from zynchat.routers.contacts import router as contacts_router
from zynchat.routers.presence import router as presence_router
from zynchat.services.chat_service import ChatService
from zynchat.services.friend_service import FriendService
from zynchat.services.presence_service import PresenceService
from zynchat.utils.errors import RecipientNotAllowed, StoreUnavailable, ValidationError
from zynchat.utils.websocket_manager import ConnectionRegistry

logger = logging.getLogger(__name__)


def _build_state(app: FastAPI, config: Settings, db=None) -> None:
    if db is None:
        message_store, user_repo, friend_repo = InMemoryMessageStore(), InMemoryUserRepository(), InMemoryFriendRepository()
    else:
        message_store, user_repo, friend_repo = MessageRepository(db), UserRepository(db), FriendRepository(db)

    registry = ConnectionRegistry()
    app.state.registry = registry
    app.state.message_store = message_store
    app.state.user_repo = user_repo
    app.state.friend_repo = friend_repo
    app.state.chat_service = ChatService(
        message_store,
        registry,
        friend_repo=friend_repo,
        store_timeout=config.STORE_TIMEOUT_SECONDS,
        enforce_contacts=config.ENFORCE_CONTACTS,
    )
    app.state.presence_service = PresenceService(registry, user_repo, friend_repo, store_timeout=config.STORE_TIMEOUT_SECONDS)
    app.state.friend_service = FriendService(friend_repo, user_repo, registry)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Settings = app.state.settings
    db = None
    if config.STORE_BACKEND == "mongo":
        await connect_to_mongo(config.MONGODB_URL, config.MONGODB_DB, config.STORE_TIMEOUT_SECONDS)
        db = get_database()
    _build_state(app, config, db)
    try:
        await app.state.message_store.ensure_indexes()
        await app.state.friend_repo.ensure_indexes()
    except PyMongoError as exc:
        logger.warning("Could not create indexes, continuing without them: %s", exc)
    logger.info("zynchat started with %s message store", app.state.message_store.name)
    try:
        yield
    finally:
        if db is not None:
            await close_mongo_connection()


def create_app(config: Optional[Settings] = None) -> FastAPI:
    config = config or get_settings()
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title="zynchat direct messages", lifespan=lifespan)
    app.state.settings = config

    app.include_router(chat_router)
    app.include_router(contacts_router)
    app.include_router(presence_router)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        status_code = 403 if isinstance(exc, RecipientNotAllowed) else 400
        return JSONResponse(status_code=status_code, content={"code": exc.code, "detail": exc.detail})

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        return JSONResponse(status_code=503, content={"code": exc.code, "detail": exc.detail})

    @app.get("/health")
    async def health(request: Request):
        state = request.app.state
        return {"status": "ok", "store": state.message_store.name, "online": len(state.registry)}

    return app


app = create_app()
