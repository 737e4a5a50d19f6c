import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from tarag_api.auth.identity import TokenIdentityResolver
from tarag_api.config import Settings, load_settings
from tarag_api.database.mongo import ITINERARIES, ROOMS, USERS, get_client, get_database
from tarag_api.directory.itineraries import ItineraryDirectory
from tarag_api.directory.users import UserDirectory
from tarag_api.errors import TaraGError
from tarag_api.rooms.router import router as rooms_router
from tarag_api.rooms.service import RoomService
from tarag_api.rooms.store import RoomStore
from tarag_api.uploads.storage import RoomImageStorage

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = str(first.get("loc", ["request"])[-1])
    if first.get("type") == "missing":
        return f"{field} is required"
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"


def create_app(settings: Optional[Settings] = None, database=None) -> FastAPI:
    """
    Build the API. Pass `database` to run against an already-open database
    (tests use an in-memory one); otherwise a motor client is created from settings.
    """
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    client = None
    if database is None:
        client = get_client(settings)
        database = get_database(client, settings)

    room_store = RoomStore(database[ROOMS])

    # --- Lifespan ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await room_store.ensure_indexes()
        logger.info("✅ Room indexes ensured")
        yield
        if client is not None:
            client.close()

    app = FastAPI(title="TaraG API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    image_storage = RoomImageStorage(settings.uploads_dir, max_bytes=settings.max_room_image_bytes)

    app.state.settings = settings
    app.state.room_store = room_store
    app.state.image_storage = image_storage
    app.state.identity_resolver = TokenIdentityResolver(
        settings.jwt_secret, settings.jwt_algorithm, settings.access_token_expire_minutes
    )
    app.state.room_service = RoomService(
        room_store,
        UserDirectory(database[USERS]),
        ItineraryDirectory(database[ITINERARIES]),
        images=image_storage,
        invite_code_attempts=settings.invite_code_max_attempts,
    )

    # --- Error mapping ---
    @app.exception_handler(TaraGError)
    async def handle_tarag_error(request: Request, exc: TaraGError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
        else:
            logger.warning(f"⚠️ {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"❌ Unexpected error in {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"message": "Internal server error"})

    # --- Routers ---
    app.include_router(rooms_router, prefix="/api/rooms", tags=["Rooms"])

    os.makedirs(settings.uploads_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.uploads_dir), name="uploads")

    @app.get("/")
    def root():
        return {"message": "TaraG Backend is Running"}

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tarag_api.main:create_app", factory=True, host="0.0.0.0", port=int(os.getenv("PORT", 5000)), reload=True)
