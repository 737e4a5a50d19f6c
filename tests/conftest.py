from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from tarag_api.auth.identity import TokenIdentityResolver
from tarag_api.config import Settings
from tarag_api.directory.itineraries import ItineraryDirectory
from tarag_api.directory.users import UserDirectory
from tarag_api.main import create_app
from tarag_api.rooms.service import RoomService
from tarag_api.rooms.store import RoomStore
from tarag_api.uploads.storage import RoomImageStorage

JWT_SECRET = "test-secret"


class FakeClock:
    """Deterministic clock; every call moves forward one minute."""

    def __init__(self, start=datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current = self.current + timedelta(minutes=1)
        return self.current


@pytest.fixture
def settings(tmp_path):
    return Settings(
        jwt_secret=JWT_SECRET,
        mongo_db_name="tarag_test",
        uploads_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def db():
    return AsyncMongoMockClient(tz_aware=True)["tarag_test"]


@pytest.fixture
async def users(db):
    """alice, bob, carol and dave in the users collection, keyed by name."""
    ids = {}
    for name in ("alice", "bob", "carol", "dave"):
        oid = ObjectId()
        await db["users"].insert_one({"_id": oid, "username": name, "email": f"{name}@example.com"})
        ids[name] = str(oid)
    return ids


@pytest.fixture
async def itinerary_id(db):
    oid = ObjectId()
    await db["itineraries"].insert_one({
        "_id": oid,
        "title": "Palawan Escape",
        "startDate": datetime(2025, 7, 1),
        "endDate": datetime(2025, 7, 5),
        "planDaily": False,
        "locations": [],
    })
    return str(oid)


@pytest.fixture
async def store(db):
    room_store = RoomStore(db["rooms"])
    await room_store.ensure_indexes()
    return room_store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def image_storage(settings):
    return RoomImageStorage(settings.uploads_dir, max_bytes=1024)


@pytest.fixture
def service(db, store, clock, image_storage):
    return RoomService(
        store,
        UserDirectory(db["users"]),
        ItineraryDirectory(db["itineraries"]),
        images=image_storage,
        clock=clock,
    )


@pytest.fixture
def resolver():
    return TokenIdentityResolver(JWT_SECRET)


@pytest.fixture
def auth(resolver):
    def _headers(user_id):
        return {"Authorization": f"Bearer {resolver.create_access_token(user_id)}"}
    return _headers


@pytest.fixture
async def app(settings, db):
    application = create_app(settings, database=db)
    await application.state.room_store.ensure_indexes()
    return application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
