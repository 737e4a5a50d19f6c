from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from tarag_api.config import Settings

ROOMS = "rooms"
USERS = "users"
ITINERARIES = "itineraries"


def get_client(settings: Settings) -> AsyncIOMotorClient:
    return AsyncIOMotorClient(settings.mongo_url, tz_aware=True)


def get_database(client: AsyncIOMotorClient, settings: Settings) -> AsyncIOMotorDatabase:
    return client[settings.mongo_db_name]
