from typing import Dict, Iterable

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection


def _lookup_key(user_id: str):
    return ObjectId(user_id) if ObjectId.is_valid(user_id) else user_id


class UserDirectory:
    """Read-only view over the accounts collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def lookup_usernames(self, user_ids: Iterable[str]) -> Dict[str, str]:
        keys = list({_lookup_key(uid) for uid in user_ids})
        if not keys:
            return {}
        cursor = self.collection.find({"_id": {"$in": keys}}, {"username": 1})
        users = await cursor.to_list(length=None)
        return {str(u["_id"]): u.get("username") for u in users if u.get("username")}

    async def exists(self, user_id: str) -> bool:
        doc = await self.collection.find_one({"_id": _lookup_key(user_id)}, {"_id": 1})
        return doc is not None
