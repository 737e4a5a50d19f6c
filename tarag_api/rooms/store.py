import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pymongo
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import DuplicateKeyError

from tarag_api.database.models.room_models import Room

logger = logging.getLogger(__name__)


class InviteCodeTaken(Exception):
    """Raised by insert when the unique index on inviteCode rejects the room."""


def _object_id(room_id: str) -> Optional[ObjectId]:
    if not room_id or not ObjectId.is_valid(room_id):
        return None
    return ObjectId(room_id)


def _revision_filter(revision: int) -> Dict[str, Any]:
    # rooms written before revisions existed have no field yet
    if revision == 0:
        return {"$or": [{"revision": 0}, {"revision": {"$exists": False}}]}
    return {"revision": revision}


class RoomStore:
    """
    Persistence for Room documents.

    Membership changes go through save_membership, which only applies when
    the stored revision still matches the one that was read. Scalar settings
    use targeted $set updates that hand back the pre-write document.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def ensure_indexes(self):
        await self.collection.create_index("inviteCode", unique=True)
        await self.collection.create_index("itineraryID")
        await self.collection.create_index([("members.userID", pymongo.ASCENDING), ("members.status", pymongo.ASCENDING)])
        await self.collection.create_index("admins")
        await self.collection.create_index([("createdOn", pymongo.DESCENDING)])
        await self.collection.create_index("updatedOn")

    async def insert(self, room: Room) -> Room:
        try:
            result = await self.collection.insert_one(room.to_document())
        except DuplicateKeyError as e:
            key_pattern = (e.details or {}).get("keyPattern") or {}
            if key_pattern and "inviteCode" not in key_pattern:
                raise
            raise InviteCodeTaken(room.invite_code)
        return room.model_copy(update={"id": str(result.inserted_id)})

    async def get(self, room_id: str) -> Optional[Room]:
        oid = _object_id(room_id)
        if oid is None:
            return None
        doc = await self.collection.find_one({"_id": oid})
        return Room.from_document(doc) if doc else None

    async def list_for_member(self, user_id: str, status: str) -> List[Room]:
        cursor = self.collection.find({"members": {"$elemMatch": {"userID": user_id, "status": status}}})
        docs = await cursor.to_list(length=None)
        rooms = [Room.from_document(doc) for doc in docs]
        return sorted(rooms, key=lambda r: r.created_on, reverse=True)

    async def set_fields(
        self, room_id: str, fields: Dict[str, Any], now: datetime, admin_id: Optional[str] = None
    ) -> Optional[Room]:
        """$set the fields and return the room as it was just before the write, or None if nothing matched."""
        oid = _object_id(room_id)
        if oid is None:
            return None
        query: Dict[str, Any] = {"_id": oid}
        if admin_id is not None:
            query["admins"] = admin_id
        before = await self.collection.find_one_and_update(
            query,
            {"$set": {**fields, "updatedOn": now}},
            return_document=pymongo.ReturnDocument.BEFORE,
        )
        return Room.from_document(before) if before else None

    async def save_membership(self, room: Room, now: datetime) -> bool:
        oid = _object_id(room.id)
        if oid is None:
            return False
        doc = room.to_document()
        result = await self.collection.update_one(
            {"_id": oid, **_revision_filter(room.revision)},
            {
                "$set": {"members": doc["members"], "admins": doc["admins"], "updatedOn": now},
                "$inc": {"revision": 1},
            },
        )
        if result.matched_count == 0:
            logger.warning(f"⚠️ Room {room.id} changed since revision {room.revision}, write skipped")
            return False
        return True

    async def delete(self, room_id: str, revision: Optional[int] = None) -> bool:
        oid = _object_id(room_id)
        if oid is None:
            return False
        query: Dict[str, Any] = {"_id": oid}
        if revision is not None:
            query.update(_revision_filter(revision))
        result = await self.collection.delete_one(query)
        return result.deleted_count == 1
