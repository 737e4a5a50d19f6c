from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection

from tarag_api.database.models.directory_models import ItinerarySummary


class ItineraryDirectory:
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def get_summary(self, itinerary_id: str) -> Optional[ItinerarySummary]:
        if not itinerary_id or not ObjectId.is_valid(itinerary_id):
            return None
        doc = await self.collection.find_one(
            {"_id": ObjectId(itinerary_id)},
            {"title": 1, "startDate": 1, "endDate": 1},
        )
        if not doc:
            return None
        return ItinerarySummary(
            id=str(doc["_id"]),
            title=doc.get("title", ""),
            startDate=doc.get("startDate"),
            endDate=doc.get("endDate"),
        )
