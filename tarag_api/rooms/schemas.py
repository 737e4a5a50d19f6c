from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tarag_api.database.models.room_models import Room

UNKNOWN_USERNAME = "Unknown"


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class RoomListItem(_Payload):
    id: str
    name: str
    room_image: Optional[str] = Field(None, alias="roomImage")
    member_count: int = Field(alias="memberCount")

    @classmethod
    def from_room(cls, room: Room) -> "RoomListItem":
        return cls(
            id=room.id,
            name=room.name,
            roomImage=room.room_image or None,
            memberCount=len(room.members),
        )


class MemberView(_Payload):
    user_id: str = Field(alias="userID")
    nickname: Optional[str] = None
    username: str
    joined_on: datetime = Field(alias="joinedOn")
    status: str


class RoomSummary(_Payload):
    id: str
    name: str
    invite_code: str = Field(alias="inviteCode")
    room_color: str = Field(alias="roomColor")
    chat_id: str = Field(alias="chatID")
    itinerary_id: Optional[str] = Field(None, alias="itineraryID")
    admins: List[str]
    members: List[MemberView]


class RoomDetail(_Payload):
    id: str
    name: str
    invite_code: str = Field(alias="inviteCode")
    room_image: Optional[str] = Field(None, alias="roomImage")
    room_color: str = Field(alias="roomColor")
    itinerary_id: Optional[str] = Field(None, alias="itineraryID")
    itinerary_title: Optional[str] = Field(None, alias="itineraryTitle")
    itinerary_start_date: Optional[datetime] = Field(None, alias="itineraryStartDate")
    itinerary_end_date: Optional[datetime] = Field(None, alias="itineraryEndDate")
    chat_id: str = Field(alias="chatID")
    admins: List[str]
    members: List[MemberView]


def member_views(room: Room, usernames: Dict[str, str]) -> List[MemberView]:
    return [
        MemberView(
            userID=m.user_id,
            nickname=m.nickname or None,
            username=usernames.get(m.user_id) or UNKNOWN_USERNAME,
            joinedOn=m.joined_on,
            status=m.status,
        )
        for m in room.members
    ]
