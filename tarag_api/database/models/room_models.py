from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ROOM_COLOR = "#00CAFF"


class MembershipStatus(str, Enum):
    MEMBER = "member"
    INVITED = "invited"
    # self-requested join; nothing produces it yet but it is a valid filter
    WAITING = "waiting"


class Membership(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    user_id: str = Field(alias="userID")
    nickname: Optional[str] = None
    joined_on: datetime = Field(alias="joinedOn")
    status: MembershipStatus = MembershipStatus.MEMBER


class Room(BaseModel):
    """A named travel group as stored in the `rooms` collection."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: Optional[str] = None
    name: str
    invite_code: str = Field(alias="inviteCode")
    room_image: str = Field("", alias="roomImage")
    room_color: str = Field(DEFAULT_ROOM_COLOR, alias="roomColor")
    itinerary_id: Optional[str] = Field(None, alias="itineraryID")
    chat_id: str = Field(alias="chatID")
    admins: List[str] = Field(default_factory=list)
    members: List[Membership] = Field(default_factory=list)
    created_on: datetime = Field(alias="createdOn")
    updated_on: datetime = Field(alias="updatedOn")
    revision: int = 0

    def membership(self, user_id: str) -> Optional[Membership]:
        return next((m for m in self.members if m.user_id == user_id), None)

    def is_admin(self, user_id: str) -> bool:
        return user_id in self.admins

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Room":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        # older documents stored "no itinerary" as an empty string
        if not data.get("itineraryID"):
            data.pop("itineraryID", None)
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)
