from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from tarag_api.auth.identity import get_current_user_id
from tarag_api.rooms.service import RoomService
from tarag_api.uploads.storage import RoomImageStorage

router = APIRouter()


def get_room_service(request: Request) -> RoomService:
    return request.app.state.room_service


def get_image_storage(request: Request) -> RoomImageStorage:
    return request.app.state.image_storage


# --- request bodies ---

class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RoomRequest(_Body):
    room_id: str = Field(alias="roomID", min_length=1)


class CreateRoomRequest(_Body):
    name: str
    invited_members: Optional[List[str]] = Field(None, alias="invitedMembers")
    itinerary_id: Optional[str] = Field(None, alias="itineraryID")


class UpdateColorRequest(RoomRequest):
    color: str = Field(min_length=1)


class UpdateItineraryRequest(RoomRequest):
    itinerary_id: str = Field(alias="itineraryID", min_length=1)


class MemberRequest(RoomRequest):
    user_id: str = Field(alias="userID", min_length=1)


class UpdateNicknameRequest(MemberRequest):
    nickname: str


# --- routes ---

@router.get("")
async def list_rooms(
    status: str = "member",
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    rooms = await service.list_rooms(user_id, status)
    return {"message": "Rooms retrieved successfully", "data": [r.to_json() for r in rooms]}


@router.get("/view/{room_id}")
async def view_room(
    room_id: str,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    detail = await service.get_room_detail(user_id, room_id)
    return {"message": "Room details retrieved successfully", "data": detail.to_json()}


@router.post("/specific")
async def specific_room(
    req: RoomRequest,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    detail = await service.get_room_detail(user_id, req.room_id)
    return {"message": "Room details retrieved successfully", "data": detail.to_json()}


@router.post("/create", status_code=201)
async def create_room(
    req: CreateRoomRequest,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    room = await service.create_room(user_id, req.name, req.invited_members, req.itinerary_id)
    return {"message": "Room created successfully", "data": room.to_json()}


@router.post("/leave")
async def leave_room(
    req: RoomRequest,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    result = await service.leave_room(user_id, req.room_id)
    if result["roomDeleted"]:
        message = "You have left the room. The room has been deleted as it has no members."
    else:
        message = "You have left the room successfully."
    return {"message": message, "data": result}


@router.post("/update-image")
async def update_room_image(
    room_id: str = Form(..., alias="roomID", min_length=1),
    image: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
    storage: RoomImageStorage = Depends(get_image_storage),
):
    image_ref = await storage.save(image, room_id)
    try:
        await service.update_room_image(user_id, room_id, image_ref)
    except Exception:
        storage.delete(image_ref)
        raise
    return {"message": "Room image updated successfully", "data": {"roomImage": image_ref}}


@router.post("/update-color")
async def update_room_color(
    req: UpdateColorRequest,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    color = await service.update_room_color(user_id, req.room_id, req.color)
    return {"message": "Room color updated successfully", "data": {"roomColor": color}}


@router.post("/update-itinerary")
async def update_attached_itinerary(
    req: UpdateItineraryRequest,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    itinerary_id = await service.update_attached_itinerary(user_id, req.room_id, req.itinerary_id)
    return {"message": "Itinerary attached successfully", "data": {"itineraryID": itinerary_id}}


@router.post("/invite")
async def invite_user(
    req: MemberRequest,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    await service.invite_user(user_id, req.room_id, req.user_id)
    return {"message": "User invited successfully", "data": {"userID": req.user_id}}


@router.post("/approve-invite")
async def approve_invite(
    req: MemberRequest,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    await service.approve_invite(user_id, req.room_id, req.user_id)
    return {"message": "Invite approved successfully", "data": {"userID": req.user_id, "status": "member"}}


@router.post("/update-nickname")
async def update_nickname(
    req: UpdateNicknameRequest,
    user_id: str = Depends(get_current_user_id),
    service: RoomService = Depends(get_room_service),
):
    await service.update_nickname(user_id, req.room_id, req.user_id, req.nickname)
    return {"message": "Nickname updated successfully"}
