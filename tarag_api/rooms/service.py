import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional

from pymongo.errors import PyMongoError

from tarag_api.database.models.room_models import DEFAULT_ROOM_COLOR, Membership, MembershipStatus, Room
from tarag_api.directory.itineraries import ItineraryDirectory
from tarag_api.directory.users import UserDirectory
from tarag_api.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from tarag_api.rooms.codes import generate_chat_id, generate_invite_code, is_hex_color
from tarag_api.rooms.schemas import RoomDetail, RoomListItem, RoomSummary, member_views
from tarag_api.rooms.store import InviteCodeTaken, RoomStore

logger = logging.getLogger(__name__)

MEMBERSHIP_WRITE_ATTEMPTS = 5
VALID_STATUSES = {s.value for s in MembershipStatus}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_millis(value: datetime) -> datetime:
    # BSON dates carry millisecond precision
    return value.replace(microsecond=value.microsecond // 1000 * 1000)


class RoomService:
    """
    Room membership engine.

    Every method takes the id of the already-authenticated requester. Permission
    checks are re-run against a fresh read whenever a guarded write loses a race.
    """

    def __init__(
        self,
        store: RoomStore,
        users: UserDirectory,
        itineraries: ItineraryDirectory,
        images=None,
        invite_code_attempts: int = 100,
        clock: Optional[Callable[[], datetime]] = None,
        code_generator: Callable[[], str] = generate_invite_code,
        chat_id_factory: Callable[[], str] = generate_chat_id,
    ):
        self.store = store
        self.users = users
        self.itineraries = itineraries
        self.images = images
        self.invite_code_attempts = invite_code_attempts
        self._clock = clock or _utcnow
        self._generate_code = code_generator
        self._generate_chat_id = chat_id_factory

    # --- queries ---

    async def list_rooms(self, requester_id: str, status: str = MembershipStatus.MEMBER.value) -> List[RoomListItem]:
        target_status = status if status in VALID_STATUSES else MembershipStatus.MEMBER.value
        rooms = await self.store.list_for_member(requester_id, target_status)
        logger.info(f"🔵 Found {len(rooms)} rooms for {requester_id} with status '{target_status}'")
        return [RoomListItem.from_room(room) for room in rooms]

    async def get_room_detail(self, requester_id: str, room_id: str) -> RoomDetail:
        room = await self._get_room(room_id)
        # any record counts here, invited and waiting users may look at the room
        if room.membership(requester_id) is None:
            raise ForbiddenError("Access denied: User is not a member of this room")

        detail = RoomDetail(
            id=room.id,
            name=room.name,
            inviteCode=room.invite_code,
            roomImage=room.room_image or None,
            roomColor=room.room_color,
            itineraryID=room.itinerary_id,
            chatID=room.chat_id,
            admins=list(room.admins),
            members=member_views(room, await self._usernames(room)),
        )

        if room.itinerary_id:
            try:
                itinerary = await self.itineraries.get_summary(room.itinerary_id)
            except PyMongoError as e:
                logger.warning(f"⚠️ Failed to fetch itinerary {room.itinerary_id} for room {room.id}: {e}")
                itinerary = None
            if itinerary:
                detail.itinerary_title = itinerary.title
                detail.itinerary_start_date = itinerary.start_date
                detail.itinerary_end_date = itinerary.end_date

        return detail

    # --- creation ---

    async def create_room(
        self,
        requester_id: str,
        name: str,
        invited_user_ids: Optional[List[str]] = None,
        itinerary_id: Optional[str] = None,
    ) -> RoomSummary:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Room name is required")

        # stored as given; detail enrichment resolves it later, best-effort
        itinerary_id = (itinerary_id or "").strip() or None

        now = self._now()
        members = [Membership(userID=requester_id, joinedOn=now, status=MembershipStatus.MEMBER)]
        seen = {requester_id}
        for user_id in invited_user_ids or []:
            user_id = (user_id or "").strip()
            if not user_id or user_id in seen:
                continue
            seen.add(user_id)
            members.append(Membership(userID=user_id, joinedOn=now, status=MembershipStatus.INVITED))

        chat_id = self._generate_chat_id()
        for attempt in range(1, self.invite_code_attempts + 1):
            candidate = Room(
                name=name,
                inviteCode=self._generate_code(),
                roomColor=DEFAULT_ROOM_COLOR,
                itineraryID=itinerary_id,
                chatID=chat_id,
                admins=[requester_id],
                members=members,
                createdOn=now,
                updatedOn=now,
            )
            try:
                room = await self.store.insert(candidate)
                break
            except InviteCodeTaken:
                logger.warning(f"⚠️ Invite code {candidate.invite_code} already taken (attempt {attempt})")
        else:
            raise ConflictError("Could not generate a unique invite code, please try again")

        logger.info(f"✅ Room {room.id} created by {requester_id} with invite code {room.invite_code}")
        return RoomSummary(
            id=room.id,
            name=room.name,
            inviteCode=room.invite_code,
            roomColor=room.room_color,
            chatID=room.chat_id,
            itineraryID=room.itinerary_id,
            admins=list(room.admins),
            members=member_views(room, await self._usernames(room)),
        )

    # --- membership ---

    async def leave_room(self, requester_id: str, room_id: str) -> Dict[str, bool]:
        async def apply(room: Room, now: datetime):
            membership = room.membership(requester_id)
            if membership is None:
                raise ForbiddenError("User is not a member of this room")

            if room.is_admin(requester_id):
                other_admins = [a for a in room.admins if a != requester_id]
                other_members = [m for m in room.members if m.user_id != requester_id]
                if not other_admins and other_members:
                    raise ForbiddenError(
                        "You cannot leave the room as the only admin. Please assign another admin first."
                    )
                room.admins = other_admins

            room.members.remove(membership)

        deleted = await self._update_membership(room_id, apply)
        if deleted:
            logger.info(f"🚪 {requester_id} left room {room_id}, room deleted as it has no members")
        else:
            logger.info(f"🔵 {requester_id} left room {room_id}")
        return {"roomDeleted": deleted}

    async def invite_user(self, requester_id: str, room_id: str, target_user_id: str):
        async def apply(room: Room, now: datetime):
            self._require_admin(room, requester_id, "invite users")
            if room.membership(target_user_id) is not None:
                raise ConflictError("User is already a member of this room")
            if not await self.users.exists(target_user_id):
                raise NotFoundError("User not found")
            room.members.append(
                Membership(userID=target_user_id, joinedOn=now, status=MembershipStatus.INVITED)
            )

        await self._update_membership(room_id, apply)
        logger.info(f"📨 {target_user_id} invited to room {room_id} by {requester_id}")

    async def approve_invite(self, requester_id: str, room_id: str, target_user_id: str):
        async def apply(room: Room, now: datetime):
            self._require_admin(room, requester_id, "approve invites")
            membership = room.membership(target_user_id)
            if membership is None:
                raise ValidationError("User is not invited to this room")
            if membership.status != MembershipStatus.INVITED:
                raise ValidationError("User is not in invited status")
            membership.status = MembershipStatus.MEMBER.value
            membership.joined_on = now

        await self._update_membership(room_id, apply)
        logger.info(f"✅ {target_user_id} approved as member of room {room_id}")

    async def update_nickname(self, requester_id: str, room_id: str, target_user_id: str, nickname: str):
        async def apply(room: Room, now: datetime):
            self._require_admin(room, requester_id, "update nicknames")
            membership = room.membership(target_user_id)
            if membership is None:
                raise NotFoundError("User is not a member of this room")
            membership.nickname = (nickname or "").strip() or None

        await self._update_membership(room_id, apply)

    # --- room settings ---

    async def update_room_image(self, requester_id: str, room_id: str, image_ref: str) -> str:
        room = await self._set_room_fields(requester_id, room_id, {"roomImage": image_ref}, "update room image")

        old_image = room.room_image
        if old_image and old_image != image_ref and self.images is not None:
            try:
                self.images.delete(old_image)
            except OSError as e:
                logger.warning(f"⚠️ Failed to delete old room image {old_image}: {e}")
        return image_ref

    async def update_room_color(self, requester_id: str, room_id: str, color: str) -> str:
        async def check(room: Room):
            if not is_hex_color(color):
                raise ValidationError("Invalid color format. Use hex format (e.g., #00CAFF)")

        await self._set_room_fields(requester_id, room_id, {"roomColor": color}, "update room color", check)
        return color

    async def update_attached_itinerary(self, requester_id: str, room_id: str, itinerary_id: str) -> str:
        async def check(room: Room):
            if await self.itineraries.get_summary(itinerary_id) is None:
                raise NotFoundError("Itinerary not found")

        await self._set_room_fields(
            requester_id, room_id, {"itineraryID": itinerary_id}, "update attached itinerary", check
        )
        return itinerary_id

    # --- internals ---

    def _now(self) -> datetime:
        return _to_millis(self._clock())

    async def _get_room(self, room_id: str) -> Room:
        room = await self.store.get(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    @staticmethod
    def _require_admin(room: Room, user_id: str, action: str):
        if not room.is_admin(user_id):
            raise ForbiddenError(f"Only admins can {action}")

    async def _usernames(self, room: Room) -> Dict[str, str]:
        try:
            return await self.users.lookup_usernames(m.user_id for m in room.members)
        except PyMongoError as e:
            logger.warning(f"⚠️ Failed to look up usernames for room {room.id}: {e}")
            return {}

    async def _update_membership(self, room_id: str, apply: Callable[[Room, datetime], Awaitable[None]]) -> bool:
        """Read, mutate and write back members/admins. Returns True if the room was deleted."""
        for _ in range(MEMBERSHIP_WRITE_ATTEMPTS):
            room = await self._get_room(room_id)
            now = self._now()
            await apply(room, now)

            if not room.members:
                if await self.store.delete(room.id, revision=room.revision):
                    return True
            elif await self.store.save_membership(room, now):
                return False

        raise ConflictError("Room was modified concurrently, please retry")

    async def _set_room_fields(
        self,
        requester_id: str,
        room_id: str,
        fields: dict,
        action: str,
        check: Optional[Callable[[Room], Awaitable[None]]] = None,
    ) -> Room:
        """Apply an admin-only $set and return the room as it was before the write."""
        for _ in range(MEMBERSHIP_WRITE_ATTEMPTS):
            room = await self._get_room(room_id)
            self._require_admin(room, requester_id, action)
            if check is not None:
                await check(room)
            previous = await self.store.set_fields(room.id, fields, self._now(), admin_id=requester_id)
            if previous is not None:
                return previous

        raise ConflictError("Room was modified concurrently, please retry")
