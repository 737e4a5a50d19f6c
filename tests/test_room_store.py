from datetime import datetime, timezone

import pytest
from bson import ObjectId

from tarag_api.database.models.room_models import Membership, MembershipStatus, Room
from tarag_api.rooms.store import InviteCodeTaken

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_room(code="ABC123", owner="u1", invited=()):
    members = [Membership(userID=owner, joinedOn=NOW, status=MembershipStatus.MEMBER)]
    members += [Membership(userID=uid, joinedOn=NOW, status=MembershipStatus.INVITED) for uid in invited]
    return Room(
        name="Trip",
        inviteCode=code,
        chatID="chat-1",
        admins=[owner],
        members=members,
        createdOn=NOW,
        updatedOn=NOW,
    )


async def test_insert_assigns_id_and_round_trips(store):
    room = await store.insert(make_room(invited=["u2"]))
    assert ObjectId.is_valid(room.id)

    loaded = await store.get(room.id)
    assert loaded.invite_code == "ABC123"
    assert loaded.room_color == "#00CAFF"
    assert loaded.itinerary_id is None
    assert [(m.user_id, m.status) for m in loaded.members] == [("u1", "member"), ("u2", "invited")]
    assert loaded.revision == 0


async def test_absent_fields_are_not_stored(store, db):
    room = await store.insert(make_room())
    doc = await db["rooms"].find_one({"_id": ObjectId(room.id)})
    assert "itineraryID" not in doc
    assert "nickname" not in doc["members"][0]


async def test_duplicate_invite_code_rejected(store):
    await store.insert(make_room(code="SAME01"))
    with pytest.raises(InviteCodeTaken):
        await store.insert(make_room(code="SAME01", owner="u9"))


async def test_get_unknown_or_malformed_id(store):
    assert await store.get(str(ObjectId())) is None
    assert await store.get("not-an-object-id") is None


async def test_legacy_empty_itinerary_reads_as_absent(store, db):
    room = await store.insert(make_room())
    await db["rooms"].update_one({"_id": ObjectId(room.id)}, {"$set": {"itineraryID": ""}})
    assert (await store.get(room.id)).itinerary_id is None


async def test_list_for_member_filters_by_status(store):
    owned = await store.insert(make_room(code="AAA111", owner="u1", invited=["u2"]))
    await store.insert(make_room(code="BBB222", owner="u3"))

    assert [r.id for r in await store.list_for_member("u1", "member")] == [owned.id]
    assert [r.id for r in await store.list_for_member("u2", "invited")] == [owned.id]
    assert await store.list_for_member("u2", "member") == []
    assert await store.list_for_member("u2", "waiting") == []


async def test_set_fields_respects_admin_guard(store):
    room = await store.insert(make_room())
    later = datetime(2025, 6, 2, tzinfo=timezone.utc)

    assert await store.set_fields(room.id, {"roomColor": "#111111"}, later, admin_id="u2") is None
    before = await store.set_fields(room.id, {"roomColor": "#111111"}, later, admin_id="u1")
    assert before.room_color == "#00CAFF"

    loaded = await store.get(room.id)
    assert loaded.room_color == "#111111"
    assert loaded.updated_on.replace(tzinfo=None) == later.replace(tzinfo=None)


async def test_save_membership_rejects_stale_revision(store):
    room = await store.insert(make_room())
    first = await store.get(room.id)
    second = await store.get(room.id)

    first.members.append(Membership(userID="u2", joinedOn=NOW, status=MembershipStatus.INVITED))
    assert await store.save_membership(first, NOW)

    second.members.append(Membership(userID="u3", joinedOn=NOW, status=MembershipStatus.INVITED))
    assert not await store.save_membership(second, NOW)

    loaded = await store.get(room.id)
    assert [m.user_id for m in loaded.members] == ["u1", "u2"]
    assert loaded.revision == 1


async def test_delete_with_revision_guard(store):
    room = await store.insert(make_room())
    assert not await store.delete(room.id, revision=7)
    assert await store.delete(room.id, revision=0)
    assert await store.get(room.id) is None


async def test_rooms_without_revision_field_can_be_written(store, db):
    room = await store.insert(make_room())
    await db["rooms"].update_one({"_id": ObjectId(room.id)}, {"$unset": {"revision": ""}})

    loaded = await store.get(room.id)
    assert loaded.revision == 0
    loaded.members.append(Membership(userID="u2", joinedOn=NOW, status=MembershipStatus.INVITED))
    assert await store.save_membership(loaded, NOW)
    assert (await store.get(room.id)).revision == 1
