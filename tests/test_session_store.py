from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import select

from models.refresh_token import RefreshToken
from models.user import Role
from utils.exceptions import DuplicateEmail

WEEK = timedelta(days=7)


async def _user(users, email: str = "a@x.com"):
    return await users.create(name="Ann", email=email, password_hash="digest")


async def _record(records, user, clock, family: str = "fam-1", token_hash: str = "h-1", ttl: timedelta = WEEK):
    now = clock()
    return await records.create_record(
        user_id=user.id, token_hash=token_hash, family=family, expires_at=now + ttl, now=now
    )


async def test_user_email_is_normalized_and_unique(users) -> None:
    user = await users.create(name=" Ann ", email="  A@X.com ", password_hash="digest")
    assert user.email == "a@x.com"
    assert user.name == "Ann"
    assert user.role == Role.USER
    assert (await users.find_by_email("A@x.COM")).id == user.id
    assert (await users.find_by_id(user.id)).email == "a@x.com"

    with pytest.raises(DuplicateEmail):
        await users.create(name="Other", email="a@x.com", password_hash="digest")


async def test_unknown_user_lookups_return_none(users) -> None:
    assert await users.find_by_email("nobody@x.com") is None
    assert await users.find_by_id("missing") is None
    assert await users.find_any_admin() is None


async def test_created_record_is_active(users, records, clock) -> None:
    user = await _user(users)
    record = await _record(records, user, clock)

    found = await records.find_active_by_family("fam-1", clock())
    assert found.id == record.id
    assert found.replaced_by_hash is None
    assert found.revoked_at is None


async def test_mark_replaced_succeeds_only_once(users, records, clock) -> None:
    user = await _user(users)
    record = await _record(records, user, clock)

    assert await records.mark_replaced(record.id, "h-2", clock()) is True
    assert await records.mark_replaced(record.id, "h-3", clock()) is False
    # A spent row is no longer the family's current token
    assert await records.find_active_by_family("fam-1", clock()) is None


async def test_rotate_inserts_successor_and_rejects_second_rotation(users, records, clock) -> None:
    user = await _user(users)
    parent = await _record(records, user, clock)
    now = clock()
    fields = dict(user_id=user.id, family="fam-1", expires_at=now + WEEK)

    child = await records.rotate(parent.id, now, token_id="child-1", token_hash="h-2", **fields)
    assert child is not None
    assert child.id == "child-1"
    assert child.family == "fam-1"
    assert await records.rotate(parent.id, now, token_hash="h-3", **fields) is None

    # The spent parent stays findable by id so a replay can be recognized
    spent = await records.find_live_by_id(parent.id, "fam-1", now)
    assert spent.replaced_by_hash == "h-2"
    assert (await records.find_live_by_id("child-1", "fam-1", now)).replaced_by_hash is None
    assert (await records.find_active_by_family("fam-1", now)).id == child.id


async def test_find_live_by_id_is_scoped_to_family(users, records, clock) -> None:
    user = await _user(users)
    record = await _record(records, user, clock)

    assert (await records.find_live_by_id(record.id, "fam-1", clock())).id == record.id
    assert await records.find_live_by_id(record.id, "fam-2", clock()) is None
    assert await records.find_live_by_id("missing", "fam-1", clock()) is None


async def test_expired_record_is_never_active(users, records, clock) -> None:
    user = await _user(users)
    record = await _record(records, user, clock, ttl=timedelta(minutes=1))
    clock.advance(timedelta(minutes=2))

    assert await records.find_active_by_family("fam-1", clock()) is None
    assert await records.find_live_by_id(record.id, "fam-1", clock()) is None


async def test_revoked_record_is_never_active(users, records, clock) -> None:
    user = await _user(users)
    record = await _record(records, user, clock)

    assert await records.revoke(record.id, clock()) is True
    assert await records.revoke(record.id, clock()) is False
    assert await records.find_active_by_family("fam-1", clock()) is None


async def test_revoke_family_leaves_other_families(users, records, clock) -> None:
    user = await _user(users)
    await _record(records, user, clock, family="fam-1", token_hash="h-1")
    await _record(records, user, clock, family="fam-2", token_hash="h-2")

    assert await records.revoke_family("fam-1", clock()) == 1
    assert await records.find_active_by_family("fam-1", clock()) is None
    assert await records.find_active_by_family("fam-2", clock()) is not None


async def test_revoke_all_for_user_is_isolated(users, records, clock) -> None:
    ann = await _user(users, "a@x.com")
    bob = await _user(users, "b@x.com")
    await _record(records, ann, clock, family="ann-1", token_hash="a-1")
    await _record(records, ann, clock, family="ann-2", token_hash="a-2")
    await _record(records, bob, clock, family="bob-1", token_hash="b-1")

    assert await records.revoke_all_for_user(ann.id, clock()) == 2
    assert await records.list_active_for_user(ann.id, clock()) == []
    bob_sessions = await records.list_active_for_user(bob.id, clock())
    assert [r.family for r in bob_sessions] == ["bob-1"]


async def test_purge_expired_deletes_only_expired_rows(storage, users, records, clock) -> None:
    user = await _user(users)
    await _record(records, user, clock, family="short", token_hash="h-1", ttl=timedelta(hours=1))
    await _record(records, user, clock, family="long", token_hash="h-2")
    clock.advance(timedelta(hours=2))

    assert await records.purge_expired(clock()) == 1
    async with storage.session() as session:
        remaining = await session.scalars(select(RefreshToken.family))
        assert list(remaining) == ["long"]
    assert await records.find_active_by_family("long", clock()) is not None
