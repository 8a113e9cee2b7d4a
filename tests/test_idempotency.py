"""
Idempotency gatekeeper tests
"""
import asyncio
import uuid
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from clubcore.core.errors import ConflictError, IdempotencyKeyError
from clubcore.models import AttendanceRecord, Club, IdempotencyRecord
from clubcore.services.checkin_service import CheckInService
from clubcore.services.idempotency import (
    IdempotencyGatekeeper,
    generate_idempotency_key,
    is_valid_idempotency_key,
)

KEY = "retry-key-abcdefgh"


class TestKeyValidity:
    """Which keys are accepted"""

    def test_sixteen_letters_valid(self):
        assert is_valid_idempotency_key("aaaaaaaaaaaaaaaa")

    def test_sixteen_digits_invalid(self):
        assert not is_valid_idempotency_key("1234567890123456")

    @pytest.mark.parametrize("key", ["aaaaaaaaaaaaaaa", "123456789012345", "abc-def_ghi-jkl"])
    def test_fifteen_characters_invalid(self, key):
        assert len(key) == 15
        assert not is_valid_idempotency_key(key)

    def test_uuid_valid(self):
        assert is_valid_idempotency_key(str(uuid.uuid4()))
        assert is_valid_idempotency_key(str(uuid.uuid4()).upper())

    def test_digits_and_hyphens_invalid_at_any_length(self):
        assert not is_valid_idempotency_key("1234-5678-9012-3456-7890")
        assert not is_valid_idempotency_key("1" * 200)

    def test_length_limits(self):
        assert is_valid_idempotency_key("a" * 255)
        assert not is_valid_idempotency_key("a" * 256)

    def test_other_characters_invalid(self):
        assert not is_valid_idempotency_key("abcdefgh ijklmnop")
        assert not is_valid_idempotency_key("abcdefgh.ijklmnop")
        assert not is_valid_idempotency_key("")
        assert not is_valid_idempotency_key(None)

    def test_generated_keys_valid(self):
        assert is_valid_idempotency_key(generate_idempotency_key())


class TestExecute:
    """At-most-once execution"""

    @pytest.mark.asyncio
    async def test_replay_does_not_reinvoke(self, db, clock):
        calls = []

        async def create_club():
            calls.append(1)
            club = Club(name=f"Club {len(calls)}")
            db.add(club)
            await db.flush()
            return {"id": club.id, "name": club.name}

        gatekeeper = IdempotencyGatekeeper(db, clock)
        first = await gatekeeper.execute(KEY, "club.create", create_club)
        second = await gatekeeper.execute(KEY, "club.create", create_club)
        third = await gatekeeper.execute(KEY, "club.create", create_club)

        assert len(calls) == 1
        assert not first.replayed
        assert second.replayed and third.replayed
        assert first.result == second.result == third.result
        assert await db.scalar(select(func.count(Club.id))) == 1

    @pytest.mark.asyncio
    async def test_operation_id_scopes_key(self, db, clock):
        gatekeeper = IdempotencyGatekeeper(db, clock)

        async def op_a():
            return {"op": "a"}

        async def op_b():
            return {"op": "b"}

        assert (await gatekeeper.execute(KEY, "a", op_a)).result == {"op": "a"}
        assert (await gatekeeper.execute(KEY, "b", op_b)).result == {"op": "b"}

    @pytest.mark.asyncio
    async def test_invalid_key_rejected_before_fn(self, db, clock):
        called = False

        async def fn():
            nonlocal called
            called = True

        with pytest.raises(IdempotencyKeyError):
            await IdempotencyGatekeeper(db, clock).execute("1234567890123456", "op", fn)
        with pytest.raises(IdempotencyKeyError):
            await IdempotencyGatekeeper(db, clock).execute(None, "op", fn)
        assert not called

    @pytest.mark.asyncio
    async def test_errors_are_not_cached(self, db, clock):
        attempts = []

        async def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise ConflictError("try again")
            return {"ok": True}

        gatekeeper = IdempotencyGatekeeper(db, clock)
        with pytest.raises(ConflictError):
            await gatekeeper.execute(KEY, "op", flaky)
        outcome = await gatekeeper.execute(KEY, "op", flaky)

        assert outcome.result == {"ok": True}
        assert not outcome.replayed
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_failed_fn_rolls_back_its_writes(self, db, clock):
        async def half_done():
            db.add(Club(name="Ghost"))
            await db.flush()
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await IdempotencyGatekeeper(db, clock).execute(KEY, "op", half_done)

        assert await db.scalar(select(func.count(Club.id))) == 0
        assert await db.scalar(select(func.count(IdempotencyRecord.key))) == 0

    @pytest.mark.asyncio
    async def test_concurrent_replay_single_side_effect(
        self, session_factory, clock, athlete, session_now
    ):
        async def attempt():
            async with session_factory() as session:
                async def fn():
                    record = await CheckInService(session, clock).check_in(athlete, session_now.id)
                    return {"id": record.id, "status": record.status.value}

                return await IdempotencyGatekeeper(session, clock).execute(
                    KEY, f"attendance.check_in:{athlete.id}", fn
                )

        outcomes = await asyncio.gather(*[attempt() for _ in range(4)])

        assert len({o.result["id"] for o in outcomes}) == 1
        assert sum(not o.replayed for o in outcomes) == 1

        async with session_factory() as session:
            assert await session.scalar(select(func.count(AttendanceRecord.id))) == 1


class TestCleanup:
    """Expired key removal"""

    @pytest.mark.asyncio
    async def test_cleanup_removes_only_expired(self, db, clock):
        gatekeeper = IdempotencyGatekeeper(db, clock)

        async def fn():
            return {"ok": True}

        await gatekeeper.execute("old-key-aaaaaaaaaaaa", "op", fn)
        clock.advance(timedelta(hours=25))
        await gatekeeper.execute("new-key-aaaaaaaaaaaa", "op", fn)

        deleted = await gatekeeper.cleanup_expired(ttl_hours=24)

        assert deleted == 1
        assert await gatekeeper.lookup("old-key-aaaaaaaaaaaa", "op") is None
        assert await gatekeeper.lookup("new-key-aaaaaaaaaaaa", "op") is not None
