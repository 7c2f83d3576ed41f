"""
Concurrency safety tests.

Demonstrates:
1. Attendee writes are conditional on the row version; a stale writer
   gets ``ConflictError`` and the row is left as the winner wrote it.
2. The Redis lease prevents a simultaneous acquire.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from rallyhome.domain.errors import ConflictError
from rallyhome.infrastructure.locks import DistributedLock, LeaseUnavailable
from rallyhome.infrastructure.repositories import AttendeeRepository
from rallyhome.services.attendees import AttendeeActions


class TestAttendeeVersioning:
    @pytest.mark.asyncio
    async def test_stale_expected_version_conflicts(self, db_session, factory):
        event = await factory.event()
        pid = await factory.member(event.id)
        repo = AttendeeRepository(db_session)

        seen = await repo.get(event.id, pid)
        await repo.update(event.id, pid, {"destination_name": "Home"})

        with pytest.raises(ConflictError):
            await repo.update(
                event.id,
                pid,
                {"destination_name": "Elsewhere"},
                expected_version=seen.version,
            )
        assert (await repo.get(event.id, pid)).destination_name == "Home"

    @pytest.mark.asyncio
    async def test_writer_in_another_session_wins(
        self, db_session, factory, session_factory, clock
    ):
        event = await factory.event()
        pid = await factory.member(event.id)
        await db_session.commit()

        async with session_factory() as reader:
            seen = await AttendeeRepository(reader).get(event.id, pid)
            await reader.commit()

        async with session_factory() as winner:
            await AttendeeActions(winner, clock=clock).start_participating(event.id, pid)
            await winner.commit()

        async with session_factory() as loser:
            with pytest.raises(ConflictError):
                await AttendeeRepository(loser).update(
                    event.id,
                    pid,
                    {"going_home_at": None},
                    expected_version=seen.version,
                )
            await loser.rollback()

        async with session_factory() as check:
            final = await AttendeeRepository(check).get(event.id, pid)
            assert final.going_home_at is not None
            assert final.version == seen.version + 1

    @pytest.mark.asyncio
    async def test_unknown_field_is_rejected(self, db_session, factory):
        event = await factory.event()
        pid = await factory.member(event.id)
        with pytest.raises(ValueError):
            await AttendeeRepository(db_session).update(event.id, pid, {"version": 7})

    @pytest.mark.asyncio
    async def test_changes_recorded_for_the_feed(self, db_session, factory, clock):
        event = await factory.event()
        pid = await factory.member(event.id)

        await AttendeeActions(db_session, clock=clock).start_participating(event.id, pid)

        (old, new), = db_session.info["attendee_changes"]
        assert old.going_home_at is None
        assert new.going_home_at == clock.now
        assert new.version == old.version + 1


class TestDistributedLock:
    """Tests the Redis lease logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_called_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        assert await lock.release() is True

        mock_redis.eval.assert_called_once()
        assert mock_redis.eval.call_args.args[2:] == ("lock:test-key", lock.token)

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        with pytest.raises(LeaseUnavailable, match="Could not acquire lock"):
            async with lock:
                pass

    @pytest.mark.asyncio
    async def test_context_manager_releases(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        async with DistributedLock(mock_redis, "test-key"):
            mock_redis.eval.assert_not_called()
        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_release_reports_expired_lease(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=0)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=1)
        await lock.acquire()
        assert await lock.release() is False
