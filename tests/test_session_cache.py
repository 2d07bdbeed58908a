"""Tests for the session cache."""

import asyncio
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carddrop.db.operations import get_user, insert_inventory_row, upsert_user_cooldowns
from carddrop.models.card import CardInstance
from carddrop.models.session import EPOCH
from carddrop.services.session_cache import SessionCache

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class TestGetOrLoad:
    async def test_new_user_gets_default_session_and_row(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """First access creates a durable user with epoch cooldowns."""
        cache = SessionCache(session_factory)

        session = await cache.get_or_load("u1")

        assert session.inventory == []
        assert session.last_draw_at == EPOCH
        async with session_factory() as db:
            assert await get_user(db, "u1") is not None

    async def test_loads_durable_state(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as db:
            await upsert_user_cooldowns(db, "u1", T0, EPOCH, EPOCH)
            await insert_inventory_row(db, "u1", "onix-b2-84", T0, "po1a2b")
            await db.commit()
        cache = SessionCache(session_factory)

        session = await cache.get_or_load("u1")

        assert session.last_draw_at == T0
        assert session.inventory == [
            CardInstance(card_id="onix-b2-84", obtained_at=T0, instance_id="po1a2b")
        ]

    async def test_same_object_on_repeat_access(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Mutations through one reference are visible through the next."""
        cache = SessionCache(session_factory)

        first = await cache.get_or_load("u1")
        first.inventory.append(CardInstance("a", T0, "po0001"))
        second = await cache.get_or_load("u1")

        assert second is first
        assert len(second.inventory) == 1

    async def test_concurrent_first_access_yields_one_session(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        cache = SessionCache(session_factory)

        sessions = await asyncio.gather(*(cache.get_or_load("u1") for _ in range(5)))

        assert all(s is sessions[0] for s in sessions)
        assert len(cache) == 1

    async def test_store_failure_degrades_to_default(
        self, session_factory: async_sessionmaker[AsyncSession], async_engine
    ) -> None:
        """A broken store yields an empty session instead of an error."""
        async with async_engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE inventory")
        cache = SessionCache(session_factory)

        session = await cache.get_or_load("u1")

        assert session.user_id == "u1"
        assert session.inventory == []


class TestCirculation:
    async def test_instance_in_circulation(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        cache = SessionCache(session_factory)
        session = await cache.get_or_load("u1")
        session.inventory.append(CardInstance("a", T0, "po0001"))

        assert cache.instance_in_circulation("po0001")
        assert not cache.instance_in_circulation("po0002")

    async def test_get_never_loads(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        cache = SessionCache(session_factory)

        assert cache.get("u1") is None
        assert "u1" not in cache


class TestLocking:
    async def test_locks_serialize_same_user(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        cache = SessionCache(session_factory)
        order: list[str] = []

        async def worker(name: str) -> None:
            async with cache.locked("u1"):
                order.append(f"{name}-start")
                await asyncio.sleep(0)
                order.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    async def test_multi_user_lock_order_does_not_deadlock(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        cache = SessionCache(session_factory)

        async def worker(*ids: str) -> None:
            async with cache.locked(*ids):
                await asyncio.sleep(0)

        await asyncio.wait_for(
            asyncio.gather(worker("u1", "u2"), worker("u2", "u1")), timeout=1
        )
