"""Tests for guild channel restrictions."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from carddrop.db.operations import get_server_configs, upsert_server_config
from carddrop.services.channels import ChannelRestrictions


class TestChannelRestrictions:
    def test_unconfigured_guild_allows_everything(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        channels = ChannelRestrictions(session_factory)

        assert channels.is_allowed("g1", "any-channel")
        assert channels.channel_for("g1") is None

    def test_direct_messages_always_allowed(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        channels = ChannelRestrictions(session_factory)

        assert channels.is_allowed(None, "dm")

    async def test_set_channel_restricts_and_persists(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        channels = ChannelRestrictions(session_factory)

        assert await channels.set_channel("g1", "c1")

        assert channels.is_allowed("g1", "c1")
        assert not channels.is_allowed("g1", "c2")
        async with session_factory() as db:
            assert await get_server_configs(db) == {"g1": "c1"}

    async def test_load_restores_restrictions(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as db:
            await upsert_server_config(db, "g1", "c1")
            await db.commit()
        channels = ChannelRestrictions(session_factory)

        assert await channels.load() == 1
        assert channels.channel_for("g1") == "c1"

    async def test_durable_failure_still_applies_in_memory(
        self, session_factory: async_sessionmaker[AsyncSession], async_engine: AsyncEngine
    ) -> None:
        async with async_engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE server_config")
        channels = ChannelRestrictions(session_factory)

        assert not await channels.set_channel("g1", "c1")
        assert channels.channel_for("g1") == "c1"

    async def test_load_failure_is_logged(
        self, session_factory: async_sessionmaker[AsyncSession], async_engine: AsyncEngine
    ) -> None:
        async with async_engine.begin() as conn:
            await conn.exec_driver_sql("DROP TABLE server_config")
        channels = ChannelRestrictions(session_factory)

        assert await channels.load() == 0
