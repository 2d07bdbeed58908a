"""
Channel restrictions: the one channel per guild where commands are allowed.

Guilds without a restriction allow every channel. The map is loaded once
at startup and mirrored to the durable store on every change.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carddrop.db.operations import get_server_configs, upsert_server_config

logger = logging.getLogger(__name__)


class ChannelRestrictions:
    """In-memory guild -> channel map backed by the server_config table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._channels: dict[str, str] = {}

    async def load(self) -> int:
        """
        Load every stored restriction.

        Errors are logged; the map is left as it was. Returns the number of
        restrictions loaded.
        """
        try:
            async with self._session_factory() as db:
                configs = await get_server_configs(db)
        except (SQLAlchemyError, OSError):
            logger.exception("Error loading server configs")
            return 0

        self._channels.update(configs)
        logger.info("Loaded %d server configurations", len(configs))
        return len(configs)

    def channel_for(self, guild_id: str) -> str | None:
        return self._channels.get(guild_id)

    def is_allowed(self, guild_id: str | None, channel_id: str) -> bool:
        """Direct messages (no guild) and unrestricted guilds are always allowed."""
        if guild_id is None or guild_id not in self._channels:
            return True
        return self._channels[guild_id] == channel_id

    async def set_channel(self, guild_id: str, channel_id: str) -> bool:
        """
        Restrict a guild to one channel.

        The in-memory map is updated even when the durable write fails.
        Returns False on a durable failure.
        """
        self._channels[guild_id] = channel_id
        try:
            async with self._session_factory() as db:
                await upsert_server_config(db, guild_id, channel_id)
                await db.commit()
        except (SQLAlchemyError, OSError):
            logger.exception("Error setting guild channel for %s", guild_id)
            return False
        return True
