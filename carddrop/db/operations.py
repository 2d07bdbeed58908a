"""
Database CRUD operations.

Provides async functions for reading and writing users, inventory rows and
guild channel restrictions. Rows are decoded into domain objects here and
nowhere else.
"""

from datetime import UTC, datetime

from sqlalchemy import ColumnElement, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from carddrop.models.card import CardInstance
from carddrop.models.db import InventoryItemDB, ServerConfigDB, UserDB
from carddrop.models.session import EPOCH, UserSession

# --- Row decoding ---


def as_utc(value: datetime | None) -> datetime:
    """
    Normalize a stored timestamp to an aware UTC datetime.

    Some drivers (SQLite) drop tzinfo on read; missing values become the epoch.
    """
    if value is None:
        return EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def row_to_instance(row: InventoryItemDB) -> CardInstance:
    """Convert an inventory row to a domain instance."""
    return CardInstance(
        card_id=row.card_id,
        obtained_at=as_utc(row.obtained_at),
        instance_id=row.instance_id,
    )


def user_to_session(user: UserDB | None, rows: list[InventoryItemDB], user_id: str) -> UserSession:
    """Build a session from a user row (possibly missing) and its inventory rows."""
    session = UserSession(user_id=user_id, inventory=[row_to_instance(row) for row in rows])
    if user is not None:
        session.last_draw_at = as_utc(user.last_draw)
        session.last_pack_at = as_utc(user.last_pack)
        session.last_pick_at = as_utc(user.last_pick)
    return session


# --- User Operations ---


async def get_user(session: AsyncSession, user_id: str) -> UserDB | None:
    """
    Get a user's cooldown row by user_id.

    Returns None if the user has never been seen.
    """
    result = await session.execute(select(UserDB).where(UserDB.user_id == user_id))
    return result.scalar_one_or_none()


async def create_user(session: AsyncSession, user_id: str) -> UserDB:
    """
    Create a user row with epoch cooldowns.

    Raises IntegrityError if the user already exists.
    """
    user = UserDB(user_id=user_id, last_draw=EPOCH, last_pack=EPOCH, last_pick=EPOCH)
    session.add(user)
    await session.flush()
    return user


async def upsert_user_cooldowns(
    session: AsyncSession,
    user_id: str,
    last_draw: datetime,
    last_pack: datetime,
    last_pick: datetime,
) -> UserDB:
    """
    Insert or update a user's cooldown timestamps.

    If the user row exists, updates it. Otherwise creates a new record.
    """
    existing = await get_user(session, user_id)

    if existing:
        existing.last_draw = last_draw
        existing.last_pack = last_pack
        existing.last_pick = last_pick
        await session.flush()
        return existing

    user = UserDB(user_id=user_id, last_draw=last_draw, last_pack=last_pack, last_pick=last_pick)
    session.add(user)
    await session.flush()
    return user


# --- Inventory Operations ---


async def get_inventory_rows(session: AsyncSession, user_id: str) -> list[InventoryItemDB]:
    """Get all inventory rows for a user in acquisition order."""
    result = await session.execute(
        select(InventoryItemDB)
        .where(InventoryItemDB.user_id == user_id)
        .order_by(InventoryItemDB.obtained_at.asc(), InventoryItemDB.id.asc())
    )
    return list(result.scalars().all())


async def insert_inventory_row(
    session: AsyncSession,
    user_id: str,
    card_id: str,
    obtained_at: datetime,
    instance_id: str | None,
) -> InventoryItemDB:
    """Insert one owned instance."""
    row = InventoryItemDB(
        user_id=user_id,
        card_id=card_id,
        obtained_at=obtained_at,
        instance_id=instance_id,
    )
    session.add(row)
    await session.flush()
    return row


async def _delete_first(session: AsyncSession, *conditions: ColumnElement[bool]) -> bool:
    # Deletes at most one matching row, the oldest by row id
    result = await session.execute(
        select(InventoryItemDB.id).where(*conditions).order_by(InventoryItemDB.id.asc()).limit(1)
    )
    row_id = result.scalar_one_or_none()
    if row_id is None:
        return False
    await session.execute(delete(InventoryItemDB).where(InventoryItemDB.id == row_id))
    return True


async def delete_inventory_row_by_instance(
    session: AsyncSession, user_id: str, instance_id: str
) -> bool:
    """
    Delete a user's inventory row by instance id.

    Returns True if a row was deleted, False if not found.
    """
    return await _delete_first(
        session,
        InventoryItemDB.user_id == user_id,
        InventoryItemDB.instance_id == instance_id,
    )


async def delete_inventory_row_by_card(
    session: AsyncSession, user_id: str, card_id: str, obtained_at: datetime
) -> bool:
    """
    Delete one of a user's inventory rows matching card id and timestamp.

    Used for rows that carry no instance id. When several rows share the same
    card and timestamp, the oldest one is removed.
    """
    return await _delete_first(
        session,
        InventoryItemDB.user_id == user_id,
        InventoryItemDB.card_id == card_id,
        InventoryItemDB.obtained_at == obtained_at,
    )


async def delete_inventory_rows(session: AsyncSession, user_id: str) -> int:
    """
    Delete every inventory row for a user.

    Returns the number of deleted records.
    """
    result = await session.execute(
        delete(InventoryItemDB).where(InventoryItemDB.user_id == user_id)
    )
    # rowcount is available on DELETE results; type stubs incomplete for async
    return int(result.rowcount)  # type: ignore[attr-defined]


async def instance_id_exists(session: AsyncSession, instance_id: str) -> bool:
    """Check whether any durable inventory row carries this instance id."""
    result = await session.execute(
        select(InventoryItemDB.id).where(InventoryItemDB.instance_id == instance_id).limit(1)
    )
    return result.scalar_one_or_none() is not None


# --- Server Config Operations ---


async def get_server_configs(session: AsyncSession) -> dict[str, str]:
    """Get every guild channel restriction as guild_id -> channel_id."""
    result = await session.execute(select(ServerConfigDB))
    return {row.guild_id: row.channel_id for row in result.scalars().all()}


async def upsert_server_config(
    session: AsyncSession, guild_id: str, channel_id: str
) -> ServerConfigDB:
    """Insert or update the allowed channel for a guild."""
    result = await session.execute(
        select(ServerConfigDB).where(ServerConfigDB.guild_id == guild_id)
    )
    existing = result.scalar_one_or_none()

    if existing:
        existing.channel_id = channel_id
        await session.flush()
        return existing

    config = ServerConfigDB(guild_id=guild_id, channel_id=channel_id)
    session.add(config)
    await session.flush()
    return config
