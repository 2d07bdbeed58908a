"""
SQLAlchemy ORM models for persistent storage.

The durable store mirrors the in-memory sessions incrementally: one row per
user for cooldowns, one row per owned card instance, one row per guild
channel restriction.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from carddrop.models.session import EPOCH


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserDB(Base):
    """
    A user's cooldown timestamps.

    Created with epoch timestamps the first time a user is seen.
    """

    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_draw: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=EPOCH)
    last_pack: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=EPOCH)
    last_pick: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=EPOCH)

    def __repr__(self) -> str:
        return f"<UserDB(user_id={self.user_id})>"


class InventoryItemDB(Base):
    """
    One owned card instance.

    instance_id is nullable for rows written before instance ids existed.
    """

    __tablename__ = "inventory"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    card_id: Mapped[str] = mapped_column(String(255))
    obtained_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    instance_id: Mapped[str | None] = mapped_column(String(32), index=True, nullable=True)

    def __repr__(self) -> str:
        return f"<InventoryItemDB(user_id={self.user_id}, instance_id={self.instance_id})>"


class ServerConfigDB(Base):
    """The single channel a guild allows commands in."""

    __tablename__ = "server_config"

    guild_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    channel_id: Mapped[str] = mapped_column(String(64))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<ServerConfigDB(guild_id={self.guild_id}, channel_id={self.channel_id})>"
