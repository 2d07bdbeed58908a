"""
Session Cache — per-user economic state served from memory.

Each user's session is loaded from the durable store on first access and
kept for the lifetime of the process. The cached object is the single
mutable instance for that user: every mutator works on it in place, so
later reads see the change without a store round-trip.

CONCURRENCY:
- Concurrent first accesses for one user share a single load.
- Per-user locks serialize game operations for the same user, closing the
  check-then-act window between a cooldown check and the mutation that
  follows it. Multi-user operations acquire locks in sorted id order.

FAILURE POLICY:
- Durable read errors are logged and degrade to an empty default session.
  Availability wins over consistency here; the next process restart reloads
  whatever the store holds.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import AsyncExitStack, asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carddrop.db.operations import create_user, get_inventory_rows, get_user, user_to_session
from carddrop.models.session import UserSession

logger = logging.getLogger(__name__)


class SessionCache:
    """In-memory map of user id to UserSession, lazily populated."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._sessions: dict[str, UserSession] = {}
        self._load_locks: dict[str, asyncio.Lock] = {}
        self._user_locks: dict[str, asyncio.Lock] = {}

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_id: str) -> UserSession | None:
        """Cached session only; never touches the durable store."""
        return self._sessions.get(user_id)

    def sessions(self) -> Iterator[UserSession]:
        """Every session loaded so far."""
        return iter(list(self._sessions.values()))

    def instance_in_circulation(self, instance_id: str) -> bool:
        """True if any loaded session holds an instance with this id."""
        return any(session.owns_instance(instance_id) for session in self._sessions.values())

    async def get_or_load(self, user_id: str) -> UserSession:
        """
        Get the session for a user, loading it on first access.

        A user without a durable record gets one created with epoch cooldowns.
        """
        cached = self._sessions.get(user_id)
        if cached is not None:
            return cached

        load_lock = self._load_locks.setdefault(user_id, asyncio.Lock())
        async with load_lock:
            cached = self._sessions.get(user_id)
            if cached is not None:
                return cached

            session = await self._load(user_id)
            self._sessions[user_id] = session

        self._load_locks.pop(user_id, None)
        return session

    async def _load(self, user_id: str) -> UserSession:
        try:
            async with self._session_factory() as db:
                user = await get_user(db, user_id)
                rows = await get_inventory_rows(db, user_id)
                session = user_to_session(user, rows, user_id)

                if user is None:
                    await create_user(db, user_id)
                    await db.commit()
                    logger.info("USER_CREATED", extra={"user_id": user_id})
        except (SQLAlchemyError, OSError):
            logger.exception("SESSION_LOAD_FAILED", extra={"user_id": user_id})
            return UserSession(user_id=user_id)

        logger.debug(
            "SESSION_LOADED",
            extra={"user_id": user_id, "inventory_size": len(session.inventory)},
        )
        return session

    def lock_for(self, user_id: str) -> asyncio.Lock:
        return self._user_locks.setdefault(user_id, asyncio.Lock())

    @asynccontextmanager
    async def locked(self, *user_ids: str) -> AsyncIterator[None]:
        """
        Hold the execution lock of every given user.

        Locks are taken in sorted order so two multi-user operations cannot
        deadlock on each other.
        """
        async with AsyncExitStack() as stack:
            for user_id in sorted(set(user_ids)):
                await stack.enter_async_context(self.lock_for(user_id))
            yield
