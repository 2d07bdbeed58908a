"""
Inventory Mutator — add and remove owned cards, mirrored to durable storage.

The in-memory session is the source of truth for the running process; the
durable store is the source of truth across restarts.

INVARIANTS:
- In-memory mutations happen first and are never rolled back
- Durable writes are awaited and their outcome is reported to the caller
- A durable failure is logged, never raised
"""

import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carddrop.config import INSTANCE_ID_MAX_ATTEMPTS, INSTANCE_ID_PREFIX
from carddrop.db.operations import (
    delete_inventory_row_by_card,
    delete_inventory_row_by_instance,
    delete_inventory_rows,
    insert_inventory_row,
    instance_id_exists,
    upsert_user_cooldowns,
)
from carddrop.models.card import CardInstance
from carddrop.models.failure import FailureKind, KnownError, NotFoundError
from carddrop.models.session import EPOCH, UserSession
from carddrop.services.instance_ids import generate_instance_id
from carddrop.services.session_cache import SessionCache

logger = logging.getLogger(__name__)

DurableWriteFn = Callable[[AsyncSession], Awaitable[object]]


class InstanceIdExhaustedError(KnownError):
    """No unused instance id was found within the attempt budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            kind=FailureKind.INVARIANT_VIOLATION,
            message="Could not issue a new card id. Please try again.",
            detail=f"{attempts} consecutive instance id collisions",
            status_code=500,
        )


@dataclass(frozen=True, slots=True)
class DurableWrite:
    """Outcome of mirroring a mutation to the durable store."""

    ok: bool
    error: str | None = None

    @classmethod
    def combine(cls, *writes: "DurableWrite") -> "DurableWrite":
        errors = [w.error for w in writes if not w.ok and w.error]
        if all(w.ok for w in writes):
            return cls(ok=True)
        return cls(ok=False, error="; ".join(errors) or None)


DURABLE_OK = DurableWrite(ok=True)


@dataclass(frozen=True, slots=True)
class MutationResult:
    """
    Combined in-memory and durable outcome of an inventory mutation.

    Attributes:
        instance: The instance added or removed
        index: Inventory position the instance was added at or removed from
        durable: Whether the durable mirror succeeded
    """

    instance: CardInstance
    index: int
    durable: DurableWrite = DURABLE_OK

    @property
    def persisted(self) -> bool:
        return self.durable.ok


class InventoryMutator:
    """Applies inventory and cooldown changes to sessions and the store."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: SessionCache,
        rng: random.Random | None = None,
        id_prefix: str = INSTANCE_ID_PREFIX,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache
        self._rng = rng or random.Random()
        self._id_prefix = id_prefix

    async def persist(self, event: str, user_id: str, write: DurableWriteFn) -> DurableWrite:
        """
        Run one durable write in its own transaction.

        Failures are logged under `event` and returned, not raised.
        """
        try:
            async with self._session_factory() as db:
                await write(db)
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error(event, extra={"user_id": user_id, "error": str(e)})
            return DurableWrite(ok=False, error=f"{type(e).__name__}: {e}")
        return DURABLE_OK

    async def _exists_durably(self, instance_id: str) -> bool:
        try:
            async with self._session_factory() as db:
                return await instance_id_exists(db, instance_id)
        except (SQLAlchemyError, OSError) as e:
            # Fall back to the in-memory check alone
            logger.warning("INSTANCE_ID_CHECK_FAILED", extra={"error": str(e)})
            return False

    async def issue_instance_id(self) -> str:
        """
        Issue an instance id unused by any loaded session or durable row.

        The in-memory check runs after the durable one, with no suspension
        between it and the caller's append.

        Raises:
            InstanceIdExhaustedError: If every attempt collided
        """
        for _ in range(INSTANCE_ID_MAX_ATTEMPTS):
            candidate = generate_instance_id(self._rng, prefix=self._id_prefix)
            if await self._exists_durably(candidate):
                continue
            if self._cache.instance_in_circulation(candidate):
                continue
            return candidate

        logger.error("INSTANCE_ID_EXHAUSTED", extra={"attempts": INSTANCE_ID_MAX_ATTEMPTS})
        raise InstanceIdExhaustedError(INSTANCE_ID_MAX_ATTEMPTS)

    async def add_card(
        self, session: UserSession, card_id: str, obtained_at: datetime
    ) -> MutationResult:
        """Create a new owned instance at the end of the inventory."""
        instance_id = await self.issue_instance_id()
        instance = CardInstance(card_id=card_id, obtained_at=obtained_at, instance_id=instance_id)
        session.inventory.append(instance)
        index = len(session.inventory) - 1

        durable = await self.persist(
            "INVENTORY_INSERT_FAILED",
            session.user_id,
            lambda db: insert_inventory_row(
                db, session.user_id, card_id, obtained_at, instance_id
            ),
        )
        logger.debug(
            "CARD_ADDED",
            extra={"user_id": session.user_id, "card_id": card_id, "instance_id": instance_id},
        )
        return MutationResult(instance=instance, index=index, durable=durable)

    async def remove_card(self, session: UserSession, index: int) -> MutationResult:
        """
        Remove the instance at a position in the inventory.

        Raises:
            NotFoundError: If index is outside [0, len(inventory))
        """
        if not 0 <= index < len(session.inventory):
            raise NotFoundError(
                "Invalid index. Use your inventory to see valid indices.",
                detail=f"index {index} outside [0, {len(session.inventory)})",
            )

        instance = session.inventory.pop(index)
        durable = await self._delete_row(session.user_id, instance)
        return MutationResult(instance=instance, index=index, durable=durable)

    async def remove_instance(self, session: UserSession, instance_id: str) -> MutationResult:
        """
        Remove an instance by its id.

        Raises:
            NotFoundError: If the session does not own the instance
        """
        index = session.find_instance(instance_id)
        if index is None:
            raise NotFoundError(
                f"You don't have a card with ID `{instance_id}`.",
                suggestion="Check your inventory.",
            )
        return await self.remove_card(session, index)

    async def _delete_row(self, user_id: str, instance: CardInstance) -> DurableWrite:
        matched = True

        async def delete(db: AsyncSession) -> None:
            nonlocal matched
            if instance.instance_id is not None:
                matched = await delete_inventory_row_by_instance(db, user_id, instance.instance_id)
            else:
                matched = await delete_inventory_row_by_card(
                    db, user_id, instance.card_id, instance.obtained_at
                )

        durable = await self.persist("INVENTORY_DELETE_FAILED", user_id, delete)
        if durable.ok and not matched:
            logger.warning(
                "INVENTORY_ROW_MISSING",
                extra={"user_id": user_id, "instance_id": instance.instance_id},
            )
            return DurableWrite(ok=False, error="no durable row matched")
        return durable

    async def save_cooldowns(self, session: UserSession) -> DurableWrite:
        """Upsert the session's three cooldown timestamps."""
        return await self.persist(
            "COOLDOWN_SAVE_FAILED",
            session.user_id,
            lambda db: upsert_user_cooldowns(
                db,
                session.user_id,
                session.last_draw_at,
                session.last_pack_at,
                session.last_pick_at,
            ),
        )

    async def clear(self, session: UserSession) -> DurableWrite:
        """Empty the inventory, reset cooldowns and drop any pending pick."""
        session.inventory.clear()
        session.pick_choices.clear()
        session.last_draw_at = EPOCH
        session.last_pack_at = EPOCH
        session.last_pick_at = EPOCH

        async def wipe(db: AsyncSession) -> None:
            await delete_inventory_rows(db, session.user_id)
            await upsert_user_cooldowns(db, session.user_id, EPOCH, EPOCH, EPOCH)

        durable = await self.persist("USER_RESET_FAILED", session.user_id, wipe)
        logger.info("USER_RESET", extra={"user_id": session.user_id})
        return durable
