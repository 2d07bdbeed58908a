"""
Trade Coordinator — two-phase transfer of one card instance.

A sender proposes a trade of one instance to a receiver. The offer is not
stored anywhere: it lives entirely in the interaction handle given to the
platform (`trade_<action>_<sender>_<receiver>_<instance>`, user ids
percent-encoded so they never contain the separator). The receiver,
and only the receiver, resolves it once: accept or decline.

State machine: PROPOSED -> ACCEPTED | DECLINED. No expiry.

OWNERSHIP INVARIANT:
Exactly one loaded session holds a given instance id before and after a
completed trade. The in-memory move (remove from sender, append to
receiver) runs with no suspension point in between; the durable delete and
insert that follow are reported, not rolled back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from urllib.parse import quote, unquote

from carddrop.db.operations import delete_inventory_row_by_instance, insert_inventory_row
from carddrop.models.card import CardDefinition, CardInstance
from carddrop.models.failure import (
    FailureKind,
    InvalidInputError,
    KnownError,
    NotFoundError,
    UnauthorizedError,
)
from carddrop.models.session import UserSession
from carddrop.services.catalog import CardCatalog
from carddrop.services.inventory import DURABLE_OK, DurableWrite, InventoryMutator
from carddrop.services.session_cache import SessionCache

logger = logging.getLogger(__name__)

HANDLE_PREFIX = "trade"
HANDLE_SEPARATOR = "_"


def _encode_id(user_id: str) -> str:
    # quote() leaves "_" alone
    return quote(user_id, safe="").replace(HANDLE_SEPARATOR, "%5F")


class TradeDecision(str, Enum):
    """The receiver's answer to an offer."""

    ACCEPT = "accept"
    DECLINE = "decline"


class TradeState(str, Enum):
    PROPOSED = "proposed"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class TradeAbortedError(KnownError):
    """The offered instance left the sender's inventory before acceptance."""

    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message="Trade failed: Card no longer exists in sender's inventory.",
            detail=f"instance {instance_id} not owned by sender",
            status_code=404,
        )


@dataclass(frozen=True, slots=True)
class TradeOffer:
    """A proposed single-instance transfer awaiting the receiver."""

    sender_id: str
    receiver_id: str
    instance_id: str

    def handle(self, decision: TradeDecision) -> str:
        """Opaque interaction handle for one of the receiver's buttons."""
        return HANDLE_SEPARATOR.join(
            (
                HANDLE_PREFIX,
                decision.value,
                _encode_id(self.sender_id),
                _encode_id(self.receiver_id),
                self.instance_id,
            )
        )

    @classmethod
    def parse(cls, handle: str) -> tuple["TradeOffer", TradeDecision]:
        """
        Decode an interaction handle.

        Raises:
            InvalidInputError: If the handle is not a trade handle
        """
        parts = handle.split(HANDLE_SEPARATOR)
        if len(parts) != 5 or parts[0] != HANDLE_PREFIX:
            raise InvalidInputError("Unrecognized trade.", detail=f"bad handle {handle!r}")

        _, action, sender_id, receiver_id, instance_id = parts
        sender_id, receiver_id = unquote(sender_id), unquote(receiver_id)
        try:
            decision = TradeDecision(action)
        except ValueError as e:
            raise InvalidInputError("Unrecognized trade.", detail=f"bad action {action!r}") from e

        if not (sender_id and receiver_id and instance_id):
            raise InvalidInputError("Unrecognized trade.", detail=f"bad handle {handle!r}")

        return cls(sender_id=sender_id, receiver_id=receiver_id, instance_id=instance_id), decision


@dataclass(frozen=True, slots=True)
class TradeResult:
    """
    Outcome of resolving an offer.

    instance is the receiver's new instance on acceptance, None on decline.
    """

    offer: TradeOffer
    state: TradeState
    instance: CardInstance | None = None
    card: CardDefinition | None = None
    durable: DurableWrite = DURABLE_OK


class TradeCoordinator:
    """Validates offers and moves instances between sessions."""

    def __init__(
        self,
        cache: SessionCache,
        mutator: InventoryMutator,
        catalog: CardCatalog,
    ) -> None:
        self._cache = cache
        self._mutator = mutator
        self._catalog = catalog

    def propose(
        self,
        sender: UserSession,
        receiver_id: str,
        instance_id: str,
        receiver_is_bot: bool = False,
    ) -> TradeOffer:
        """
        Create an offer for an instance the sender owns.

        Raises:
            InvalidInputError: If trading with oneself or with a bot
            NotFoundError: If the sender does not own the instance
        """
        if receiver_id == sender.user_id:
            raise InvalidInputError("You cannot trade with yourself!")
        if receiver_is_bot:
            raise InvalidInputError("You cannot trade with bots!")
        if not sender.owns_instance(instance_id):
            raise NotFoundError(
                f"You don't have a card with ID `{instance_id}`.",
                suggestion="Check your inventory.",
            )

        offer = TradeOffer(
            sender_id=sender.user_id, receiver_id=receiver_id, instance_id=instance_id
        )
        logger.info(
            "TRADE_PROPOSED",
            extra={
                "sender_id": offer.sender_id,
                "receiver_id": offer.receiver_id,
                "instance_id": instance_id,
            },
        )
        return offer

    async def resolve(
        self,
        offer: TradeOffer,
        actor_id: str,
        decision: TradeDecision,
        now: datetime,
    ) -> TradeResult:
        """
        Apply the receiver's decision.

        Raises:
            UnauthorizedError: If actor is not the receiver (no state change)
            InvalidInputError: If sender and receiver are the same user
            TradeAbortedError: If the sender no longer owns the instance
        """
        if actor_id != offer.receiver_id:
            raise UnauthorizedError("This trade is not for you!", detail=f"actor {actor_id}")
        if offer.sender_id == offer.receiver_id:
            raise InvalidInputError("You cannot trade with yourself!")

        if decision is TradeDecision.DECLINE:
            logger.info("TRADE_DECLINED", extra={"instance_id": offer.instance_id})
            return TradeResult(offer=offer, state=TradeState.DECLINED)

        sender = await self._cache.get_or_load(offer.sender_id)
        receiver = await self._cache.get_or_load(offer.receiver_id)

        index = sender.find_instance(offer.instance_id)
        if index is None:
            logger.info("TRADE_ABORTED", extra={"instance_id": offer.instance_id})
            raise TradeAbortedError(offer.instance_id)

        moved = sender.inventory.pop(index)
        received = CardInstance(
            card_id=moved.card_id,
            obtained_at=now,
            instance_id=offer.instance_id,
        )
        receiver.inventory.append(received)

        removed = await self._mutator.persist(
            "TRADE_SENDER_DELETE_FAILED",
            offer.sender_id,
            lambda db: delete_inventory_row_by_instance(db, offer.sender_id, offer.instance_id),
        )
        added = await self._mutator.persist(
            "TRADE_RECEIVER_INSERT_FAILED",
            offer.receiver_id,
            lambda db: insert_inventory_row(
                db, offer.receiver_id, received.card_id, now, offer.instance_id
            ),
        )

        logger.info(
            "TRADE_COMPLETED",
            extra={
                "sender_id": offer.sender_id,
                "receiver_id": offer.receiver_id,
                "instance_id": offer.instance_id,
                "persisted": removed.ok and added.ok,
            },
        )
        return TradeResult(
            offer=offer,
            state=TradeState.ACCEPTED,
            instance=received,
            card=self._catalog.get(received.card_id),
            durable=DurableWrite.combine(removed, added),
        )
