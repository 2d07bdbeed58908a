"""
Pick sessions: choose one card out of three.

Starting a pick draws three independent random definitions (repeats are
possible) and stores them on the session. Resolving a slot materializes
that definition as a new owned instance and clears the pick.
"""

import random
from datetime import datetime

from carddrop.config import PICK_CHOICES
from carddrop.models.card import CardDefinition
from carddrop.models.failure import FailureKind, KnownError, NotFoundError
from carddrop.models.session import UserSession
from carddrop.services.catalog import CardCatalog
from carddrop.services.inventory import InventoryMutator, MutationResult


class NoActivePickError(KnownError):
    """Raised when resolving a pick that was never started or already resolved."""

    def __init__(self) -> None:
        super().__init__(
            kind=FailureKind.NO_ACTIVE_SESSION,
            message="No active pick session. Use pick to start one.",
            status_code=404,
        )


def start_pick(
    session: UserSession,
    catalog: CardCatalog,
    rng: random.Random,
    choices: int = PICK_CHOICES,
) -> list[CardDefinition]:
    """
    Draw the options for a new pick, replacing any unresolved one.

    Raises:
        NotFoundError: If the catalog is empty
    """
    drawn: list[CardDefinition] = []
    for _ in range(choices):
        card = catalog.random_card(rng)
        if card is None:
            raise NotFoundError(
                "Not enough cards available.",
                detail="catalog is empty",
            )
        drawn.append(card)

    session.pick_choices = drawn
    return list(drawn)


async def resolve_pick(
    session: UserSession,
    slot: int,
    mutator: InventoryMutator,
    now: datetime,
) -> MutationResult:
    """
    Keep the card in `slot` and end the pick.

    Raises:
        NoActivePickError: If no pick is pending
        NotFoundError: If slot is not one of the offered positions
    """
    if not session.pick_choices:
        raise NoActivePickError()

    if not 0 <= slot < len(session.pick_choices):
        raise NotFoundError(
            "Invalid choice.",
            detail=f"slot {slot} outside [0, {len(session.pick_choices)})",
        )

    card = session.pick_choices[slot]
    # Cleared before the first suspension point
    session.pick_choices = []
    return await mutator.add_card(session, card.id, now)
