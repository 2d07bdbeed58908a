"""
Game context: the explicitly owned state of one running process.

Built once at startup and handed to every operation. Holds the session
cache, the catalog, the image caches and the components that act on them;
nothing in the game layer reaches for module-level mutable state.
"""

import random
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carddrop.config import Settings
from carddrop.services.catalog import CardCatalog
from carddrop.services.channels import ChannelRestrictions
from carddrop.services.cooldowns import CooldownGate
from carddrop.services.images import CardImageCompositor
from carddrop.services.inventory import InventoryMutator
from carddrop.services.session_cache import SessionCache
from carddrop.services.trading import TradeCoordinator


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class GameContext:
    settings: Settings
    catalog: CardCatalog
    cache: SessionCache
    gate: CooldownGate
    mutator: InventoryMutator
    trades: TradeCoordinator
    images: CardImageCompositor
    channels: ChannelRestrictions
    rng: random.Random = field(default_factory=random.Random)
    clock: Callable[[], datetime] = utc_now


def build_context(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    catalog: CardCatalog,
    http_client: httpx.AsyncClient,
    rng: random.Random | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> GameContext:
    """Wire every game component around one session factory and one HTTP client."""
    rng = rng or random.Random()
    cache = SessionCache(session_factory)
    mutator = InventoryMutator(session_factory, cache, rng=rng)
    return GameContext(
        settings=settings,
        catalog=catalog,
        cache=cache,
        gate=CooldownGate.from_settings(settings),
        mutator=mutator,
        trades=TradeCoordinator(cache, mutator, catalog),
        images=CardImageCompositor(http_client),
        channels=ChannelRestrictions(session_factory),
        rng=rng,
        clock=clock,
    )
