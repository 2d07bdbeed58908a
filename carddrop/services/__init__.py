"""
CardDrop services.

Game components that act on per-user sessions and the card catalog.
GameService lives in carddrop.services.game and is not re-exported here
because it depends on carddrop.context.
"""

from carddrop.services.catalog import (
    CardCatalog,
    card_from_filename,
    card_name_from_id,
    dump_catalog,
    load_catalog,
)
from carddrop.services.channels import ChannelRestrictions
from carddrop.services.cooldowns import (
    CooldownAction,
    CooldownGate,
    CooldownStatus,
    NotEligibleError,
    format_remaining,
)
from carddrop.services.images import CardImageCompositor, ImageFetchError
from carddrop.services.instance_ids import generate_instance_id
from carddrop.services.inventory import (
    DurableWrite,
    InstanceIdExhaustedError,
    InventoryMutator,
    MutationResult,
)
from carddrop.services.picks import NoActivePickError, resolve_pick, start_pick
from carddrop.services.session_cache import SessionCache
from carddrop.services.trading import (
    TradeAbortedError,
    TradeCoordinator,
    TradeDecision,
    TradeOffer,
    TradeResult,
    TradeState,
)

__all__ = [
    "CardCatalog",
    "CardImageCompositor",
    "ChannelRestrictions",
    "CooldownAction",
    "CooldownGate",
    "CooldownStatus",
    "DurableWrite",
    "ImageFetchError",
    "InstanceIdExhaustedError",
    "InventoryMutator",
    "MutationResult",
    "NoActivePickError",
    "NotEligibleError",
    "SessionCache",
    "TradeAbortedError",
    "TradeCoordinator",
    "TradeDecision",
    "TradeOffer",
    "TradeResult",
    "TradeState",
    "card_from_filename",
    "card_name_from_id",
    "dump_catalog",
    "format_remaining",
    "generate_instance_id",
    "load_catalog",
    "resolve_pick",
    "start_pick",
]
