from carddrop.api.cards import router as cards_router
from carddrop.api.guilds import router as guilds_router
from carddrop.api.health import router as health_router
from carddrop.api.help import router as help_router
from carddrop.api.trades import router as trades_router
from carddrop.api.users import router as users_router

__all__ = [
    "cards_router",
    "guilds_router",
    "health_router",
    "help_router",
    "trades_router",
    "users_router",
]
