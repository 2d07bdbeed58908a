import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from carddrop.api import (
    cards_router,
    guilds_router,
    health_router,
    help_router,
    trades_router,
    users_router,
)
from carddrop.config import settings
from carddrop.context import build_context
from carddrop.db.database import async_session_factory, init_db
from carddrop.services.catalog import CardCatalog, load_catalog
from carddrop.services.game import GameService

logger = logging.getLogger(__name__)


def _load_catalog_or_empty(path: str) -> CardCatalog:
    try:
        catalog = load_catalog(path)
    except FileNotFoundError as e:
        logger.warning("%s Starting with an empty catalog.", e)
        return CardCatalog([])
    logger.info("Loaded %d cards from %s", len(catalog), path)
    return catalog


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()

    catalog = _load_catalog_or_empty(settings.catalog_path)
    async with httpx.AsyncClient(
        timeout=settings.image_timeout_seconds, follow_redirects=True
    ) as client:
        context = build_context(settings, async_session_factory, catalog, client)
        await context.channels.load()
        if settings.preload_images:
            await context.images.preload(catalog.image_urls())

        app.state.game = GameService(context)
        yield
        app.state.game = None


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("carddrop"),
    lifespan=lifespan,
)

app.include_router(users_router)
app.include_router(trades_router)
app.include_router(cards_router)
app.include_router(guilds_router)
app.include_router(help_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
