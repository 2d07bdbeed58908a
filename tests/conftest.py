import random
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import httpx
import pytest
import respx
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from carddrop.config import Settings
from carddrop.context import GameContext, build_context
from carddrop.models.db import Base
from carddrop.services.catalog import CardCatalog
from carddrop.services.game import GameService
from tests.factories import ARTWORK_HOST, FakeClock, make_card, png_bytes


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """File-backed SQLite engine so concurrent sessions get their own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'carddrop.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def catalog() -> CardCatalog:
    return CardCatalog(
        [
            make_card("onix-b2-84", "Onix", "Base Set 2"),
            make_card("pikachu-base1-58", "Pikachu", "Base Set"),
            make_card("raichu-base1-14", "Raichu", "Base Set"),
            make_card("charizard-base1-4", "Charizard", "Base Set"),
            make_card("dark-charizard-tr-21", "Dark Charizard", "Team Rocket"),
        ]
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        test_mode=False,
        draw_cooldown_seconds=900,
        pack_cooldown_seconds=600,
        pick_cooldown_seconds=1800,
        pack_size=5,
    )


@pytest.fixture
def artwork() -> Iterator[respx.MockRouter]:
    """Serve a small PNG for every artwork URL."""
    with respx.mock(assert_all_called=False) as router:
        router.get(url__startswith=ARTWORK_HOST).mock(
            return_value=httpx.Response(200, content=png_bytes())
        )
        yield router


@pytest.fixture
async def http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def context(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    catalog: CardCatalog,
    http_client: httpx.AsyncClient,
    clock: FakeClock,
) -> GameContext:
    return build_context(
        settings,
        session_factory,
        catalog,
        http_client,
        rng=random.Random(1234),
        clock=clock,
    )


@pytest.fixture
def game(context: GameContext) -> GameService:
    return GameService(context)
