"""Tests for the HTTP API."""

from collections.abc import AsyncIterator

import httpx
import pytest
import respx
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carddrop.api.deps import get_game
from carddrop.db.database import get_session
from carddrop.main import app
from carddrop.services.game import GameService
from tests.factories import FakeClock


@pytest.fixture
async def client(
    game: GameService, session_factory: async_sessionmaker[AsyncSession]
) -> AsyncIterator[AsyncClient]:
    """Provide an async test client wired to the test game and database."""

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_game] = lambda: game
    app.dependency_overrides[get_session] = override_get_session
    app.state.game = game

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
    app.state.game = None


class TestCommands:
    async def test_draw(self, client: AsyncClient) -> None:
        response = await client.post("/users/u1/draw")

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "success"
        assert data["data"]["drawn"]["instance_id"].startswith("po")
        assert data["data"]["persisted"] is True

    async def test_cooldown_maps_to_429(self, client: AsyncClient, clock: FakeClock) -> None:
        await client.post("/users/u1/draw")
        clock.advance(minutes=14)

        response = await client.post("/users/u1/draw")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        body = response.json()
        assert body["outcome"] == "known_failure"
        assert body["failure"]["kind"] == "not_eligible"
        assert body["failure"]["message"] == "You can draw again in 1m 0s."

    async def test_pack_and_inventory(self, client: AsyncClient) -> None:
        await client.post("/users/u1/pack")

        response = await client.get("/users/u1/inventory")

        assert response.status_code == 200
        assert response.json()["data"]["total_cards"] == 5

    async def test_trash_bad_index_is_404(self, client: AsyncClient) -> None:
        response = await client.post("/users/u1/trash/4")

        assert response.status_code == 404
        assert response.json()["failure"]["kind"] == "not_found"

    async def test_view_and_trash_by_instance(self, client: AsyncClient) -> None:
        drawn = await client.post("/users/u1/draw")
        instance_id = drawn.json()["data"]["drawn"]["instance_id"]

        viewed = await client.get(f"/users/u1/cards/{instance_id}")
        deleted = await client.delete(f"/users/u1/cards/{instance_id}")
        gone = await client.get(f"/users/u1/cards/{instance_id}")

        assert viewed.status_code == 200
        assert viewed.json()["data"]["entry"]["instance_id"] == instance_id
        assert deleted.status_code == 200
        assert gone.status_code == 404

    async def test_binder_page_out_of_range(self, client: AsyncClient) -> None:
        response = await client.get("/users/u1/binder", params={"page": 3})

        assert response.status_code == 404

    async def test_reset(self, client: AsyncClient) -> None:
        await client.post("/users/u1/draw")

        response = await client.post("/users/u1/reset")
        inventory = await client.get("/users/u1/inventory")

        assert response.status_code == 200
        assert inventory.json()["data"]["entries"] == []


class TestPickEndpoints:
    async def test_pick_flow(self, artwork: respx.MockRouter, client: AsyncClient) -> None:
        started = await client.post("/users/u1/pick")
        image = await client.get("/users/u1/pick/image")
        kept = await client.post("/users/u1/pick/1")
        again = await client.post("/users/u1/pick/1")

        assert started.status_code == 200
        assert len(started.json()["data"]["choices"]) == 3
        assert "image" not in started.json()["data"]
        assert image.status_code == 200
        assert image.headers["content-type"] == "image/png"
        assert image.content.startswith(b"\x89PNG")
        assert kept.status_code == 200
        assert again.status_code == 404
        assert again.json()["failure"]["kind"] == "no_active_session"

    async def test_pick_image_without_pick(self, client: AsyncClient) -> None:
        response = await client.get("/users/u1/pick/image")

        assert response.status_code == 404
        assert response.json()["failure"]["kind"] == "no_active_session"

    @respx.mock
    async def test_pick_image_upstream_failure(
        self, client: AsyncClient, game: GameService
    ) -> None:
        respx.get(url__startswith="https://cdn.test").mock(return_value=httpx.Response(500))
        started = await client.post("/users/u1/pick")

        response = await client.get("/users/u1/pick/image")

        assert started.status_code == 200
        assert started.json()["data"]["image_error"] == "Failed to load card images."
        assert response.status_code == 502
        assert response.json()["failure"]["kind"] == "upstream_failure"


class TestTradeEndpoints:
    async def test_propose_and_accept(self, client: AsyncClient) -> None:
        drawn = await client.post("/users/A/draw")
        instance_id = drawn.json()["data"]["drawn"]["instance_id"]

        proposal = await client.post(
            "/trades", json={"sender_id": "A", "receiver_id": "B", "instance_id": instance_id}
        )
        handle = proposal.json()["data"]["accept_handle"]
        stolen = await client.post("/trades/resolve", json={"handle": handle, "actor_id": "C"})
        accepted = await client.post("/trades/resolve", json={"handle": handle, "actor_id": "B"})

        assert proposal.status_code == 200
        assert handle == f"trade_accept_A_B_{instance_id}"
        assert stolen.status_code == 403
        assert accepted.status_code == 200
        assert accepted.json()["data"]["state"] == "accepted"
        inventory = await client.get("/users/B/inventory")
        assert inventory.json()["data"]["entries"][0]["instance_id"] == instance_id

    async def test_self_trade_rejected(self, client: AsyncClient) -> None:
        response = await client.post(
            "/trades", json={"sender_id": "A", "receiver_id": "A", "instance_id": "po1a2b"}
        )

        assert response.status_code == 400
        assert response.json()["failure"]["kind"] == "invalid_input"


class TestSearchAndGuilds:
    async def test_search(self, client: AsyncClient) -> None:
        response = await client.get("/cards/search", params={"q": "char"})

        assert response.status_code == 200
        assert response.json()["data"]["total_matches"] == 2

    async def test_search_no_match(self, client: AsyncClient) -> None:
        response = await client.get("/cards/search", params={"q": "zzz"})

        assert response.status_code == 404

    async def test_channel_restriction(self, client: AsyncClient) -> None:
        unset = await client.get("/guilds/g1/channel")
        refused = await client.put("/guilds/g1/channel", json={"channel_id": "c1"})
        set_response = await client.put(
            "/guilds/g1/channel", json={"channel_id": "c1", "actor_is_admin": True}
        )
        wrong = await client.post(
            "/users/u1/draw", params={"guild_id": "g1", "channel_id": "c2"}
        )
        right = await client.post(
            "/users/u1/draw", params={"guild_id": "g1", "channel_id": "c1"}
        )

        assert unset.json()["channel_id"] is None
        assert refused.status_code == 403
        assert set_response.status_code == 200
        assert wrong.status_code == 403
        assert right.status_code == 200


class TestMetaEndpoints:
    async def test_help(self, client: AsyncClient) -> None:
        response = await client.get("/help")

        assert response.status_code == 200
        assert "(15 min)" in response.json()["text"]

    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_ready(self, client: AsyncClient) -> None:
        response = await client.get("/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["database"] == "connected"
        assert data["catalog_cards"] == 5

    async def test_game_not_initialized(self) -> None:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.post("/users/u1/draw")

        assert response.status_code == 503
