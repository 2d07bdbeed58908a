"""
Per-user command endpoints.

Every command returns the ApiResponse envelope; the HTTP status mirrors the
envelope's failure kind. Pass `guild_id` and `channel_id` to have the
guild's channel restriction enforced.
"""

from typing import Annotated

from fastapi import APIRouter, Query, Response
from fastapi.responses import JSONResponse

from carddrop.api.deps import STATUS_BY_KIND, ChannelGuard, GameDep, respond
from carddrop.models.failure import ApiResponse
from carddrop.models.views import (
    BinderPage,
    CardDetail,
    DrawResult,
    InventoryView,
    PackResult,
    PickResolved,
    PickStarted,
    ResetResult,
    TrashResult,
)

router = APIRouter(prefix="/users", tags=["users"], dependencies=[ChannelGuard])


@router.post("/{user_id}/draw", response_model=ApiResponse[DrawResult])
async def draw(user_id: str, game: GameDep, response: Response) -> ApiResponse[DrawResult]:
    """Draw one random card."""
    return respond(await game.draw(user_id), response)


@router.post("/{user_id}/pack", response_model=ApiResponse[PackResult])
async def open_pack(user_id: str, game: GameDep, response: Response) -> ApiResponse[PackResult]:
    """Open a pack of cards."""
    return respond(await game.open_pack(user_id), response)


@router.post("/{user_id}/pick", response_model=ApiResponse[PickStarted])
async def start_pick(user_id: str, game: GameDep, response: Response) -> ApiResponse[PickStarted]:
    """
    Start a pick of three cards.

    The composite image is served separately from /users/{user_id}/pick/image.
    """
    return respond(await game.start_pick(user_id), response)


@router.get(
    "/{user_id}/pick/image",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
)
async def pick_image(user_id: str, game: GameDep) -> Response:
    """The pending pick's three cards side by side, as PNG."""
    envelope = await game.pick_image(user_id)
    failure = envelope.failure
    if failure is None:
        return Response(content=envelope.data, media_type="image/png")

    headers = {}
    if failure.retry_after_seconds is not None:
        headers["Retry-After"] = str(failure.retry_after_seconds)
    return JSONResponse(
        status_code=STATUS_BY_KIND[failure.kind],
        content=envelope.model_dump(mode="json"),
        headers=headers,
    )


@router.post("/{user_id}/pick/{slot}", response_model=ApiResponse[PickResolved])
async def resolve_pick(
    user_id: str, slot: int, game: GameDep, response: Response
) -> ApiResponse[PickResolved]:
    """Keep the card in slot 0, 1 or 2."""
    return respond(await game.resolve_pick(user_id, slot), response)


@router.post("/{user_id}/trash/{index}", response_model=ApiResponse[TrashResult])
async def trash(
    user_id: str, index: int, game: GameDep, response: Response
) -> ApiResponse[TrashResult]:
    """Discard the card at an inventory index."""
    return respond(await game.trash(user_id, index), response)


@router.get("/{user_id}/cards/{instance_id}", response_model=ApiResponse[CardDetail])
async def view_card(
    user_id: str, instance_id: str, game: GameDep, response: Response
) -> ApiResponse[CardDetail]:
    return respond(await game.view(user_id, instance_id), response)


@router.delete("/{user_id}/cards/{instance_id}", response_model=ApiResponse[TrashResult])
async def trash_card(
    user_id: str, instance_id: str, game: GameDep, response: Response
) -> ApiResponse[TrashResult]:
    """Discard a card by instance id."""
    return respond(await game.trash_instance(user_id, instance_id), response)


@router.get("/{user_id}/inventory", response_model=ApiResponse[InventoryView])
async def inventory(
    user_id: str, game: GameDep, response: Response
) -> ApiResponse[InventoryView]:
    return respond(await game.inventory(user_id), response)


@router.get("/{user_id}/binder", response_model=ApiResponse[BinderPage])
async def binder(
    user_id: str,
    game: GameDep,
    response: Response,
    page: Annotated[int, Query(ge=0, description="Zero-based page")] = 0,
) -> ApiResponse[BinderPage]:
    """Cards grouped by set, paginated."""
    return respond(await game.binder(user_id, page), response)


@router.post("/{user_id}/reset", response_model=ApiResponse[ResetResult])
async def reset(user_id: str, game: GameDep, response: Response) -> ApiResponse[ResetResult]:
    """Clear the user's inventory, cooldowns and pending pick."""
    return respond(await game.reset(user_id), response)
