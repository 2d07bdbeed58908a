"""
Catalog search endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Query, Response

from carddrop.api.deps import ChannelGuard, GameDep, respond
from carddrop.models.failure import ApiResponse
from carddrop.models.views import SearchResults

router = APIRouter(prefix="/cards", tags=["cards"], dependencies=[ChannelGuard])


@router.get("/search", response_model=ApiResponse[SearchResults])
async def search_cards(
    game: GameDep,
    response: Response,
    q: Annotated[str, Query(min_length=1, description="Part of a card name")],
    page: Annotated[int, Query(ge=0)] = 0,
) -> ApiResponse[SearchResults]:
    """Cards whose name contains the query, with the users who own them."""
    return respond(await game.search(q, page), response)
