"""
Trade endpoints.

A proposal returns two opaque handles; the receiver resolves the trade by
posting one of them back.
"""

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from carddrop.api.deps import ChannelGuard, GameDep, respond
from carddrop.models.failure import ApiResponse
from carddrop.models.views import TradeOutcome, TradeProposal

router = APIRouter(prefix="/trades", tags=["trades"], dependencies=[ChannelGuard])


class TradeRequest(BaseModel):
    """Request model for proposing a trade."""

    sender_id: str
    receiver_id: str
    instance_id: str = Field(..., examples=["po1a2b"])
    receiver_is_bot: bool = False


class TradeResolveRequest(BaseModel):
    """Request model for the receiver's decision."""

    handle: str = Field(..., examples=["trade_accept_111_222_po1a2b"])
    actor_id: str = Field(..., description="User pressing the button")


@router.post("", response_model=ApiResponse[TradeProposal])
async def propose_trade(
    request: TradeRequest, game: GameDep, response: Response
) -> ApiResponse[TradeProposal]:
    """Offer one of the sender's cards to the receiver."""
    envelope = await game.propose_trade(
        request.sender_id,
        request.receiver_id,
        request.instance_id,
        receiver_is_bot=request.receiver_is_bot,
    )
    return respond(envelope, response)


@router.post("/resolve", response_model=ApiResponse[TradeOutcome])
async def resolve_trade(
    request: TradeResolveRequest, game: GameDep, response: Response
) -> ApiResponse[TradeOutcome]:
    """Accept or decline a trade. Only the receiver may resolve it."""
    return respond(await game.resolve_trade(request.handle, request.actor_id), response)
