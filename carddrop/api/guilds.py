"""
Guild channel restriction endpoints.
"""

from fastapi import APIRouter, Response
from pydantic import BaseModel

from carddrop.api.deps import GameDep, respond
from carddrop.models.failure import ApiResponse
from carddrop.models.views import ChannelInfo

router = APIRouter(prefix="/guilds", tags=["guilds"])


class ChannelRequest(BaseModel):
    channel_id: str
    actor_is_admin: bool = False


@router.get("/{guild_id}/channel", response_model=ChannelInfo)
async def get_channel(guild_id: str, game: GameDep) -> ChannelInfo:
    """The guild's command channel; null when every channel is allowed."""
    return game.channel_info(guild_id)


@router.put("/{guild_id}/channel", response_model=ApiResponse[ChannelInfo])
async def set_channel(
    guild_id: str, request: ChannelRequest, game: GameDep, response: Response
) -> ApiResponse[ChannelInfo]:
    """
    Restrict the guild's commands to one channel.

    Administrators only: the platform adapter sets `actor_is_admin` from the
    caller's guild permissions. Anyone else gets 403.
    """
    envelope = await game.set_channel(guild_id, request.channel_id, request.actor_is_admin)
    return respond(envelope, response)
