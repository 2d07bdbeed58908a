"""
Help text endpoint.
"""

from fastapi import APIRouter
from pydantic import BaseModel

from carddrop.api.deps import GameDep

router = APIRouter(tags=["help"])


class HelpResponse(BaseModel):
    text: str


@router.get("/help", response_model=HelpResponse)
async def help_text(game: GameDep) -> HelpResponse:
    """Command list with the cooldowns currently configured."""
    return HelpResponse(text=game.help_text())
