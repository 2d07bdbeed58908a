"""
Shared API dependencies and envelope-to-HTTP mapping.
"""

from typing import Annotated, Any

from fastapi import Depends, HTTPException, Query, Request, Response, status

from carddrop.models.failure import ApiResponse, FailureKind
from carddrop.services.game import GameService

STATUS_BY_KIND: dict[FailureKind, int] = {
    FailureKind.NOT_ELIGIBLE: status.HTTP_429_TOO_MANY_REQUESTS,
    FailureKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.NO_ACTIVE_SESSION: status.HTTP_404_NOT_FOUND,
    FailureKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    FailureKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    FailureKind.UPSTREAM_FAILURE: status.HTTP_502_BAD_GATEWAY,
    FailureKind.INVARIANT_VIOLATION: status.HTTP_500_INTERNAL_SERVER_ERROR,
    FailureKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_game(request: Request) -> GameService:
    """The GameService built at startup."""
    game: GameService | None = getattr(request.app.state, "game", None)
    if game is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Game not initialized",
        )
    return game


GameDep = Annotated[GameService, Depends(get_game)]


def require_channel(
    game: GameDep,
    guild_id: Annotated[str | None, Query(description="Guild the command came from")] = None,
    channel_id: Annotated[str | None, Query(description="Channel the command came from")] = None,
) -> None:
    """Reject commands issued outside a guild's configured channel."""
    if channel_id is None:
        return
    if not game.channel_allowed(guild_id, channel_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Commands are not allowed in this channel.",
        )


ChannelGuard = Depends(require_channel)


def respond(envelope: ApiResponse[Any], response: Response) -> ApiResponse[Any]:
    """Set the HTTP status (and Retry-After for cooldowns) from an envelope."""
    failure = envelope.failure
    if failure is None:
        return envelope

    response.status_code = STATUS_BY_KIND[failure.kind]
    if failure.retry_after_seconds is not None:
        response.headers["Retry-After"] = str(failure.retry_after_seconds)
    return envelope
