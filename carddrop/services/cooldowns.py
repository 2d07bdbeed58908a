"""
Cooldown gate: time-based eligibility for draw, pack and pick.

Each action has its own timestamp on the session and its own configured
duration. An action is eligible iff `now - last >= cooldown`.

The gate is pure: it never touches the store. Callers record use with
`mark_used` and persist cooldowns through InventoryMutator.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from carddrop.config import Settings
from carddrop.models.failure import FailureKind, KnownError
from carddrop.models.session import UserSession

logger = logging.getLogger(__name__)


class CooldownAction(str, Enum):
    """The three rate-limited actions."""

    DRAW = "draw"
    PACK = "pack"
    PICK = "pick"


_TIMESTAMP_FIELDS: dict[CooldownAction, str] = {
    CooldownAction.DRAW: "last_draw_at",
    CooldownAction.PACK: "last_pack_at",
    CooldownAction.PICK: "last_pick_at",
}

_WAIT_PHRASES: dict[CooldownAction, str] = {
    CooldownAction.DRAW: "draw again",
    CooldownAction.PACK: "open another pack",
    CooldownAction.PICK: "pick again",
}


def format_remaining(remaining: timedelta) -> str:
    """
    Render a wait for display.

    Rounds up to whole seconds: "4m 3s" when at least a minute remains,
    otherwise "42s".
    """
    total_seconds = remaining_seconds(remaining)
    minutes, seconds = divmod(total_seconds, 60)
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def remaining_seconds(remaining: timedelta) -> int:
    """Whole seconds left, rounded up; never negative."""
    return max(0, math.ceil(remaining.total_seconds()))


class NotEligibleError(KnownError):
    """
    Exception raised when an action's cooldown has not elapsed.

    Carries the remaining wait so the platform can show it.
    """

    def __init__(self, action: CooldownAction, remaining: timedelta):
        self.action = action
        self.remaining = remaining
        super().__init__(
            kind=FailureKind.NOT_ELIGIBLE,
            message=f"You can {_WAIT_PHRASES[action]} in {format_remaining(remaining)}.",
            detail=f"{action.value} cooldown",
            status_code=429,
            retry_after_seconds=remaining_seconds(remaining),
        )


@dataclass(frozen=True, slots=True)
class CooldownStatus:
    """Result of a cooldown check."""

    action: CooldownAction
    eligible: bool
    remaining: timedelta

    @property
    def display(self) -> str:
        return format_remaining(self.remaining)


class CooldownGate:
    """Checks and records use of the three time-limited actions."""

    def __init__(
        self,
        draw_cooldown: timedelta,
        pack_cooldown: timedelta,
        pick_cooldown: timedelta,
    ) -> None:
        self._durations: dict[CooldownAction, timedelta] = {
            CooldownAction.DRAW: draw_cooldown,
            CooldownAction.PACK: pack_cooldown,
            CooldownAction.PICK: pick_cooldown,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "CooldownGate":
        return cls(
            draw_cooldown=settings.draw_cooldown,
            pack_cooldown=settings.pack_cooldown,
            pick_cooldown=settings.pick_cooldown,
        )

    def duration(self, action: CooldownAction) -> timedelta:
        return self._durations[action]

    def last_used(self, session: UserSession, action: CooldownAction) -> datetime:
        last: datetime = getattr(session, _TIMESTAMP_FIELDS[action])
        return last

    def check(self, session: UserSession, action: CooldownAction, now: datetime) -> CooldownStatus:
        """Check eligibility of an action at `now`."""
        elapsed = now - self.last_used(session, action)
        cooldown = self._durations[action]
        if elapsed >= cooldown:
            return CooldownStatus(action=action, eligible=True, remaining=timedelta(0))
        return CooldownStatus(action=action, eligible=False, remaining=cooldown - elapsed)

    def ensure_eligible(
        self, session: UserSession, action: CooldownAction, now: datetime
    ) -> CooldownStatus:
        """
        Check eligibility, raising if the cooldown is still running.

        Raises:
            NotEligibleError: If the cooldown has not elapsed
        """
        status = self.check(session, action, now)
        if not status.eligible:
            logger.info(
                "COOLDOWN_DENIED",
                extra={
                    "user_id": session.user_id,
                    "action": action.value,
                    "remaining_seconds": remaining_seconds(status.remaining),
                },
            )
            raise NotEligibleError(action, status.remaining)
        return status

    def mark_used(self, session: UserSession, action: CooldownAction, now: datetime) -> None:
        setattr(session, _TIMESTAMP_FIELDS[action], now)
