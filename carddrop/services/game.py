"""
Game service: the command operations behind every user action.

Each operation resolves the user's session, takes that user's execution
lock (both users' locks for trades), runs the game components and returns
a finalized ApiResponse.

FAILURE AUTHORITY:
KnownError subclasses become known-failure envelopes. Anything else is
logged and becomes the fixed unknown-failure envelope. Nothing raised by
the game layer reaches the platform adapter.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any, TypeVar

from carddrop.context import GameContext
from carddrop.models.failure import (
    ApiResponse,
    KnownError,
    NotFoundError,
    UnauthorizedError,
    create_known_failure,
    create_success,
    create_unknown_failure,
)
from carddrop.models.views import (
    BinderPage,
    CardDetail,
    CardView,
    ChannelInfo,
    DrawResult,
    InstanceView,
    InventoryView,
    PackResult,
    PickResolved,
    PickStarted,
    ResetResult,
    SearchResults,
    TradeOutcome,
    TradeProposal,
    TrashResult,
)
from carddrop.services import picks
from carddrop.services.browse import binder_page, inventory_view, search_page
from carddrop.services.cooldowns import CooldownAction
from carddrop.services.images import ImageFetchError
from carddrop.services.inventory import DURABLE_OK, DurableWrite, MutationResult
from carddrop.services.trading import TradeDecision, TradeOffer, TradeState

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _no_cards() -> NotFoundError:
    return NotFoundError("No cards available.", detail="catalog is empty")


def describe_cooldown(duration: timedelta) -> str:
    """Human form of a configured cooldown: "15 min", "45s" or "no cooldown"."""
    seconds = int(duration.total_seconds())
    if seconds <= 0:
        return "no cooldown"
    minutes, rest = divmod(seconds, 60)
    if minutes and not rest:
        return f"{minutes} min"
    if minutes:
        return f"{minutes}m {rest}s"
    return f"{rest}s"


class GameService:
    """Command facade over one GameContext."""

    def __init__(self, context: GameContext) -> None:
        self.context = context

    async def _run(self, operation: str, action: Callable[[], Awaitable[T]]) -> ApiResponse[Any]:
        try:
            data = await action()
        except KnownError as e:
            return create_known_failure(e)
        except Exception as e:
            logger.exception("Unhandled error in %s", operation)
            return create_unknown_failure(e)
        return create_success(data)

    def _instance_view(self, result: MutationResult) -> InstanceView:
        return InstanceView.build(
            result.index, result.instance, self.context.catalog.get(result.instance.card_id)
        )

    # =========================================================================
    # Acquisition
    # =========================================================================

    async def draw(self, user_id: str) -> ApiResponse[DrawResult]:
        """Draw one random card, subject to the draw cooldown."""
        ctx = self.context

        async def action() -> DrawResult:
            session = await ctx.cache.get_or_load(user_id)
            async with ctx.cache.locked(user_id):
                now = ctx.clock()
                ctx.gate.ensure_eligible(session, CooldownAction.DRAW, now)
                card = ctx.catalog.random_card(ctx.rng)
                if card is None:
                    raise _no_cards()

                added = await ctx.mutator.add_card(session, card.id, now)
                ctx.gate.mark_used(session, CooldownAction.DRAW, now)
                saved = await ctx.mutator.save_cooldowns(session)

            return DrawResult(
                user_id=user_id,
                drawn=self._instance_view(added),
                persisted=DurableWrite.combine(added.durable, saved).ok,
            )

        return await self._run("draw", action)

    async def open_pack(self, user_id: str) -> ApiResponse[PackResult]:
        """Draw a pack of cards sharing one timestamp, subject to the pack cooldown."""
        ctx = self.context

        async def action() -> PackResult:
            session = await ctx.cache.get_or_load(user_id)
            async with ctx.cache.locked(user_id):
                now = ctx.clock()
                ctx.gate.ensure_eligible(session, CooldownAction.PACK, now)
                if not len(ctx.catalog):
                    raise _no_cards()

                results: list[MutationResult] = []
                try:
                    for _ in range(ctx.settings.pack_size):
                        card = ctx.catalog.random_card(ctx.rng)
                        if card is None:
                            break
                        results.append(await ctx.mutator.add_card(session, card.id, now))
                        ctx.gate.mark_used(session, CooldownAction.PACK, now)
                finally:
                    # A partially granted pack still consumes the cooldown
                    saved = (
                        await ctx.mutator.save_cooldowns(session) if results else DURABLE_OK
                    )

            durable = DurableWrite.combine(*(r.durable for r in results), saved)
            return PackResult(
                user_id=user_id,
                drawn=[self._instance_view(r) for r in results],
                persisted=durable.ok,
            )

        return await self._run("open_pack", action)

    async def start_pick(self, user_id: str) -> ApiResponse[PickStarted]:
        """
        Offer three cards to choose from, subject to the pick cooldown.

        The composite image is rendered after the pick is recorded. An image
        failure is reported in `image_error`; the pick stays active.
        """
        ctx = self.context

        async def action() -> PickStarted:
            session = await ctx.cache.get_or_load(user_id)
            async with ctx.cache.locked(user_id):
                now = ctx.clock()
                ctx.gate.ensure_eligible(session, CooldownAction.PICK, now)
                choices = picks.start_pick(session, ctx.catalog, ctx.rng)
                ctx.gate.mark_used(session, CooldownAction.PICK, now)
                await ctx.mutator.save_cooldowns(session)

            image: bytes | None = None
            image_error: str | None = None
            try:
                image = await ctx.images.compose([card.image_url for card in choices])
            except ImageFetchError as e:
                image_error = e.message

            return PickStarted(
                user_id=user_id,
                choices=[CardView.from_definition(card) for card in choices],
                image=image,
                image_error=image_error,
            )

        return await self._run("start_pick", action)

    async def pick_image(self, user_id: str) -> ApiResponse[bytes]:
        """PNG composite of the user's pending pick choices."""
        ctx = self.context

        async def action() -> bytes:
            session = await ctx.cache.get_or_load(user_id)
            if not session.has_active_pick():
                raise picks.NoActivePickError()
            return await ctx.images.compose([card.image_url for card in session.pick_choices])

        return await self._run("pick_image", action)

    async def resolve_pick(self, user_id: str, slot: int) -> ApiResponse[PickResolved]:
        """Keep one of the offered cards."""
        ctx = self.context

        async def action() -> PickResolved:
            session = await ctx.cache.get_or_load(user_id)
            async with ctx.cache.locked(user_id):
                added = await picks.resolve_pick(session, slot, ctx.mutator, ctx.clock())
            return PickResolved(
                user_id=user_id,
                slot=slot,
                kept=self._instance_view(added),
                persisted=added.persisted,
            )

        return await self._run("resolve_pick", action)

    # =========================================================================
    # Inventory
    # =========================================================================

    async def trash(self, user_id: str, index: int) -> ApiResponse[TrashResult]:
        """Discard the card at an inventory index."""
        ctx = self.context

        async def action() -> TrashResult:
            session = await ctx.cache.get_or_load(user_id)
            async with ctx.cache.locked(user_id):
                removed = await ctx.mutator.remove_card(session, index)
            return TrashResult(
                user_id=user_id, removed=self._instance_view(removed), persisted=removed.persisted
            )

        return await self._run("trash", action)

    async def trash_instance(self, user_id: str, instance_id: str) -> ApiResponse[TrashResult]:
        """Discard a card by its instance id."""
        ctx = self.context

        async def action() -> TrashResult:
            session = await ctx.cache.get_or_load(user_id)
            async with ctx.cache.locked(user_id):
                removed = await ctx.mutator.remove_instance(session, instance_id)
            return TrashResult(
                user_id=user_id, removed=self._instance_view(removed), persisted=removed.persisted
            )

        return await self._run("trash_instance", action)

    async def inventory(self, user_id: str) -> ApiResponse[InventoryView]:
        ctx = self.context

        async def action() -> InventoryView:
            session = await ctx.cache.get_or_load(user_id)
            return inventory_view(session, ctx.catalog)

        return await self._run("inventory", action)

    async def binder(self, user_id: str, page: int = 0) -> ApiResponse[BinderPage]:
        ctx = self.context

        async def action() -> BinderPage:
            session = await ctx.cache.get_or_load(user_id)
            return binder_page(session, ctx.catalog, page)

        return await self._run("binder", action)

    async def view(self, user_id: str, instance_id: str) -> ApiResponse[CardDetail]:
        """One owned instance with its catalog entry."""
        ctx = self.context

        async def action() -> CardDetail:
            session = await ctx.cache.get_or_load(user_id)
            index = session.find_instance(instance_id)
            if index is None:
                raise NotFoundError(
                    f"You don't have a card with ID `{instance_id}`.",
                    suggestion="Check your inventory.",
                )
            instance = session.inventory[index]
            card = ctx.catalog.get(instance.card_id)
            if card is None:
                raise NotFoundError(
                    "Card data not found.", detail=f"card {instance.card_id} not in catalog"
                )
            return CardDetail(
                user_id=user_id,
                entry=InstanceView.build(index, instance, card),
                card=CardView.from_definition(card),
            )

        return await self._run("view", action)

    async def search(self, query: str, page: int = 0) -> ApiResponse[SearchResults]:
        """Catalog matches by name, with owners among loaded sessions."""
        ctx = self.context

        async def action() -> SearchResults:
            return search_page(query, ctx.catalog, ctx.cache.sessions(), page)

        return await self._run("search", action)

    async def reset(self, user_id: str) -> ApiResponse[ResetResult]:
        """Empty the inventory, reset cooldowns and drop any pending pick."""
        ctx = self.context

        async def action() -> ResetResult:
            session = await ctx.cache.get_or_load(user_id)
            async with ctx.cache.locked(user_id):
                durable = await ctx.mutator.clear(session)
            return ResetResult(user_id=user_id, persisted=durable.ok)

        return await self._run("reset", action)

    # =========================================================================
    # Trading
    # =========================================================================

    async def propose_trade(
        self,
        sender_id: str,
        receiver_id: str,
        instance_id: str,
        receiver_is_bot: bool = False,
    ) -> ApiResponse[TradeProposal]:
        """Offer one owned instance to another user."""
        ctx = self.context

        async def action() -> TradeProposal:
            sender = await ctx.cache.get_or_load(sender_id)
            async with ctx.cache.locked(sender_id):
                offer = ctx.trades.propose(sender, receiver_id, instance_id, receiver_is_bot)
                index = sender.find_instance(instance_id)
                card = None
                if index is not None:
                    card = ctx.catalog.get(sender.inventory[index].card_id)
            return TradeProposal(
                sender_id=offer.sender_id,
                receiver_id=offer.receiver_id,
                instance_id=offer.instance_id,
                card=CardView.from_definition(card) if card else None,
                accept_handle=offer.handle(TradeDecision.ACCEPT),
                decline_handle=offer.handle(TradeDecision.DECLINE),
            )

        return await self._run("propose_trade", action)

    async def resolve_trade(self, handle: str, actor_id: str) -> ApiResponse[TradeOutcome]:
        """Apply the receiver's accept or decline from an interaction handle."""
        ctx = self.context

        async def action() -> TradeOutcome:
            offer, decision = TradeOffer.parse(handle)
            async with ctx.cache.locked(offer.sender_id, offer.receiver_id):
                result = await ctx.trades.resolve(offer, actor_id, decision, ctx.clock())
            return TradeOutcome(
                state="accepted" if result.state is TradeState.ACCEPTED else "declined",
                sender_id=offer.sender_id,
                receiver_id=offer.receiver_id,
                instance_id=offer.instance_id,
                card=CardView.from_definition(result.card) if result.card else None,
                persisted=result.durable.ok,
            )

        return await self._run("resolve_trade", action)

    # =========================================================================
    # Guild configuration
    # =========================================================================

    def channel_allowed(self, guild_id: str | None, channel_id: str) -> bool:
        return self.context.channels.is_allowed(guild_id, channel_id)

    async def set_channel(
        self, guild_id: str, channel_id: str, actor_is_admin: bool = False
    ) -> ApiResponse[ChannelInfo]:
        """
        Restrict a guild's commands to one channel.

        Only guild administrators may do this. The platform adapter reports
        the caller's permission in `actor_is_admin`.
        """
        ctx = self.context

        async def action() -> ChannelInfo:
            if not actor_is_admin:
                raise UnauthorizedError(
                    "Only server administrators can set the card channel.",
                    detail=f"guild {guild_id}",
                )
            persisted = await ctx.channels.set_channel(guild_id, channel_id)
            return ChannelInfo(guild_id=guild_id, channel_id=channel_id, persisted=persisted)

        return await self._run("set_channel", action)

    def channel_info(self, guild_id: str) -> ChannelInfo:
        channel_id = self.context.channels.channel_for(guild_id)
        return ChannelInfo(guild_id=guild_id, channel_id=channel_id)

    # =========================================================================
    # Help
    # =========================================================================

    def help_text(self) -> str:
        """Command list with the cooldowns actually in force."""
        gate = self.context.gate
        draw = describe_cooldown(gate.duration(CooldownAction.DRAW))
        pack = describe_cooldown(gate.duration(CooldownAction.PACK))
        pick = describe_cooldown(gate.duration(CooldownAction.PICK))
        pack_size = self.context.settings.pack_size
        return "\n".join(
            [
                "**Card Commands**",
                f"`draw` - Draw a random card ({draw})",
                f"`pack` - Open a pack of {pack_size} cards ({pack})",
                f"`pick` - Choose one card out of three ({pick})",
                "`inventory` - View your cards",
                "`binder` - View your cards grouped by set",
                "`view <id>` - Show one of your cards",
                "`search <name>` - Find cards and who owns them",
                "`trash <index>` - Discard a card from your inventory",
                "`trade <user> <id>` - Offer one of your cards to another user",
                "`reset_me` - Clear your inventory and cooldowns",
                "`setchannel` - Restrict commands to one channel",
            ]
        )
