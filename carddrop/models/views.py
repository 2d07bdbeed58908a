"""
Plain response data handed to the platform layer.

These models carry no rendering decisions: the platform adapter turns them
into messages, embeds, buttons and attachments.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from carddrop.models.card import CardDefinition, CardInstance


class CardView(BaseModel):
    """A catalog card."""

    id: str
    name: str
    short_name: str
    rarity: str
    set_name: str
    image_url: str

    @classmethod
    def from_definition(cls, card: CardDefinition) -> "CardView":
        return cls(
            id=card.id,
            name=card.name,
            short_name=card.short_name,
            rarity=card.rarity,
            set_name=card.set_name,
            image_url=card.image_url,
        )


class InstanceView(BaseModel):
    """An owned instance at its inventory position."""

    index: int
    instance_id: str | None
    card_id: str
    obtained_at: datetime
    card: CardView | None = Field(
        default=None,
        description="Catalog entry, absent when the card is no longer in the catalog",
    )

    @classmethod
    def build(
        cls, index: int, instance: CardInstance, card: CardDefinition | None
    ) -> "InstanceView":
        return cls(
            index=index,
            instance_id=instance.instance_id,
            card_id=instance.card_id,
            obtained_at=instance.obtained_at,
            card=CardView.from_definition(card) if card else None,
        )


class DrawResult(BaseModel):
    user_id: str
    drawn: InstanceView
    persisted: bool = True


class PackResult(BaseModel):
    user_id: str
    drawn: list[InstanceView] = Field(default_factory=list)
    persisted: bool = True


class PickStarted(BaseModel):
    user_id: str
    choices: list[CardView]
    image_error: str | None = Field(
        default=None,
        description="Why the composite image could not be produced (pick stays active)",
    )
    image: bytes | None = Field(default=None, exclude=True)


class PickResolved(BaseModel):
    user_id: str
    slot: int
    kept: InstanceView
    persisted: bool = True


class TrashResult(BaseModel):
    user_id: str
    removed: InstanceView
    persisted: bool = True


class InventoryView(BaseModel):
    user_id: str
    entries: list[InstanceView] = Field(default_factory=list)
    total_cards: int = 0


class BinderRow(BaseModel):
    """A set header or a card line in the binder."""

    kind: Literal["header", "card"]
    set_name: str
    count: int | None = None
    entry: InstanceView | None = None


class BinderPage(BaseModel):
    user_id: str
    page: int
    total_pages: int
    total_cards: int
    rows: list[BinderRow] = Field(default_factory=list)


class CardOwner(BaseModel):
    user_id: str
    instance_ids: list[str] = Field(default_factory=list)


class SearchHit(BaseModel):
    card: CardView
    owners: list[CardOwner] = Field(default_factory=list)


class SearchResults(BaseModel):
    query: str
    page: int
    total_pages: int
    total_matches: int
    hits: list[SearchHit] = Field(default_factory=list)


class CardDetail(BaseModel):
    user_id: str
    entry: InstanceView
    card: CardView


class TradeProposal(BaseModel):
    sender_id: str
    receiver_id: str
    instance_id: str
    card: CardView | None = None
    accept_handle: str
    decline_handle: str


class TradeOutcome(BaseModel):
    state: Literal["accepted", "declined"]
    sender_id: str
    receiver_id: str
    instance_id: str
    card: CardView | None = None
    persisted: bool = True


class ResetResult(BaseModel):
    user_id: str
    persisted: bool = True


class ChannelInfo(BaseModel):
    guild_id: str
    channel_id: str | None = None
    persisted: bool = True
