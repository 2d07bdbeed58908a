from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class CardDefinition:
    """
    A catalog entry.

    Attributes:
        id: Unique catalog id (artwork file stem, e.g. "onix-b2-84")
        name: Display name
        rarity: Rarity label ("common" for every ingested card today)
        set_name: Display name of the card set (e.g. "Base Set 2")
        image_url: Public URL of the card artwork
    """

    id: str
    name: str
    rarity: str
    set_name: str
    image_url: str

    @property
    def short_name(self) -> str:
        """First word of the name, used for headline display."""
        return self.name.split(" ")[0] if self.name else self.name


@dataclass(slots=True)
class CardInstance:
    """
    One owned copy of a catalog card.

    The instance_id is what users type to view or trade a card. It travels
    with the card across trades.
    """

    card_id: str
    obtained_at: datetime
    instance_id: str | None
