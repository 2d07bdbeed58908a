"""Test data builders shared across test modules."""

from datetime import UTC, datetime, timedelta
from io import BytesIO

from PIL import Image

from carddrop.models.card import CardDefinition

ARTWORK_HOST = "https://cdn.test"


class FakeClock:
    """Controllable replacement for the wall clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def make_card(card_id: str, name: str, set_name: str = "Base Set") -> CardDefinition:
    return CardDefinition(
        id=card_id,
        name=name,
        rarity="common",
        set_name=set_name,
        image_url=f"{ARTWORK_HOST}/{card_id}.png",
    )


def png_bytes(color: tuple[int, int, int, int] = (200, 30, 30, 255)) -> bytes:
    buffer = BytesIO()
    Image.new("RGBA", (10, 14), color).save(buffer, format="PNG")
    return buffer.getvalue()
