"""
Card catalog service.

Loads the immutable list of card definitions and answers lookups, random
draws and name searches against it.
"""

import json
import random
import re
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any

from carddrop.models.card import CardDefinition

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif")

_NUMBER = re.compile(r"^\d+$")
_LANGUAGE_CODE = re.compile(r"^[a-z]{2}(_[a-z]{2})?$", re.IGNORECASE)
_SET_CODE = re.compile(r"^[a-z]+\d+$", re.IGNORECASE)


class CardCatalog:
    """
    Immutable, ordered collection of card definitions.

    Loaded once at startup; every game component reads from the same instance.
    """

    def __init__(self, definitions: Iterable[CardDefinition]) -> None:
        self._cards: tuple[CardDefinition, ...] = tuple(definitions)
        self._by_id: dict[str, CardDefinition] = {}
        for card in self._cards:
            # First definition wins on duplicate ids
            self._by_id.setdefault(card.id, card)

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[CardDefinition]:
        return iter(self._cards)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._by_id

    @property
    def cards(self) -> Sequence[CardDefinition]:
        return self._cards

    def get(self, card_id: str) -> CardDefinition | None:
        return self._by_id.get(card_id)

    def random_card(self, rng: random.Random) -> CardDefinition | None:
        """Uniformly random definition, or None for an empty catalog."""
        if not self._cards:
            return None
        return self._cards[rng.randrange(len(self._cards))]

    def search(self, query: str) -> list[CardDefinition]:
        """Case-insensitive substring match on card names, in catalog order."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [card for card in self._cards if needle in card.name.lower()]

    def image_urls(self) -> list[str]:
        return [card.image_url for card in self._cards]


def _definition_from_dict(data: dict[str, Any]) -> CardDefinition:
    return CardDefinition(
        id=str(data["id"]),
        name=str(data.get("name") or "Unknown Card"),
        rarity=str(data.get("rarity") or "common"),
        set_name=str(data.get("set") or data.get("set_name") or ""),
        image_url=str(data.get("imageUrl") or data.get("image_url") or ""),
    )


def load_catalog(path: Path | str) -> CardCatalog:
    """
    Load a catalog from a JSON file.

    Args:
        path: JSON array of objects with id, name, rarity, set and imageUrl

    Returns:
        The loaded catalog.

    Raises:
        FileNotFoundError: If the catalog file doesn't exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Card catalog not found at {path}. "
            "Run `python -m carddrop.jobs.build_catalog` first."
        )

    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    return CardCatalog(_definition_from_dict(item) for item in raw)


def dump_catalog(catalog: CardCatalog, path: Path | str) -> None:
    """Write a catalog in the format load_catalog reads."""
    payload = [
        {
            "id": card.id,
            "name": card.name,
            "rarity": card.rarity,
            "set": card.set_name,
            "imageUrl": card.image_url,
        }
        for card in catalog
    ]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def card_name_from_id(card_id: str) -> str:
    """
    Derive a display name from an artwork file stem.

    Drops numbers, language codes (en, en_US), set codes (SWSH4, B2) and
    single letters, then title-cases what is left.

    Example: "onix-en_US-b2-84" -> "Onix"
    """
    kept = [
        part
        for part in card_id.split("-")
        if part
        and not _NUMBER.match(part)
        and not _LANGUAGE_CODE.match(part)
        and not _SET_CODE.match(part)
        and len(part) > 1
    ]
    return " ".join(part[0].upper() + part[1:] for part in kept)


def card_from_filename(
    filename: str, set_name: str, base_url: str, bucket: str
) -> CardDefinition | None:
    """
    Build a definition from an artwork filename in a storage bucket.

    Returns None for files that are not images.
    """
    if not filename.lower().endswith(IMAGE_EXTENSIONS):
        return None

    card_id = filename.split(".")[0]
    return CardDefinition(
        id=card_id,
        name=card_name_from_id(card_id) or "Unknown Card",
        rarity="common",
        set_name=set_name,
        image_url=f"{base_url.rstrip('/')}/storage/v1/object/public/{bucket}/{filename}",
    )
