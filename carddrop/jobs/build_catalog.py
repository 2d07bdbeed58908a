"""
Build the card catalog from artwork files.

Each subdirectory of the artwork root is one set; every image inside it
becomes a card whose name is derived from the filename. The resulting JSON
is what the game loads at startup.

    python -m carddrop.jobs.build_catalog ./artwork \
        --base-url https://xyz.supabase.co --output data/catalog.json
"""

import argparse
import logging
from pathlib import Path

from carddrop.config import settings
from carddrop.models.card import CardDefinition
from carddrop.services.catalog import CardCatalog, card_from_filename, dump_catalog

logger = logging.getLogger(__name__)


def scan_artwork(root: Path, base_url: str) -> CardCatalog:
    """
    Turn an artwork tree into a catalog.

    Directory names are used both as set names and as storage bucket names.
    """
    if not root.is_dir():
        raise NotADirectoryError(f"Artwork directory not found: {root}")

    cards: list[CardDefinition] = []
    for set_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        found = 0
        for file in sorted(set_dir.iterdir()):
            card = card_from_filename(file.name, set_dir.name, base_url, set_dir.name)
            if card is not None:
                cards.append(card)
                found += 1
        logger.info("Found %d cards in set %s", found, set_dir.name)

    return CardCatalog(cards)


def run_build(root: Path, base_url: str, output: Path) -> int:
    """Scan, write the catalog and return the number of cards."""
    logger.info("Building card catalog from %s...", root)

    try:
        catalog = scan_artwork(root, base_url)
        dump_catalog(catalog, output)
    except OSError as e:
        logger.error("Failed to build card catalog: %s", e)
        raise

    logger.info("Wrote %d cards to %s", len(catalog), output)
    return len(catalog)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Build the card catalog from artwork files")
    parser.add_argument("root", type=Path, help="Directory with one subdirectory per set")
    parser.add_argument(
        "--base-url", required=True, help="Storage host the artwork is served from"
    )
    parser.add_argument("--output", type=Path, default=Path(settings.catalog_path))
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    run_build(args.root, args.base_url, args.output)


if __name__ == "__main__":
    main()
