"""Tests for inventory, binder and search views."""

from datetime import UTC, datetime

import pytest

from carddrop.models.card import CardInstance
from carddrop.models.failure import NotFoundError
from carddrop.models.session import UserSession
from carddrop.services.browse import binder_page, binder_rows, inventory_view, search_page
from carddrop.services.catalog import CardCatalog
from tests.factories import make_card

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def owned(user_id: str, *cards: tuple[str, str | None]) -> UserSession:
    return UserSession(
        user_id=user_id,
        inventory=[CardInstance(card_id, T0, instance_id) for card_id, instance_id in cards],
    )


class TestInventoryView:
    def test_entries_are_indexed(self, catalog: CardCatalog) -> None:
        session = owned("u1", ("onix-b2-84", "po0001"), ("gone-card", "po0002"))

        view = inventory_view(session, catalog)

        assert view.total_cards == 2
        assert [e.index for e in view.entries] == [0, 1]
        assert view.entries[0].card is not None
        assert view.entries[0].card.name == "Onix"
        assert view.entries[1].card is None


class TestBinder:
    def test_groups_by_set_in_first_appearance_order(self, catalog: CardCatalog) -> None:
        session = owned(
            "u1",
            ("pikachu-base1-58", "po0001"),
            ("onix-b2-84", "po0002"),
            ("raichu-base1-14", "po0003"),
        )

        rows = binder_rows(session, catalog)

        assert [(r.kind, r.set_name) for r in rows] == [
            ("header", "Base Set"),
            ("card", "Base Set"),
            ("card", "Base Set"),
            ("header", "Base Set 2"),
            ("card", "Base Set 2"),
        ]
        assert rows[0].count == 2
        # Entries keep their inventory index
        assert rows[2].entry is not None and rows[2].entry.index == 2

    def test_headers_count_towards_page_size(self, catalog: CardCatalog) -> None:
        session = owned("u1", *[("pikachu-base1-58", f"po{i:04d}") for i in range(10)])

        first = binder_page(session, catalog, page=0)
        second = binder_page(session, catalog, page=1)

        assert first.total_pages == 2
        assert len(first.rows) == 10
        assert first.rows[0].kind == "header"
        assert len(second.rows) == 1
        assert first.total_cards == 10

    def test_unknown_cards_left_out(self, catalog: CardCatalog) -> None:
        session = owned("u1", ("gone-card", "po0001"))

        page = binder_page(session, catalog)

        assert page.rows == []
        assert page.total_pages == 1

    def test_page_out_of_range(self, catalog: CardCatalog) -> None:
        with pytest.raises(NotFoundError):
            binder_page(owned("u1"), catalog, page=1)


class TestSearch:
    def test_owners_from_loaded_sessions(self, catalog: CardCatalog) -> None:
        sessions = [
            owned("u1", ("charizard-base1-4", "po0001"), ("charizard-base1-4", "po0002")),
            owned("u2", ("onix-b2-84", "po0003")),
            owned("u3", ("charizard-base1-4", None)),
        ]

        results = search_page("charizard", catalog, sessions)

        assert results.total_matches == 2
        hit = results.hits[0]
        assert hit.card.name == "Charizard"
        assert [(o.user_id, o.instance_ids) for o in hit.owners] == [
            ("u1", ["po0001", "po0002"])
        ]
        assert results.hits[1].owners == []

    def test_paginates_five_per_page(self) -> None:
        catalog = CardCatalog([make_card(f"mew-{i}", f"Mew {i}") for i in range(7)])

        first = search_page("mew", catalog, [], page=0)
        second = search_page("mew", catalog, [], page=1)

        assert first.total_pages == 2
        assert len(first.hits) == 5
        assert len(second.hits) == 2

    def test_no_matches(self, catalog: CardCatalog) -> None:
        with pytest.raises(NotFoundError, match='No cards found matching "zzz"'):
            search_page("zzz", catalog, [])
