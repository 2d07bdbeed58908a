"""
Read-only views over inventories and the catalog: inventory listing,
the set-grouped binder and the owner-aware card search.
"""

import math
from collections.abc import Iterable

from carddrop.config import BINDER_ROWS_PER_PAGE, SEARCH_RESULTS_PER_PAGE
from carddrop.models.failure import NotFoundError
from carddrop.models.session import UserSession
from carddrop.models.views import (
    BinderPage,
    BinderRow,
    CardOwner,
    CardView,
    InstanceView,
    InventoryView,
    SearchHit,
    SearchResults,
)
from carddrop.services.catalog import CardCatalog


def _page_count(total: int, per_page: int) -> int:
    return max(1, math.ceil(total / per_page))


def _check_page(page: int, total_pages: int) -> None:
    if not 0 <= page < total_pages:
        raise NotFoundError(
            "That page doesn't exist.",
            detail=f"page {page} outside [0, {total_pages})",
        )


def inventory_view(session: UserSession, catalog: CardCatalog) -> InventoryView:
    """Every owned instance at its index, with the catalog entry when known."""
    entries = [
        InstanceView.build(index, instance, catalog.get(instance.card_id))
        for index, instance in enumerate(session.inventory)
    ]
    return InventoryView(user_id=session.user_id, entries=entries, total_cards=len(entries))


def binder_rows(session: UserSession, catalog: CardCatalog) -> list[BinderRow]:
    """
    Flatten the inventory into set headers followed by that set's cards.

    Sets appear in order of first appearance; instances whose card is no
    longer in the catalog are left out.
    """
    by_set: dict[str, list[InstanceView]] = {}
    for index, instance in enumerate(session.inventory):
        card = catalog.get(instance.card_id)
        if card is None:
            continue
        by_set.setdefault(card.set_name, []).append(InstanceView.build(index, instance, card))

    rows: list[BinderRow] = []
    for set_name, entries in by_set.items():
        rows.append(BinderRow(kind="header", set_name=set_name, count=len(entries)))
        rows.extend(BinderRow(kind="card", set_name=set_name, entry=e) for e in entries)
    return rows


def binder_page(
    session: UserSession,
    catalog: CardCatalog,
    page: int = 0,
    rows_per_page: int = BINDER_ROWS_PER_PAGE,
) -> BinderPage:
    """
    One page of the binder. Headers count towards the page size.

    Raises:
        NotFoundError: If page is out of range
    """
    rows = binder_rows(session, catalog)
    total_pages = _page_count(len(rows), rows_per_page)
    _check_page(page, total_pages)

    start = page * rows_per_page
    return BinderPage(
        user_id=session.user_id,
        page=page,
        total_pages=total_pages,
        total_cards=sum(1 for row in rows if row.kind == "card"),
        rows=rows[start : start + rows_per_page],
    )


def owners_of(card_id: str, sessions: Iterable[UserSession]) -> list[CardOwner]:
    owners = []
    for session in sessions:
        instance_ids = [
            i.instance_id
            for i in session.inventory
            if i.card_id == card_id and i.instance_id is not None
        ]
        if instance_ids:
            owners.append(CardOwner(user_id=session.user_id, instance_ids=instance_ids))
    return owners


def search_page(
    query: str,
    catalog: CardCatalog,
    sessions: Iterable[UserSession],
    page: int = 0,
    per_page: int = SEARCH_RESULTS_PER_PAGE,
) -> SearchResults:
    """
    Catalog cards whose name contains `query`, with their current owners.

    Owners are taken from loaded sessions only.

    Raises:
        NotFoundError: If nothing matches or page is out of range
    """
    matches = catalog.search(query)
    if not matches:
        raise NotFoundError(f'No cards found matching "{query}".')

    total_pages = _page_count(len(matches), per_page)
    _check_page(page, total_pages)

    loaded = list(sessions)
    start = page * per_page
    hits = [
        SearchHit(card=CardView.from_definition(card), owners=owners_of(card.id, loaded))
        for card in matches[start : start + per_page]
    ]
    return SearchResults(
        query=query,
        page=page,
        total_pages=total_pages,
        total_matches=len(matches),
        hits=hits,
    )
