"""Storage access for decks, items and cards.

The tree and scheduling code work on in-memory snapshots; this module is the
only place that knows how those snapshots are loaded and written back.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.errors import InvalidInput, NotFound
from backend.models.card import Card
from backend.models.deck import Deck
from backend.models.item import Item

logger = logging.getLogger(__name__)


@dataclass
class InsertReport:
    """Outcome of a best-effort batch insert."""

    inserted: list[Card] = field(default_factory=list)
    failed: list[Card] = field(default_factory=list)


async def list_decks(session: AsyncSession, owner_id: str) -> list[Deck]:
    stmt = (
        select(Deck)
        .where(Deck.owner_id == owner_id)
        .order_by(Deck.created_at.desc(), Deck.id.desc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def get_owned_deck(session: AsyncSession, owner_id: str, deck_id: int) -> Deck:
    stmt = select(Deck).where(and_(Deck.id == deck_id, Deck.owner_id == owner_id))
    deck = (await session.execute(stmt)).scalar_one_or_none()
    if deck is None:
        raise NotFound(f"Deck {deck_id} not found")
    return deck


async def get_owned_item(session: AsyncSession, owner_id: str, item_id: int) -> Item:
    stmt = select(Item).where(and_(Item.id == item_id, Item.owner_id == owner_id))
    item = (await session.execute(stmt)).scalar_one_or_none()
    if item is None:
        raise NotFound(f"Item {item_id} not found")
    return item


async def get_owned_card(session: AsyncSession, owner_id: str, card_id: int) -> Card:
    """Load a card whose item belongs to the caller."""
    stmt = (
        select(Card)
        .join(Item, Item.id == Card.item_id)
        .where(and_(Card.id == card_id, Item.owner_id == owner_id))
    )
    card = (await session.execute(stmt)).scalar_one_or_none()
    if card is None:
        raise NotFound(f"Card {card_id} not found")
    return card


async def load_items(session: AsyncSession, deck_id: int) -> list[Item]:
    """Return every item of a deck; tree code assumes the full set is present."""
    stmt = select(Item).where(Item.deck_id == deck_id).order_by(Item.level, Item.order, Item.id)
    return list((await session.execute(stmt)).scalars().all())


async def load_cards(
    session: AsyncSession,
    item_id: int | None = None,
    item_ids: Iterable[int] | None = None,
    deck_id: int | None = None,
) -> list[Card]:
    """Load cards for exactly one scope: a single item, a set of items, or a deck."""
    scopes = [s for s in (item_id, item_ids, deck_id) if s is not None]
    if len(scopes) != 1:
        raise InvalidInput("load_cards needs exactly one of item_id, item_ids, deck_id")

    stmt = select(Card)
    if item_id is not None:
        stmt = stmt.where(Card.item_id == item_id)
    elif item_ids is not None:
        stmt = stmt.where(Card.item_id.in_(list(item_ids)))
    else:
        stmt = stmt.where(Card.deck_id == deck_id)
    stmt = stmt.order_by(Card.due_date.asc(), Card.id.asc())
    return list((await session.execute(stmt)).scalars().all())


async def delete_items(session: AsyncSession, ids: Iterable[int]) -> int:
    result = await session.execute(delete(Item).where(Item.id.in_(list(ids))))
    return result.rowcount or 0


async def delete_cards_for_items(session: AsyncSession, item_ids: Iterable[int]) -> int:
    result = await session.execute(delete(Card).where(Card.item_id.in_(list(item_ids))))
    return result.rowcount or 0


async def public_id_exists(session: AsyncSession, public_id: str) -> bool:
    stmt = select(func.count(Deck.id)).where(func.upper(Deck.public_id) == public_id.upper())
    return ((await session.execute(stmt)).scalar() or 0) > 0


async def insert_cards(session: AsyncSession, cards: list[Card]) -> InsertReport:
    """Insert cards as one batch, falling back to one-by-one on failure.

    Each attempt runs in a savepoint so a failing card never discards the
    others. The caller commits.
    """
    report = InsertReport()
    if not cards:
        return report

    try:
        async with session.begin_nested():
            session.add_all(cards)
        report.inserted.extend(cards)
        return report
    except SQLAlchemyError:
        logger.exception("Batch insert of %d cards failed, retrying one by one", len(cards))

    for card in cards:
        try:
            async with session.begin_nested():
                session.add(card)
            report.inserted.append(card)
        except SQLAlchemyError as exc:
            logger.error("Failed to insert card for item %s: %s", card.item_id, exc)
            report.failed.append(card)

    logger.info("Inserted %d/%d cards after retry", len(report.inserted), len(cards))
    return report
