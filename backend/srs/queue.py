"""Queue management for SRS review sessions.

Selects the cards due "today" for a deck or a subtree, and implements the
in-session requeue policy for cards answered Again or Hard.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.config import business_now, settings
from backend.errors import NotFound
from backend.models.card import Card
from backend.models.item import Item
from backend.srs.sm2 import Quality
from backend.tree.index import item_path, subtree_ids

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class QueueConfig:
    """Configuration for in-session requeueing."""

    again_position: int = settings.again_requeue_position
    hard_position: int = settings.hard_requeue_position


@dataclass
class PathEntry:
    id: int
    title: str
    level: int


@dataclass
class ReviewCard:
    """A due card annotated with the path from the deck root to its item."""

    card: Card
    item_path: list[PathEntry]


@dataclass
class SubtreeReview:
    """Cards under one item, with breadcrumbs for the item and each card."""

    item: Item
    path: list[PathEntry]
    cards: list[ReviewCard] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.cards)


def due_cutoff(now: datetime | None = None, offset_hours: float | None = None) -> datetime:
    """The instant up to which cards count as due today."""
    return business_now(now, offset_hours)


def select_due(
    cards: Iterable[Card],
    cutoff: datetime,
    include_all: bool = False,
    include_tree_cards: bool = True,
    scope_ids: set[int] | None = None,
) -> list[Card]:
    """Filter cards to those eligible for review, most overdue first.

    Args:
        cards: Candidate cards.
        cutoff: Cards with ``due_date <= cutoff`` are due.
        include_all: Ignore due dates entirely.
        include_tree_cards: Keep cards generated from the tree structure.
        scope_ids: Only keep cards whose item is in this set.
    """
    selected = [
        c
        for c in cards
        if (include_all or c.due_date <= cutoff)
        and (include_tree_cards or not c.is_tree_generated)
        and (scope_ids is None or c.item_id in scope_ids)
    ]
    return sorted(selected, key=lambda c: (c.due_date, c.id))


def requeue(
    remaining: Sequence[T],
    card: T,
    quality: Quality | int,
    config: QueueConfig | None = None,
) -> list[T]:
    """Return the session queue after ``card`` was answered.

    ``remaining`` is the queue without the answered card. Again puts the card
    back after about ten others, Hard after about twenty; Good and Easy drop
    it from the session. The persisted due date is not affected.
    """
    config = config or QueueConfig()
    quality = Quality.parse(quality)
    queue = list(remaining)
    if quality == Quality.AGAIN:
        queue.insert(min(config.again_position, len(queue)), card)
    elif quality == Quality.HARD:
        queue.insert(min(config.hard_position, len(queue)), card)
    return queue


def _path_entries(item: Item, items: Sequence[Item]) -> list[PathEntry]:
    return [PathEntry(id=i.id, title=i.title, level=i.level) for i in item_path(item, items)]


async def load_today_cards(
    session: AsyncSession,
    owner_id: str,
    deck_id: int | None = None,
    item_id: int | None = None,
    include_all: bool = False,
    include_tree_cards: bool = True,
    now: datetime | None = None,
) -> list[Card]:
    """Fetch cards due today for a deck, an item's subtree, or all of the caller's decks.

    Args:
        session: Database session.
        owner_id: The caller; only their decks are searched.
        deck_id: Restrict to one deck.
        item_id: Restrict to an item and its descendants.
        include_all: Return cards regardless of due date.
        include_tree_cards: Include cards generated from the tree.
        now: Current time (defaults to utcnow).

    Returns:
        Cards ordered by due date.
    """
    cutoff = due_cutoff(now)
    scope_ids = None

    if item_id is not None:
        item = await repository.get_owned_item(session, owner_id, item_id)
        if deck_id is not None and item.deck_id != deck_id:
            raise NotFound(f"Item {item_id} not found")
        items = await repository.load_items(session, item.deck_id)
        scope_ids = subtree_ids(item.id, items)
        cards = await repository.load_cards(session, item_ids=scope_ids)
    elif deck_id is not None:
        await repository.get_owned_deck(session, owner_id, deck_id)
        cards = await repository.load_cards(session, deck_id=deck_id)
    else:
        cards = []
        for deck in await repository.list_decks(session, owner_id):
            cards.extend(await repository.load_cards(session, deck_id=deck.id))

    due = select_due(
        cards,
        cutoff,
        include_all=include_all,
        include_tree_cards=include_tree_cards,
        scope_ids=scope_ids,
    )
    logger.info(
        "Selected %d of %d cards (deck=%s, item=%s, cutoff=%s)",
        len(due),
        len(cards),
        deck_id,
        item_id,
        cutoff.isoformat(),
    )
    return due


async def load_subtree_review(
    session: AsyncSession,
    owner_id: str,
    item_id: int,
    include_all: bool = False,
    now: datetime | None = None,
) -> SubtreeReview:
    """Fetch due cards under an item, each annotated with its item's path."""
    item = await repository.get_owned_item(session, owner_id, item_id)
    items = await repository.load_items(session, item.deck_id)
    scope_ids = subtree_ids(item.id, items)
    cards = await repository.load_cards(session, item_ids=scope_ids)
    due = select_due(cards, due_cutoff(now), include_all=include_all, scope_ids=scope_ids)

    by_id = {i.id: i for i in items}
    review = SubtreeReview(item=item, path=_path_entries(item, items))
    for card in due:
        card_item = by_id.get(card.item_id)
        path = _path_entries(card_item, items) if card_item is not None else []
        review.cards.append(ReviewCard(card=card, item_path=path))

    logger.info("Subtree review for item %d: %d cards", item_id, review.total)
    return review
