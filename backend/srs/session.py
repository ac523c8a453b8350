"""Review session orchestrator.

Coordinates queue selection, the SM-2 scheduler and in-session requeueing
into a session flow. The queue lives in memory only; every answer is
persisted to the card immediately.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from backend.errors import NotFound
from backend.models.card import Card
from backend.services.cards import answer_card
from backend.srs.queue import QueueConfig, load_today_cards, requeue
from backend.srs.sm2 import SM2, CardState, Quality

logger = logging.getLogger(__name__)


@dataclass
class SessionStats:
    """Statistics for a review session."""

    cards_reviewed: int = 0
    again: int = 0
    hard: int = 0
    good: int = 0
    easy: int = 0
    requeued: int = 0

    def record(self, quality: Quality) -> None:
        self.cards_reviewed += 1
        name = quality.name.lower()
        setattr(self, name, getattr(self, name) + 1)


@dataclass
class AnswerResult:
    """What happened to a card after it was answered."""

    card: Card
    previous: CardState
    quality: Quality
    requeued_at: int | None


@dataclass
class ReviewSession:
    """Manages an active review session for one caller."""

    owner_id: str
    cards: list[Card]
    scheduler: SM2 = field(default_factory=SM2)
    config: QueueConfig = field(default_factory=QueueConfig)
    stats: SessionStats = field(default_factory=SessionStats)
    deck_id: int | None = None
    item_id: int | None = None
    total: int = 0

    def __post_init__(self) -> None:
        self.total = len(self.cards)

    @property
    def remaining(self) -> int:
        """Return the number of cards left in the queue, requeued ones included."""
        return len(self.cards)

    @property
    def is_complete(self) -> bool:
        """Return True if the queue is empty."""
        return not self.cards

    @property
    def current_card(self) -> Card | None:
        """Return the card at the head of the queue or None if the session is complete."""
        return self.cards[0] if self.cards else None

    async def submit_answer(
        self,
        db: AsyncSession,
        quality: Quality | int,
    ) -> AnswerResult:
        """Grade the current card, persist its schedule and reorder the queue.

        Raises:
            IndexError: the session has no cards left.
            NotFound: the current card was deleted; it is dropped from the queue.
        """
        quality = Quality.parse(quality)
        if not self.cards:
            raise IndexError("Session is complete")

        current = self.cards[0]
        try:
            card, previous = await answer_card(
                db, self.owner_id, current.id, quality, scheduler=self.scheduler
            )
        except NotFound:
            logger.warning("Card %d no longer exists; dropping it from the session", current.id)
            self.cards.pop(0)
            raise

        remaining = self.cards[1:]
        self.cards = requeue(remaining, card, quality, self.config)
        requeued_at = None
        if len(self.cards) > len(remaining):
            requeued_at = self.cards.index(card)
            self.stats.requeued += 1
        self.stats.record(quality)

        return AnswerResult(card=card, previous=previous, quality=quality, requeued_at=requeued_at)


async def start_session(
    db: AsyncSession,
    owner_id: str,
    deck_id: int | None = None,
    item_id: int | None = None,
    include_all: bool = False,
    include_tree_cards: bool = True,
) -> ReviewSession:
    """Start a new review session over today's due cards.

    Args:
        db: Database session.
        owner_id: The caller starting the session.
        deck_id: Restrict to one deck.
        item_id: Restrict to an item's subtree.
        include_all: Ignore due dates.
        include_tree_cards: Include generated tree cards.

    Returns:
        A ReviewSession ready for use.
    """
    cards = await load_today_cards(
        db,
        owner_id,
        deck_id=deck_id,
        item_id=item_id,
        include_all=include_all,
        include_tree_cards=include_tree_cards,
    )
    session = ReviewSession(owner_id=owner_id, cards=cards, deck_id=deck_id, item_id=item_id)

    logger.info("Started session for %s: %d cards queued", owner_id, session.total)
    return session
