"""Manual card management and review answers."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.errors import InvalidInput
from backend.models.card import Card
from backend.srs.sm2 import SM2, CardState, Quality
from backend.tree.index import is_leaf

logger = logging.getLogger(__name__)

MEDIA_KINDS = ("image", "audio", "video")


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Tags behave as a set; keep first-seen order for display."""
    return list(dict.fromkeys(t.strip() for t in tags or [] if t and t.strip()))


def normalize_media(media: list[dict] | None) -> list[dict]:
    result = []
    for entry in media or []:
        if entry.get("kind") not in MEDIA_KINDS:
            raise InvalidInput(f"Media kind must be one of {', '.join(MEDIA_KINDS)}")
        result.append(
            {
                "kind": entry["kind"],
                "locator": entry.get("locator", ""),
                "display_name": entry.get("display_name", ""),
            }
        )
    return result


def _require_text(value: str | None, name: str) -> str:
    if value is None or not value.strip():
        raise InvalidInput(f"{name} is required")
    return value


async def create_card(
    session: AsyncSession,
    owner_id: str,
    item_id: int,
    front: str,
    back: str,
    tags: list[str] | None = None,
    front_media: list[dict] | None = None,
    back_media: list[dict] | None = None,
    is_tree_generated: bool = False,
) -> Card:
    """Attach a card to an item.

    Manual cards are only accepted on leaf items; the check happens once at
    creation and is not repeated when the tree changes later.
    """
    _require_text(front, "Front")
    _require_text(back, "Back")
    item = await repository.get_owned_item(session, owner_id, item_id)
    await repository.get_owned_deck(session, owner_id, item.deck_id)

    if not is_tree_generated:
        items = await repository.load_items(session, item.deck_id)
        if not is_leaf(item.id, items):
            raise InvalidInput(
                "Regular cards can only be attached to leaf items; "
                "use tree card generation for items with children"
            )

    card = Card(
        item_id=item.id,
        deck_id=item.deck_id,
        front=front,
        back=back,
        tags=normalize_tags(tags),
        front_media=normalize_media(front_media),
        back_media=normalize_media(back_media),
        is_tree_generated=is_tree_generated,
    )
    session.add(card)
    await session.commit()
    await session.refresh(card)
    return card


async def update_card(
    session: AsyncSession,
    owner_id: str,
    card_id: int,
    front: str | None = None,
    back: str | None = None,
    tags: list[str] | None = None,
    front_media: list[dict] | None = None,
    back_media: list[dict] | None = None,
) -> Card:
    """Edit card content. Scheduling fields are never touched here."""
    card = await repository.get_owned_card(session, owner_id, card_id)
    if front is not None:
        card.front = _require_text(front, "Front")
    if back is not None:
        card.back = _require_text(back, "Back")
    if tags is not None:
        card.tags = normalize_tags(tags)
    if front_media is not None:
        card.front_media = normalize_media(front_media)
    if back_media is not None:
        card.back_media = normalize_media(back_media)
    await session.commit()
    await session.refresh(card)
    return card


async def delete_card(session: AsyncSession, owner_id: str, card_id: int) -> None:
    card = await repository.get_owned_card(session, owner_id, card_id)
    await session.delete(card)
    await session.commit()


async def list_item_cards(session: AsyncSession, owner_id: str, item_id: int) -> list[Card]:
    item = await repository.get_owned_item(session, owner_id, item_id)
    return await repository.load_cards(session, item_id=item.id)


async def list_deck_cards(session: AsyncSession, owner_id: str, deck_id: int) -> list[Card]:
    deck = await repository.get_owned_deck(session, owner_id, deck_id)
    return await repository.load_cards(session, deck_id=deck.id)


async def answer_card(
    session: AsyncSession,
    owner_id: str,
    card_id: int,
    quality: Quality | int,
    scheduler: SM2 | None = None,
    review_time: datetime | None = None,
) -> tuple[Card, CardState]:
    """Grade a card and persist its new schedule.

    Returns:
        The updated card and the state it had before the answer.
    """
    quality = Quality.parse(quality)
    scheduler = scheduler or SM2()
    card = await repository.get_owned_card(session, owner_id, card_id)

    previous = CardState.of(card)
    scheduler.next_state(previous, quality, review_time=review_time).apply_to(card)
    await session.commit()
    await session.refresh(card)

    logger.info(
        "Card %d answered %s: interval %.3g -> %.3g days, due %s",
        card.id,
        quality.name,
        previous.interval,
        card.interval,
        card.due_date.isoformat(),
    )
    return card, previous
