"""Deck lifecycle: creation, publishing and cascade deletion."""

import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.errors import Forbidden, InvalidInput, NotFound
from backend.models.card import Card
from backend.models.deck import Deck
from backend.models.item import Item
from backend.services.public_id import generate_unique_public_id, is_valid_public_id
from backend.tree.index import TreeNode, build_tree

logger = logging.getLogger(__name__)


@dataclass
class DeckTree:
    deck: Deck
    items: list[TreeNode]


async def create_deck(session: AsyncSession, owner_id: str, title: str) -> Deck:
    if not title or not title.strip():
        raise InvalidInput("Title is required")
    deck = Deck(title=title, owner_id=owner_id)
    session.add(deck)
    await session.commit()
    await session.refresh(deck)
    logger.info("Created deck %d for %s", deck.id, owner_id)
    return deck


async def get_deck_tree(session: AsyncSession, owner_id: str, deck_id: int) -> DeckTree:
    deck = await repository.get_owned_deck(session, owner_id, deck_id)
    items = await repository.load_items(session, deck.id)
    return DeckTree(deck=deck, items=build_tree(items))


async def _set_public(session: AsyncSession, deck: Deck, is_public: bool) -> None:
    deck.is_public = is_public
    if is_public and not deck.public_id:
        deck.public_id = await generate_unique_public_id(
            lambda candidate: repository.public_id_exists(session, candidate)
        )
        logger.info("Deck %d published as %s", deck.id, deck.public_id)
    elif not is_public:
        deck.public_id = None


async def update_deck(
    session: AsyncSession,
    owner_id: str,
    deck_id: int,
    title: str | None = None,
    is_public: bool | None = None,
) -> Deck:
    """Rename a deck and/or change its visibility.

    Making a deck public allocates a public id if it has none; making it
    private clears the id.
    """
    deck = await repository.get_owned_deck(session, owner_id, deck_id)
    if title is not None:
        if not title.strip():
            raise InvalidInput("Title cannot be empty")
        deck.title = title
    if is_public is not None:
        await _set_public(session, deck, is_public)
    await session.commit()
    await session.refresh(deck)
    return deck


async def toggle_public(session: AsyncSession, owner_id: str, deck_id: int) -> Deck:
    deck = await repository.get_owned_deck(session, owner_id, deck_id)
    await _set_public(session, deck, not deck.is_public)
    await session.commit()
    await session.refresh(deck)
    return deck


async def delete_deck(session: AsyncSession, owner_id: str, deck_id: int) -> None:
    """Delete a deck with all its items and cards."""
    deck = await repository.get_owned_deck(session, owner_id, deck_id)
    cards = await session.execute(delete(Card).where(Card.deck_id == deck.id))
    items = await session.execute(delete(Item).where(Item.deck_id == deck.id))
    await session.delete(deck)
    await session.commit()
    logger.info(
        "Deleted deck %d (%d items, %d cards)", deck_id, items.rowcount or 0, cards.rowcount or 0
    )


async def get_public_deck(session: AsyncSession, public_id: str) -> DeckTree:
    """Look up a published deck by its share id, ignoring case.

    Raises:
        InvalidInput: malformed id.
        Forbidden: the id belongs to a deck that is not public.
        NotFound: no deck has this id.
    """
    if not is_valid_public_id(public_id):
        raise InvalidInput("Invalid public id format")
    stmt = select(Deck).where(func.upper(Deck.public_id) == public_id.upper())
    deck = (await session.execute(stmt)).scalar_one_or_none()
    if deck is None:
        raise NotFound("Public deck not found")
    if not deck.is_public:
        raise Forbidden("This deck exists but is not public")
    items = await repository.load_items(session, deck.id)
    return DeckTree(deck=deck, items=build_tree(items))
