"""Generated cards that summarize a node's direct children.

For an item with children the card is:
- front: the item's title
- back: one "• child title" line per direct child, joined with CRLF

An existing card on the same item whose front equals the item title is
treated as "the" generated card for that item.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.errors import AlreadyExists, NoChildren, NotFound
from backend.models.card import Card
from backend.models.item import Item
from backend.tree.index import children_by_parent, subtree_ids

logger = logging.getLogger(__name__)

BULLET = "• "
LINE_SEPARATOR = "\r\n"


@dataclass
class GeneratedCard:
    """Content for a card that does not exist yet."""

    item: Item
    front: str
    back: str
    children_count: int


@dataclass
class SkippedItem:
    item: Item
    existing_card_id: int
    reason: str = "Card already exists"


@dataclass
class TreeCardPlan:
    """Bulk generation outcome before anything is written."""

    to_create: list[GeneratedCard] = field(default_factory=list)
    skipped: list[SkippedItem] = field(default_factory=list)


@dataclass
class ItemCardPlan:
    """Single-node generation: either a new card or an in-place rewrite of ``existing``."""

    item: Item
    back: str
    children: list[Item]
    existing: Card | None = None


def render_back(children: Sequence[Item]) -> str:
    return LINE_SEPARATOR.join(f"{BULLET}{child.title}" for child in children)


def find_generated_card(item: Item, cards: Sequence[Card]) -> Card | None:
    return next((c for c in cards if c.item_id == item.id and c.front == item.title), None)


def plan_tree_cards(
    items: Sequence[Item],
    cards: Sequence[Card],
    root_id: int | None = None,
) -> TreeCardPlan:
    """Plan generated cards for a whole deck, or for ``root_id`` and its descendants.

    Leaves are passed over silently; items that already have their generated
    card are reported as skipped.
    """
    adjacency = children_by_parent(items)
    scope = subtree_ids(root_id, items) if root_id is not None else None

    plan = TreeCardPlan()
    for item in items:
        if scope is not None and item.id not in scope:
            continue
        children = adjacency.get(item.id, [])
        if not children:
            continue
        existing = find_generated_card(item, cards)
        if existing is not None:
            plan.skipped.append(SkippedItem(item=item, existing_card_id=existing.id))
            continue
        plan.to_create.append(
            GeneratedCard(
                item=item,
                front=item.title,
                back=render_back(children),
                children_count=len(children),
            )
        )
    return plan


def plan_item_card(
    item: Item,
    items: Sequence[Item],
    cards: Sequence[Card],
    overwrite: bool = False,
) -> ItemCardPlan:
    """Plan the generated card for one item.

    Raises:
        NoChildren: the item is a leaf.
        AlreadyExists: a generated card exists and ``overwrite`` is False.
    """
    children = children_by_parent(items).get(item.id, [])
    if not children:
        raise NoChildren(item.id)

    existing = find_generated_card(item, cards)
    if existing is not None and not overwrite:
        raise AlreadyExists(item.id, existing.id)

    return ItemCardPlan(item=item, back=render_back(children), children=children, existing=existing)


async def generate_tree_cards(
    session: AsyncSession,
    owner_id: str,
    deck_id: int,
    item_id: int | None = None,
) -> tuple[TreeCardPlan, repository.InsertReport]:
    """Create missing generated cards for a deck or a subtree."""
    await repository.get_owned_deck(session, owner_id, deck_id)
    if item_id is not None:
        item = await repository.get_owned_item(session, owner_id, item_id)
        if item.deck_id != deck_id:
            raise NotFound(f"Item {item_id} not found")

    items = await repository.load_items(session, deck_id)
    cards = await repository.load_cards(session, deck_id=deck_id)
    plan = plan_tree_cards(items, cards, root_id=item_id)

    new_cards = [
        Card(
            item_id=g.item.id,
            deck_id=deck_id,
            front=g.front,
            back=g.back,
            tags=[],
            front_media=[],
            back_media=[],
            is_tree_generated=True,
        )
        for g in plan.to_create
    ]
    report = await repository.insert_cards(session, new_cards)
    await session.commit()

    logger.info(
        "Generated %d tree cards in deck %d (%d skipped, %d failed)",
        len(report.inserted),
        deck_id,
        len(plan.skipped),
        len(report.failed),
    )
    return plan, report


async def generate_item_card(
    session: AsyncSession,
    owner_id: str,
    item_id: int,
    overwrite: bool = False,
) -> tuple[Card, ItemCardPlan]:
    """Create or overwrite the generated card for a single item.

    Overwriting rewrites ``back`` in place; the card id and its review
    schedule are kept.
    """
    item = await repository.get_owned_item(session, owner_id, item_id)
    items = await repository.load_items(session, item.deck_id)
    cards = await repository.load_cards(session, item_id=item.id)
    plan = plan_item_card(item, items, cards, overwrite=overwrite)

    if plan.existing is not None:
        card = plan.existing
        card.back = plan.back
        card.is_tree_generated = True
    else:
        card = Card(
            item_id=item.id,
            deck_id=item.deck_id,
            front=item.title,
            back=plan.back,
            tags=[],
            front_media=[],
            back_media=[],
            is_tree_generated=True,
        )
        session.add(card)

    await session.commit()
    await session.refresh(card)
    logger.info(
        "%s tree card %d for item %d", "Updated" if plan.existing else "Created", card.id, item.id
    )
    return card, plan
