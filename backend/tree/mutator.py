"""Structural edits to a deck's item tree.

Keeps the forest invariants: no cycles, ``level == parent.level + 1`` for
every node, and no card left pointing at a deleted item. The checks run on
a snapshot loaded in the same session as the write, so callers must
serialize structural edits per deck for them to hold under concurrency.
"""

import logging
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.errors import CyclicMove, InvalidInput, NotFound
from backend.models.item import Item
from backend.tree.index import TreeItem, children_by_parent, descendant_ids, subtree_ids

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    """What a cascade delete removed."""

    item_ids: set[int]
    cards_deleted: int


def level_for(parent: TreeItem | None) -> int:
    return 0 if parent is None else parent.level + 1  # type: ignore[attr-defined]


def check_move(item: TreeItem, new_parent_id: int | None, items: Sequence[TreeItem]) -> int:
    """Validate a re-parent and return the item's new level.

    Raises:
        CyclicMove: ``new_parent_id`` is the item itself or one of its descendants.
        NotFound: ``new_parent_id`` is not an item of this deck.
    """
    if new_parent_id is None:
        return 0
    if new_parent_id == item.id or new_parent_id in descendant_ids(item.id, items):
        raise CyclicMove(item.id, new_parent_id)
    parent = next((i for i in items if i.id == new_parent_id), None)
    if parent is None:
        raise NotFound(f"Parent item {new_parent_id} not found")
    return level_for(parent)


def relevel(item_id: int, new_level: int, items: Sequence[TreeItem]) -> dict[int, int]:
    """Return the level every node of ``item_id``'s subtree should have."""
    adjacency = children_by_parent(items)
    levels = {item_id: new_level}
    queue = deque([item_id])
    while queue:
        current = queue.popleft()
        for child in adjacency.get(current, []):
            if child.id in levels:
                continue
            levels[child.id] = levels[current] + 1
            queue.append(child.id)
    return levels


def cascade_ids(item_id: int, items: Sequence[TreeItem]) -> set[int]:
    """Ids removed by deleting ``item_id``: the item and all its descendants."""
    return subtree_ids(item_id, items)


def _check_title(title: str | None) -> None:
    if title is not None and not title.strip():
        raise InvalidInput("Title cannot be empty")


async def create_item(
    session: AsyncSession,
    owner_id: str,
    deck_id: int,
    title: str,
    parent_id: int | None = None,
    order: int = 0,
) -> Item:
    """Create an item under ``parent_id`` (or as a root) with its level derived from the parent."""
    if not title or not title.strip():
        raise InvalidInput("Title is required")
    await repository.get_owned_deck(session, owner_id, deck_id)

    parent = None
    if parent_id is not None:
        parent = await session.get(Item, parent_id)
        if parent is None or parent.deck_id != deck_id:
            raise NotFound(f"Parent item {parent_id} not found")

    item = Item(
        title=title,
        deck_id=deck_id,
        parent_id=parent_id,
        order=order,
        level=level_for(parent),
        owner_id=owner_id,
    )
    session.add(item)
    await session.commit()
    await session.refresh(item)
    logger.info("Created item %d in deck %d at level %d", item.id, deck_id, item.level)
    return item


async def update_item(
    session: AsyncSession,
    owner_id: str,
    item_id: int,
    title: str | None = None,
    order: int | None = None,
) -> Item:
    """Change an item's title and/or sibling order."""
    _check_title(title)
    item = await repository.get_owned_item(session, owner_id, item_id)
    if title is not None:
        item.title = title
    if order is not None:
        item.order = order
    await session.commit()
    await session.refresh(item)
    return item


async def move_item(
    session: AsyncSession,
    owner_id: str,
    item_id: int,
    new_parent_id: int | None,
    order: int | None = None,
    title: str | None = None,
) -> Item:
    """Re-parent an item, rejecting cycles and re-levelling the moved subtree.

    ``order`` and ``title`` are applied in the same commit; nothing is written
    if any check fails.
    """
    _check_title(title)
    item = await repository.get_owned_item(session, owner_id, item_id)
    items = await repository.load_items(session, item.deck_id)

    new_level = check_move(item, new_parent_id, items)
    levels = relevel(item.id, new_level, items)
    by_id = {i.id: i for i in items}
    for node_id, level in levels.items():
        by_id[node_id].level = level

    item.parent_id = new_parent_id
    if order is not None:
        item.order = order
    if title is not None:
        item.title = title
    await session.commit()
    await session.refresh(item)
    logger.info(
        "Moved item %d under %s (%d nodes re-levelled)", item.id, new_parent_id, len(levels)
    )
    return item


async def delete_item(session: AsyncSession, owner_id: str, item_id: int) -> DeleteResult:
    """Delete an item, its descendants and every card attached to them, in one commit."""
    item = await repository.get_owned_item(session, owner_id, item_id)
    items = await repository.load_items(session, item.deck_id)
    ids = cascade_ids(item.id, items)

    cards_deleted = await repository.delete_cards_for_items(session, ids)
    await repository.delete_items(session, ids)
    await session.commit()

    logger.info("Deleted %d items and %d cards under item %d", len(ids), cards_deleted, item_id)
    return DeleteResult(item_ids=ids, cards_deleted=cards_deleted)
