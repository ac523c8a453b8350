"""In-memory tree operations over the flat item list of one deck.

Items are stored with a ``parent_id`` reference only. Everything here works
on an already-loaded snapshot: an adjacency map (parent id -> children) is
rebuilt per call instead of keeping nodes that point at each other.

Functions accept any object with ``id``, ``parent_id`` and ``order``
attributes (ORM ``Item`` rows, or plain dataclasses in tests).
"""

import logging
from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class TreeItem(Protocol):
    id: Any
    parent_id: Any
    order: int


@dataclass
class TreeNode:
    """An item with its ordered children, as returned by ``build_tree``."""

    item: Any
    depth: int
    children: list["TreeNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.item.id,
            "title": self.item.title,
            "parent_id": self.item.parent_id,
            "order": self.item.order,
            "level": self.item.level,
            "children": [child.to_dict() for child in self.children],
        }


def unique_by_id(items: Iterable[TreeItem]) -> list[TreeItem]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[Hashable] = set()
    result = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        result.append(item)
    return result


def children_by_parent(items: Iterable[TreeItem]) -> dict[Any, list[TreeItem]]:
    """Group items by ``parent_id`` (``None`` for roots), each group sorted by ``order``.

    ``sorted`` is stable, so equal ``order`` values keep their input order.
    """
    groups: dict[Any, list[TreeItem]] = {}
    for item in unique_by_id(items):
        groups.setdefault(item.parent_id, []).append(item)
    return {parent: sorted(group, key=lambda i: i.order) for parent, group in groups.items()}


def build_tree(items: Sequence[TreeItem], parent_id: Any = None) -> list[TreeNode]:
    """Nest the flat item list under ``parent_id`` (``None`` builds the whole forest)."""
    adjacency = children_by_parent(items)
    visited: set[Hashable] = set()

    def attach(parent: Any, depth: int) -> list[TreeNode]:
        nodes = []
        for child in adjacency.get(parent, []):
            if child.id in visited:
                continue
            visited.add(child.id)
            nodes.append(TreeNode(item=child, depth=depth, children=attach(child.id, depth + 1)))
        return nodes

    return attach(parent_id, 0)


def item_path(item: TreeItem, items: Sequence[TreeItem]) -> list[TreeItem]:
    """Return the items from the root down to ``item``, inclusive.

    A parent missing from ``items`` ends the walk: the path is truncated and
    the item is treated as rooted at the last ancestor found.
    """
    by_id = {i.id: i for i in items}
    path = [item]
    seen = {item.id}
    current = item
    while current.parent_id is not None:
        parent = by_id.get(current.parent_id)
        if parent is None:
            logger.warning(
                "Item %s references missing parent %s; truncating path",
                current.id,
                current.parent_id,
            )
            break
        if parent.id in seen:
            logger.warning("Parent cycle detected at item %s; truncating path", parent.id)
            break
        seen.add(parent.id)
        path.insert(0, parent)
        current = parent
    return path


def is_leaf(item_id: Any, items: Iterable[TreeItem]) -> bool:
    """True if no item has ``item_id`` as its parent."""
    return not any(i.parent_id == item_id for i in items)


def descendant_ids(item_id: Any, items: Iterable[TreeItem]) -> set:
    """Collect the ids of every item below ``item_id`` (not including it)."""
    adjacency = children_by_parent(items)
    found: set = set()
    stack = [item_id]
    while stack:
        current = stack.pop()
        for child in adjacency.get(current, []):
            if child.id in found or child.id == item_id:
                continue
            found.add(child.id)
            stack.append(child.id)
    return found


def subtree_ids(item_id: Any, items: Iterable[TreeItem]) -> set:
    """``{item_id}`` plus all of its descendants."""
    return {item_id} | descendant_ids(item_id, items)


def direct_children(item_id: Any, items: Iterable[TreeItem]) -> list[TreeItem]:
    """Children of ``item_id`` in sibling order."""
    return children_by_parent(items).get(item_id, [])
