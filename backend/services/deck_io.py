"""JSON export and import of whole decks.

The snapshot carries titles, tree links and card content but no review
state; an imported deck starts fresh. On import every item gets a new id,
parent links are remapped, levels are recomputed from the rebuilt tree, and
each card is re-attached by old item id, falling back to the item title.
"""

import logging
import re
from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.config import utcnow
from backend.errors import InvalidInput
from backend.models.card import Card
from backend.models.deck import Deck
from backend.models.item import Item
from backend.services.cards import normalize_tags
from backend.tree.index import children_by_parent
from backend.tree.mutator import relevel

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = "1.0"


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SnapshotDeck(_SnapshotModel):
    title: str


class SnapshotItem(_SnapshotModel):
    id: str | None = Field(default=None, alias="_id")
    title: str
    parent_id: str | None = Field(default=None, alias="parentId")
    order: int = 0
    level: int = 0

    @field_validator("id", "parent_id", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> str | None:
        return None if value is None else str(value)


class SnapshotCard(_SnapshotModel):
    item_id: str | None = Field(default=None, alias="itemId")
    item_title: str | None = Field(default=None, alias="itemTitle")
    front: str = ""
    back: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("item_id", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> str | None:
        return None if value is None else str(value)


class DeckSnapshot(_SnapshotModel):
    version: str = SNAPSHOT_VERSION
    exported_at: str | None = Field(default=None, alias="exportedAt")
    deck: SnapshotDeck
    items: list[SnapshotItem] = Field(default_factory=list)
    cards: list[SnapshotCard] = Field(default_factory=list)


@dataclass
class SkippedCard:
    item_id: str | None
    item_title: str | None
    front: str
    reason: str


@dataclass
class ImportReport:
    deck: Deck
    items_created: int = 0
    cards_imported: int = 0
    cards_failed: int = 0
    skipped: list[SkippedCard] = field(default_factory=list)


def export_filename(title: str | None) -> str:
    """A safe ``.json`` download name derived from the deck title."""
    if not title:
        return "deck.json"
    sanitized = re.sub(r"[^a-zA-Z0-9_\-]", "", re.sub(r"\s+", "_", title.strip()))
    return f"{sanitized or 'deck'}.json"


async def export_deck(session: AsyncSession, owner_id: str, deck_id: int) -> dict:
    deck = await repository.get_owned_deck(session, owner_id, deck_id)
    items = await repository.load_items(session, deck.id)
    cards = await repository.load_cards(session, deck_id=deck.id)
    titles = {i.id: i.title for i in items}

    snapshot = DeckSnapshot(
        exported_at=utcnow().isoformat(),
        deck=SnapshotDeck(title=deck.title),
        items=[
            SnapshotItem(
                id=str(i.id),
                title=i.title,
                parent_id=str(i.parent_id) if i.parent_id is not None else None,
                order=i.order,
                level=i.level,
            )
            for i in items
        ],
        cards=[
            SnapshotCard(
                item_id=str(c.item_id),
                item_title=titles.get(c.item_id),
                front=c.front,
                back=c.back,
                tags=list(c.tags or []),
            )
            for c in cards
        ],
    )
    logger.info("Exported deck %d: %d items, %d cards", deck.id, len(items), len(cards))
    return snapshot.model_dump(by_alias=True, mode="json")


def _fix_levels(items: list[Item]) -> None:
    """Recompute levels from the remapped parent links, breaking any cycles."""
    adjacency = children_by_parent(items)
    levels: dict[int, int] = {}
    for root in adjacency.get(None, []):
        levels.update(relevel(root.id, 0, items))

    for item in items:
        if item.id in levels:
            continue
        logger.warning("Item %r is part of a parent cycle; importing it as a root", item.title)
        item.parent_id = None
        levels.update(relevel(item.id, 0, items))

    for item in items:
        item.level = levels[item.id]


async def import_deck(session: AsyncSession, owner_id: str, snapshot: DeckSnapshot) -> ImportReport:
    """Create a new deck owned by ``owner_id`` from an exported snapshot."""
    if not snapshot.deck.title.strip():
        raise InvalidInput("Invalid deck data: missing deck title")

    deck = Deck(title=snapshot.deck.title, owner_id=owner_id)
    session.add(deck)
    await session.flush()
    report = ImportReport(deck=deck)

    # First pass: fresh ids. Second pass: remap parents.
    created: list[tuple[Item, SnapshotItem]] = []
    old_to_new: dict[str, Item] = {}
    for data in snapshot.items:
        item = Item(
            title=data.title,
            deck_id=deck.id,
            parent_id=None,
            order=data.order,
            level=0,
            owner_id=owner_id,
        )
        session.add(item)
        created.append((item, data))
    await session.flush()

    for item, data in created:
        if data.id is not None:
            old_to_new[data.id] = item
    for item, data in created:
        if data.parent_id is None:
            continue
        parent = old_to_new.get(data.parent_id)
        if parent is None:
            logger.warning(
                "Item %r references unknown parent %s; importing as root", item.title, data.parent_id
            )
            continue
        item.parent_id = parent.id

    items = [item for item, _ in created]
    _fix_levels(items)
    report.items_created = len(items)

    by_title: dict[str, Item] = {}
    for item in items:
        by_title.setdefault(item.title, item)

    new_cards = []
    for data in snapshot.cards:
        target = old_to_new.get(data.item_id) if data.item_id is not None else None
        if target is None and data.item_title is not None:
            target = by_title.get(data.item_title)
        if target is None:
            report.skipped.append(
                SkippedCard(data.item_id, data.item_title, data.front[:50], "item not found")
            )
            continue
        if not data.front.strip() or not data.back.strip():
            report.skipped.append(
                SkippedCard(data.item_id, data.item_title, data.front[:50], "empty front or back")
            )
            continue
        new_cards.append(
            Card(
                item_id=target.id,
                deck_id=deck.id,
                front=data.front,
                back=data.back,
                tags=normalize_tags(data.tags),
                front_media=[],
                back_media=[],
                is_tree_generated=False,
            )
        )

    inserted = await repository.insert_cards(session, new_cards)
    report.cards_imported = len(inserted.inserted)
    report.cards_failed = len(inserted.failed)
    await session.commit()
    await session.refresh(deck)

    if report.skipped:
        logger.warning("Skipped %d cards with missing items during import", len(report.skipped))
    logger.info(
        "Import summary for deck %d: %d items, %d cards imported, %d skipped, %d in file",
        deck.id,
        report.items_created,
        report.cards_imported,
        len(report.skipped),
        len(snapshot.cards),
    )
    return report
