"""Tests for deck JSON export and import."""

import pytest

from backend import repository
from backend.models import Card
from backend.services.deck_io import (
    DeckSnapshot,
    export_deck,
    export_filename,
    import_deck,
)
from backend.tree.index import build_tree
from tests.conftest import OWNER


def _titles(nodes) -> list:
    return [(n.item.title, _titles(n.children)) for n in nodes]


class TestFilename:
    def test_sanitized(self) -> None:
        assert export_filename("World History: Part 1") == "World_History_Part_1.json"
        assert export_filename("") == "deck.json"
        assert export_filename("!!!") == "deck.json"


class TestExportImport:
    @pytest.mark.asyncio
    async def test_round_trip_rebuilds_tree(self, db, seeded) -> None:
        db.add_all(
            [
                Card(
                    item_id=seeded.a1.id, deck_id=seeded.deck.id, front="Q1", back="A1", tags=["t"]
                ),
                Card(
                    item_id=seeded.b.id, deck_id=seeded.deck.id, front="Q2", back="B"
                ),
            ]
        )
        await db.commit()

        data = await export_deck(db, OWNER, seeded.deck.id)
        assert data["deck"] == {"title": "History"}
        assert {"_id", "parentId", "title", "order", "level"} <= set(data["items"][0])
        assert data["cards"][0]["itemTitle"] in {"A1", "B"}

        report = await import_deck(db, "owner-2", DeckSnapshot.model_validate(data))
        assert report.items_created == 5
        assert report.cards_imported == 2
        assert report.skipped == []
        assert report.deck.id != seeded.deck.id
        assert report.deck.owner_id == "owner-2"

        items = await repository.load_items(db, report.deck.id)
        assert {i.id for i in items}.isdisjoint({seeded.a.id, seeded.a1.id})
        assert _titles(build_tree(items)) == [
            ("Root", [("A", [("A1", []), ("A2", [])]), ("B", [])])
        ]
        assert {i.title: i.level for i in items} == {
            "Root": 0,
            "A": 1,
            "B": 1,
            "A1": 2,
            "A2": 2,
        }

        cards = await repository.load_cards(db, deck_id=report.deck.id)
        by_id = {i.id: i.title for i in items}
        assert sorted((by_id[c.item_id], c.front) for c in cards) == [("A1", "Q1"), ("B", "Q2")]
        # Imported decks start with a fresh schedule
        assert all(c.repetitions == 0 for c in cards)

    @pytest.mark.asyncio
    async def test_import_falls_back_to_title_and_reports_skips(self, db) -> None:
        snapshot = DeckSnapshot.model_validate(
            {
                "deck": {"title": "Imported"},
                "items": [
                    {"_id": 1, "title": "Root", "parentId": None},
                    {"_id": 2, "title": "Leaf", "parentId": 1, "level": 7},
                    {"_id": 3, "title": "Lost", "parentId": 99},
                ],
                "cards": [
                    {"itemId": "missing", "itemTitle": "Leaf", "front": "q", "back": "a"},
                    {"itemId": "nope", "itemTitle": "Nope", "front": "x", "back": "y"},
                    {"itemId": 2, "front": "", "back": "y"},
                ],
            }
        )
        report = await import_deck(db, OWNER, snapshot)

        assert report.items_created == 3
        assert report.cards_imported == 1
        assert [s.reason for s in report.skipped] == ["item not found", "empty front or back"]

        items = {i.title: i for i in await repository.load_items(db, report.deck.id)}
        assert items["Leaf"].parent_id == items["Root"].id
        assert items["Leaf"].level == 1
        assert items["Lost"].parent_id is None and items["Lost"].level == 0

    @pytest.mark.asyncio
    async def test_import_breaks_parent_cycles(self, db) -> None:
        snapshot = DeckSnapshot.model_validate(
            {
                "deck": {"title": "Loop"},
                "items": [
                    {"_id": "x", "title": "X", "parentId": "y"},
                    {"_id": "y", "title": "Y", "parentId": "x"},
                ],
            }
        )
        report = await import_deck(db, OWNER, snapshot)
        items = await repository.load_items(db, report.deck.id)
        roots = [i for i in items if i.parent_id is None]
        assert len(roots) == 1
        assert sorted(i.level for i in items) == [0, 1]
