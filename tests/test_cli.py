"""Tests for the treedeck command line."""

import json
import sys

import pytest
from sqlalchemy import inspect

from backend.tree.index import build_tree
from tests.conftest import Node
from treedeck.__main__ import QUALITY_KEYS, ensure_db, main, render_tree


def _run(monkeypatch, *argv: str) -> None:
    monkeypatch.setattr(sys, "argv", ["treedeck", *argv])
    main()


class TestRenderTree:
    def test_indents_by_depth(self) -> None:
        nodes = build_tree(
            [
                Node(1, "Root"),
                Node(2, "A", parent_id=1, level=1),
                Node(3, "A1", parent_id=2, level=2),
            ]
        )
        assert render_tree(nodes) == ["  Root  [1]", "    A  [2]", "      A1  [3]"]

    def test_quality_keys(self) -> None:
        assert [int(QUALITY_KEYS[k]) for k in "1234"] == [0, 1, 2, 3]


@pytest.mark.asyncio
async def test_ensure_db_creates_tables(tmp_path) -> None:
    from backend.database import make_engine

    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    await ensure_db(bind=engine)
    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    await engine.dispose()
    assert {"decks", "items", "cards"} <= set(tables)


class TestCommands:
    def test_import_then_tree(self, monkeypatch, tmp_path, capsys) -> None:
        snapshot = {
            "deck": {"title": "CLI deck"},
            "items": [
                {"_id": "r", "title": "Root"},
                {"_id": "c", "title": "Child", "parentId": "r"},
            ],
            "cards": [{"itemId": "c", "front": "Q", "back": "A"}],
        }
        source = tmp_path / "deck.json"
        source.write_text(json.dumps(snapshot), encoding="utf-8")

        _run(monkeypatch, "import", str(source))
        out = capsys.readouterr().out
        assert "CLI deck: 2 items, 1 cards" in out
        deck_id = int(out.split("[", 1)[1].split("]", 1)[0])

        _run(monkeypatch, "tree", str(deck_id))
        out = capsys.readouterr().out
        assert "  Root  [" in out
        assert "    Child  [" in out

        target = tmp_path / "out.json"
        _run(monkeypatch, "export", str(deck_id), "-o", str(target))
        exported = json.loads(target.read_text(encoding="utf-8"))
        assert [i["title"] for i in exported["items"]] == ["Root", "Child"]

    def test_unknown_deck_exits_with_error(self, monkeypatch, capsys) -> None:
        with pytest.raises(SystemExit) as info:
            _run(monkeypatch, "tree", "999999")
        assert info.value.code == 1
        assert "Deck 999999 not found" in capsys.readouterr().err
