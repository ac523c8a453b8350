"""CLI interface for TreeDeck.

Usage:
    python -m treedeck decks                  List your decks
    python -m treedeck tree DECK              Show a deck's item tree
    python -m treedeck due [--deck D]         Show how many cards are due today
    python -m treedeck review [--deck D]      Start a review session
    python -m treedeck export DECK [-o FILE]  Export a deck to JSON
    python -m treedeck import FILE            Import a deck from JSON
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine

from backend import repository
from backend.config import settings
from backend.database import async_session, engine
from backend.errors import TreeDeckError
from backend.models import Base
from backend.services import deck_io
from backend.services.decks import get_deck_tree
from backend.srs.queue import load_today_cards
from backend.srs.session import start_session
from backend.srs.sm2 import Quality
from backend.tree.index import TreeNode

QUALITY_KEYS = {"1": Quality.AGAIN, "2": Quality.HARD, "3": Quality.GOOD, "4": Quality.EASY}


async def ensure_db(bind: AsyncEngine = engine) -> None:
    """Create tables if they don't exist."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def render_tree(nodes: list[TreeNode], indent: str = "  ") -> list[str]:
    """One line per node, indented by depth."""
    lines = []
    for node in nodes:
        lines.append(f"{indent * (node.depth + 1)}{node.item.title}  [{node.item.id}]")
        lines.extend(render_tree(node.children, indent))
    return lines


async def cmd_decks(args: argparse.Namespace) -> None:
    """List the CLI owner's decks."""
    await ensure_db()
    async with async_session() as db:
        decks = await repository.list_decks(db, settings.cli_owner_id)
    if not decks:
        print("\n  No decks yet. Import one with: python -m treedeck import FILE\n")
        return
    print()
    for deck in decks:
        shared = f"  public:{deck.public_id}" if deck.is_public else ""
        print(f"  [{deck.id}] {deck.title}{shared}")
    print()


async def cmd_tree(args: argparse.Namespace) -> None:
    """Print a deck's item tree."""
    await ensure_db()
    async with async_session() as db:
        deck_tree = await get_deck_tree(db, settings.cli_owner_id, args.deck)
    print(f"\n  {deck_tree.deck.title}")
    for line in render_tree(deck_tree.items):
        print(line)
    print()


async def cmd_due(args: argparse.Namespace) -> None:
    """Show how many cards are due today."""
    await ensure_db()
    async with async_session() as db:
        cards = await load_today_cards(
            db, settings.cli_owner_id, deck_id=args.deck, item_id=args.item
        )
    generated = sum(1 for c in cards if c.is_tree_generated)
    print(f"  {len(cards)} cards due today ({generated} generated from the tree)")


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive review session."""
    await ensure_db()

    async with async_session() as db:
        session = await start_session(
            db,
            settings.cli_owner_id,
            deck_id=args.deck,
            item_id=args.item,
            include_all=args.all,
            include_tree_cards=not args.no_tree_cards,
        )

        if session.is_complete:
            print("\nNo cards due for review. You're all caught up!")
            return

        print("\n  Review Session")
        print(f"  {session.total} cards\n")
        print("  Ratings: 1=Again  2=Hard  3=Good  4=Easy")
        print("  Type 'q' to quit\n")

        while not session.is_complete:
            card = session.current_card
            print(f"  [{session.remaining} left]")
            print(f"  {card.front}")
            if input("\n  (enter to show answer) ").strip().lower() == "q":
                print("\n  Session ended early.")
                break
            for line in card.back.splitlines():
                print(f"    {line}")

            rate_input = input("  Rate [1-4]: ").strip()
            if rate_input.lower() == "q":
                print("\n  Session ended early.")
                break
            quality = QUALITY_KEYS.get(rate_input)
            if quality is None:
                print("  Please answer 1, 2, 3 or 4.\n")
                continue

            result = await session.submit_answer(db, quality)
            if result.requeued_at is not None:
                print(f"  Back in the queue at position {result.requeued_at + 1}\n")
            else:
                print(f"  Next review in {result.card.interval:g} days\n")

    s = session.stats
    print("\n  Session Complete!" if session.is_complete else "")
    print(
        f"  Reviewed: {s.cards_reviewed}  Again: {s.again}  Hard: {s.hard}  "
        f"Good: {s.good}  Easy: {s.easy}\n"
    )


async def cmd_export(args: argparse.Namespace) -> None:
    """Write a deck snapshot to a JSON file."""
    await ensure_db()
    async with async_session() as db:
        snapshot = await deck_io.export_deck(db, settings.cli_owner_id, args.deck)
    output = Path(args.output or deck_io.export_filename(snapshot["deck"]["title"]))
    output.write_text(json.dumps(snapshot, ensure_ascii=False, indent=2), encoding="utf-8")
    print(f"  Exported {len(snapshot['items'])} items and {len(snapshot['cards'])} cards to {output}")


async def cmd_import(args: argparse.Namespace) -> None:
    """Create a deck from a JSON snapshot."""
    await ensure_db()
    data = json.loads(Path(args.file).read_text(encoding="utf-8"))
    snapshot = deck_io.DeckSnapshot.model_validate(data)
    async with async_session() as db:
        report = await deck_io.import_deck(db, settings.cli_owner_id, snapshot)
    print(
        f"  Imported deck [{report.deck.id}] {report.deck.title}: "
        f"{report.items_created} items, {report.cards_imported} cards "
        f"({len(report.skipped)} skipped, {report.cards_failed} failed)"
    )


async def run_command(command, args: argparse.Namespace) -> None:
    """Run one command and release pooled connections before the loop closes."""
    try:
        await command(args)
    finally:
        await engine.dispose()


def main() -> None:
    """Entry point for the TreeDeck CLI application."""
    parser = argparse.ArgumentParser(
        prog="treedeck",
        description="Hierarchical flashcards with spaced repetition",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # decks
    subparsers.add_parser("decks", help="List your decks")

    # tree
    tree_parser = subparsers.add_parser("tree", help="Show a deck's item tree")
    tree_parser.add_argument("deck", type=int, help="Deck id")

    # due / review
    for name, help_text in (("due", "Show cards due today"), ("review", "Start a review session")):
        scoped = subparsers.add_parser(name, help=help_text)
        scoped.add_argument("--deck", type=int, default=None, help="Limit to one deck")
        scoped.add_argument("--item", type=int, default=None, help="Limit to an item's subtree")
        if name == "review":
            scoped.add_argument("--all", action="store_true", help="Ignore due dates")
            scoped.add_argument(
                "--no-tree-cards", action="store_true", help="Skip cards generated from the tree"
            )

    # export
    export_parser = subparsers.add_parser("export", help="Export a deck to JSON")
    export_parser.add_argument("deck", type=int, help="Deck id")
    export_parser.add_argument("-o", "--output", default=None, help="Output file")

    # import
    import_parser = subparsers.add_parser("import", help="Import a deck from JSON")
    import_parser.add_argument("file", help="Snapshot file produced by export")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "decks": cmd_decks,
        "tree": cmd_tree,
        "due": cmd_due,
        "review": cmd_review,
        "export": cmd_export,
        "import": cmd_import,
    }

    try:
        asyncio.run(run_command(cmd_map[args.command], args))
    except TreeDeckError as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
