"""Tests for cards generated from the tree structure."""

from datetime import timedelta

import pytest

from backend import repository
from backend.errors import AlreadyExists, NoChildren, NotFound
from backend.srs.sm2 import CardState
from backend.tree.generator import (
    find_generated_card,
    generate_item_card,
    generate_tree_cards,
    plan_item_card,
    plan_tree_cards,
    render_back,
)
from tests.conftest import OWNER, FakeCard, Node


def _items() -> list[Node]:
    return [
        Node(1, "Root"),
        Node(2, "A", parent_id=1, order=0, level=1),
        Node(3, "B", parent_id=1, order=1, level=1),
        Node(4, "A1", parent_id=2, order=0, level=2),
        Node(5, "A2", parent_id=2, order=1, level=2),
    ]


class TestPlanning:
    def test_back_lists_children_in_order(self) -> None:
        children = [Node(3, "B", order=1), Node(2, "A", order=0)]
        assert render_back(sorted(children, key=lambda n: n.order)) == "• A\r\n• B"

    def test_plan_creates_one_card_per_parent(self) -> None:
        plan = plan_tree_cards(_items(), [])
        assert [(g.front, g.back) for g in plan.to_create] == [
            ("Root", "• A\r\n• B"),
            ("A", "• A1\r\n• A2"),
        ]
        assert [g.children_count for g in plan.to_create] == [2, 2]
        assert plan.skipped == []

    def test_plan_skips_existing_generated_card(self) -> None:
        cards = [FakeCard(99, item_id=1, front="Root", back="old")]
        plan = plan_tree_cards(_items(), cards)
        assert [g.item.id for g in plan.to_create] == [2]
        assert [(s.item.id, s.existing_card_id) for s in plan.skipped] == [(1, 99)]

    def test_card_with_other_front_does_not_count(self) -> None:
        cards = [FakeCard(99, item_id=1, front="Something else")]
        plan = plan_tree_cards(_items(), cards)
        assert len(plan.to_create) == 2

    def test_plan_limited_to_subtree(self) -> None:
        plan = plan_tree_cards(_items(), [], root_id=2)
        assert [g.item.id for g in plan.to_create] == [2]

    def test_leaf_subtree_plans_nothing(self) -> None:
        plan = plan_tree_cards(_items(), [], root_id=4)
        assert plan.to_create == [] and plan.skipped == []

    def test_plan_item_card_on_leaf(self) -> None:
        items = _items()
        with pytest.raises(NoChildren):
            plan_item_card(items[2], items, [])

    def test_plan_item_card_already_exists(self) -> None:
        items = _items()
        cards = [FakeCard(7, item_id=2, front="A")]
        with pytest.raises(AlreadyExists) as info:
            plan_item_card(items[1], items, cards)
        assert info.value.existing_card_id == 7

    def test_plan_item_card_overwrite(self) -> None:
        items = _items()
        cards = [FakeCard(7, item_id=2, front="A")]
        plan = plan_item_card(items[1], items, cards, overwrite=True)
        assert plan.existing is cards[0]
        assert plan.back == "• A1\r\n• A2"
        assert [c.title for c in plan.children] == ["A1", "A2"]

    def test_find_generated_card(self) -> None:
        item = Node(2, "A")
        cards = [FakeCard(1, item_id=3, front="A"), FakeCard(2, item_id=2, front="A")]
        assert find_generated_card(item, cards).id == 2


class TestGenerateTreeCards:
    @pytest.mark.asyncio
    async def test_bulk_generation_is_idempotent(self, db, seeded) -> None:
        plan, report = await generate_tree_cards(db, OWNER, seeded.deck.id)
        assert len(report.inserted) == 2
        assert all(c.is_tree_generated for c in report.inserted)

        plan, report = await generate_tree_cards(db, OWNER, seeded.deck.id)
        assert report.inserted == []
        assert {s.item.id for s in plan.skipped} == {seeded.root.id, seeded.a.id}

        cards = await repository.load_cards(db, deck_id=seeded.deck.id)
        assert len(cards) == 2

    @pytest.mark.asyncio
    async def test_subtree_generation(self, db, seeded) -> None:
        _, report = await generate_tree_cards(db, OWNER, seeded.deck.id, item_id=seeded.a.id)
        assert [(c.item_id, c.back) for c in report.inserted] == [(seeded.a.id, "• A1\r\n• A2")]

    @pytest.mark.asyncio
    async def test_other_owner_cannot_generate(self, db, seeded) -> None:
        with pytest.raises(NotFound):
            await generate_tree_cards(db, "intruder", seeded.deck.id)


class TestGenerateItemCard:
    @pytest.mark.asyncio
    async def test_create_then_conflict(self, db, seeded) -> None:
        card, plan = await generate_item_card(db, OWNER, seeded.root.id)
        assert plan.existing is None
        assert (card.front, card.back) == ("Root", "• A\r\n• B")
        assert card.deck_id == seeded.deck.id

        with pytest.raises(AlreadyExists) as info:
            await generate_item_card(db, OWNER, seeded.root.id)
        assert info.value.existing_card_id == card.id

    @pytest.mark.asyncio
    async def test_leaf_rejected(self, db, seeded) -> None:
        with pytest.raises(NoChildren):
            await generate_item_card(db, OWNER, seeded.b.id)

    @pytest.mark.asyncio
    async def test_overwrite_keeps_schedule(self, db, seeded) -> None:
        card, _ = await generate_item_card(db, OWNER, seeded.a.id)
        due = card.due_date + timedelta(days=15)
        CardState(interval=15.0, ease_factor=2.6, repetitions=3, due=due).apply_to(card)
        await db.commit()

        seeded.a2.title = "A2 renamed"
        await db.commit()

        updated, plan = await generate_item_card(db, OWNER, seeded.a.id, overwrite=True)
        assert plan.existing is not None
        assert updated.id == card.id
        assert updated.back == "• A1\r\n• A2 renamed"
        assert (updated.interval, updated.ease_factor, updated.repetitions) == (15.0, 2.6, 3)
        assert updated.due_date == due
