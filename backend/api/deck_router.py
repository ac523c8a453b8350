"""API routes for decks, their item trees, export/import and tree-card generation."""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.api.deps import deck_tree_response, get_owner_id
from backend.api.schemas import (
    CardResponse,
    DeckCreate,
    DeckResponse,
    DeckTreeResponse,
    DeckUpdate,
    ImportResponse,
    ItemCreate,
    ItemResponse,
    SkippedCardResponse,
    TreeCardCreated,
    TreeCardSkipped,
    TreeCardsRequest,
    TreeCardsResponse,
)
from backend.database import get_session
from backend.services import cards as card_service
from backend.services import deck_io
from backend.services import decks as deck_service
from backend.tree import generator, mutator
from backend.tree.index import build_tree

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/decks", tags=["decks"])


@router.get("", response_model=list[DeckResponse])
async def list_decks(
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> list[DeckResponse]:
    decks = await repository.list_decks(db, owner_id)
    return [DeckResponse.model_validate(d) for d in decks]


@router.post("", response_model=DeckResponse, status_code=201)
async def create_deck(
    request: DeckCreate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    deck = await deck_service.create_deck(db, owner_id, request.title)
    return DeckResponse.model_validate(deck)


@router.post("/import", response_model=ImportResponse, status_code=201)
async def import_deck(
    snapshot: deck_io.DeckSnapshot,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> ImportResponse:
    """Create a new deck from an exported JSON snapshot."""
    report = await deck_io.import_deck(db, owner_id, snapshot)
    items = await repository.load_items(db, report.deck.id)
    return ImportResponse(
        deck=deck_tree_response(report.deck, build_tree(items)),
        items_created=report.items_created,
        cards_imported=report.cards_imported,
        cards_failed=report.cards_failed,
        cards_skipped=[SkippedCardResponse(**vars(s)) for s in report.skipped],
    )


@router.get("/{deck_id}", response_model=DeckTreeResponse)
async def get_deck(
    deck_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> DeckTreeResponse:
    """Get a deck with its full item tree."""
    deck_tree = await deck_service.get_deck_tree(db, owner_id, deck_id)
    return deck_tree_response(deck_tree.deck, deck_tree.items)


@router.patch("/{deck_id}", response_model=DeckResponse)
async def update_deck(
    deck_id: int,
    request: DeckUpdate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    deck = await deck_service.update_deck(
        db, owner_id, deck_id, title=request.title, is_public=request.is_public
    )
    return DeckResponse.model_validate(deck)


@router.post("/{deck_id}/toggle-public", response_model=DeckResponse)
async def toggle_public(
    deck_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> DeckResponse:
    deck = await deck_service.toggle_public(db, owner_id, deck_id)
    return DeckResponse.model_validate(deck)


@router.delete("/{deck_id}")
async def delete_deck(
    deck_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> dict:
    await deck_service.delete_deck(db, owner_id, deck_id)
    return {"status": "deleted", "deck_id": deck_id}


@router.get("/{deck_id}/cards", response_model=list[CardResponse])
async def deck_cards(
    deck_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> list[CardResponse]:
    cards = await card_service.list_deck_cards(db, owner_id, deck_id)
    return [CardResponse.model_validate(c) for c in cards]


@router.get("/{deck_id}/items", response_model=list[ItemResponse])
async def list_children(
    deck_id: int,
    parent_id: int | None = None,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> list[ItemResponse]:
    """List the direct children of ``parent_id`` (roots when omitted), in sibling order."""
    await repository.get_owned_deck(db, owner_id, deck_id)
    items = await repository.load_items(db, deck_id)
    return [ItemResponse.model_validate(node.item) for node in build_tree(items, parent_id)]


@router.post("/{deck_id}/items", response_model=ItemResponse, status_code=201)
async def create_item(
    deck_id: int,
    request: ItemCreate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> ItemResponse:
    item = await mutator.create_item(
        db, owner_id, deck_id, request.title, parent_id=request.parent_id, order=request.order
    )
    return ItemResponse.model_validate(item)


@router.get("/{deck_id}/export")
async def export_deck(
    deck_id: int,
    response: Response,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Export a deck (items and cards, no review state) as a JSON download."""
    snapshot = await deck_io.export_deck(db, owner_id, deck_id)
    filename = deck_io.export_filename(snapshot["deck"]["title"])
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return snapshot


@router.post("/{deck_id}/tree-cards", response_model=TreeCardsResponse)
async def generate_tree_cards(
    deck_id: int,
    request: TreeCardsRequest,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> TreeCardsResponse:
    """Generate summary cards for every non-leaf item of the deck or of one subtree."""
    plan, report = await generator.generate_tree_cards(db, owner_id, deck_id, item_id=request.item_id)
    failed_items = {c.item_id for c in report.failed}
    created = [
        TreeCardCreated(item=g.item.title, front=g.front, back=g.back, children_count=g.children_count)
        for g in plan.to_create
        if g.item.id not in failed_items
    ]
    skipped = [
        TreeCardSkipped(item=s.item.title, existing_card_id=s.existing_card_id, reason=s.reason)
        for s in plan.skipped
    ]
    return TreeCardsResponse(
        cards_created=created,
        cards_skipped=skipped,
        cards_failed=len(report.failed),
        total=len(created) + len(skipped),
    )
