"""API routes for tree items and the cards attached to them."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.api.deps import get_owner_id
from backend.api.schemas import (
    CardCreate,
    CardResponse,
    DeleteItemResponse,
    ItemCardRequest,
    ItemCardResponse,
    ItemResponse,
    ItemUpdate,
    ItemWithChildrenResponse,
    PathEntryResponse,
)
from backend.database import get_session
from backend.services import cards as card_service
from backend.tree import generator, mutator
from backend.tree.index import direct_children, item_path

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/items", tags=["items"])


@router.get("/{item_id}", response_model=ItemWithChildrenResponse)
async def get_item(
    item_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> ItemWithChildrenResponse:
    item = await repository.get_owned_item(db, owner_id, item_id)
    items = await repository.load_items(db, item.deck_id)
    return ItemWithChildrenResponse(
        **ItemResponse.model_validate(item).model_dump(),
        children=[ItemResponse.model_validate(c) for c in direct_children(item.id, items)],
    )


@router.patch("/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: int,
    request: ItemUpdate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> ItemResponse:
    """Rename, reorder or move an item. A ``parent_id`` key in the body means a move."""
    if "parent_id" in request.model_fields_set:
        item = await mutator.move_item(
            db, owner_id, item_id, request.parent_id, order=request.order, title=request.title
        )
    else:
        item = await mutator.update_item(
            db, owner_id, item_id, title=request.title, order=request.order
        )
    return ItemResponse.model_validate(item)


@router.delete("/{item_id}", response_model=DeleteItemResponse)
async def delete_item(
    item_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> DeleteItemResponse:
    """Delete an item with all of its descendants and their cards."""
    result = await mutator.delete_item(db, owner_id, item_id)
    return DeleteItemResponse(
        deleted_item_ids=sorted(result.item_ids), cards_deleted=result.cards_deleted
    )


@router.get("/{item_id}/path", response_model=list[PathEntryResponse])
async def get_item_path(
    item_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> list[PathEntryResponse]:
    item = await repository.get_owned_item(db, owner_id, item_id)
    items = await repository.load_items(db, item.deck_id)
    return [PathEntryResponse.model_validate(i) for i in item_path(item, items)]


@router.get("/{item_id}/cards", response_model=list[CardResponse])
async def list_cards(
    item_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> list[CardResponse]:
    cards = await card_service.list_item_cards(db, owner_id, item_id)
    return [CardResponse.model_validate(c) for c in cards]


@router.post("/{item_id}/cards", response_model=CardResponse, status_code=201)
async def create_card(
    item_id: int,
    request: CardCreate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> CardResponse:
    card = await card_service.create_card(
        db,
        owner_id,
        item_id,
        front=request.front,
        back=request.back,
        tags=request.tags,
        front_media=[m.model_dump() for m in request.front_media],
        back_media=[m.model_dump() for m in request.back_media],
        is_tree_generated=request.is_tree_generated,
    )
    return CardResponse.model_validate(card)


@router.post("/{item_id}/tree-card", response_model=ItemCardResponse)
async def generate_item_card(
    item_id: int,
    request: ItemCardRequest,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> ItemCardResponse:
    """Create the summary card for one item, or overwrite it when asked to."""
    card, plan = await generator.generate_item_card(db, owner_id, item_id, overwrite=request.overwrite)
    return ItemCardResponse(
        updated=plan.existing is not None,
        card=CardResponse.model_validate(card),
        item=plan.item.title,
        children=[c.title for c in plan.children],
    )
