"""API routes for due-card selection and answering reviews."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_owner_id
from backend.api.schemas import (
    AnswerRequest,
    AnswerResponse,
    CardResponse,
    PathEntryResponse,
    ReviewCardResponse,
    SubtreeItemResponse,
    SubtreeReviewResponse,
)
from backend.database import get_session
from backend.services.cards import answer_card
from backend.srs.queue import load_subtree_review, load_today_cards

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/review", tags=["review"])


@router.get("/today", response_model=list[CardResponse])
async def today_cards(
    deck_id: int | None = None,
    item_id: int | None = None,
    include_all: bool = False,
    include_tree_cards: bool = True,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> list[CardResponse]:
    """Cards due today, optionally limited to a deck or an item's subtree."""
    cards = await load_today_cards(
        db,
        owner_id,
        deck_id=deck_id,
        item_id=item_id,
        include_all=include_all,
        include_tree_cards=include_tree_cards,
    )
    return [CardResponse.model_validate(c) for c in cards]


@router.get("/items/{item_id}", response_model=SubtreeReviewResponse)
async def subtree_cards(
    item_id: int,
    include_all: bool = False,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> SubtreeReviewResponse:
    """Cards due under an item, each with the path to its own item."""
    review = await load_subtree_review(db, owner_id, item_id, include_all=include_all)
    item = SubtreeItemResponse.model_validate(
        {
            "id": review.item.id,
            "deck_id": review.item.deck_id,
            "title": review.item.title,
            "parent_id": review.item.parent_id,
            "order": review.item.order,
            "level": review.item.level,
            "path": [PathEntryResponse.model_validate(p) for p in review.path],
        }
    )
    cards = [
        ReviewCardResponse(
            **CardResponse.model_validate(rc.card).model_dump(),
            item_path=[PathEntryResponse.model_validate(p) for p in rc.item_path],
        )
        for rc in review.cards
    ]
    return SubtreeReviewResponse(item=item, cards=cards, total_cards=review.total)


@router.post("/{card_id}/answer", response_model=AnswerResponse)
async def submit_answer(
    card_id: int,
    request: AnswerRequest,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> AnswerResponse:
    """Grade a card (0=Again, 1=Hard, 2=Good, 3=Easy) and store its next schedule."""
    card, _ = await answer_card(db, owner_id, card_id, request.quality)
    return AnswerResponse(
        card=CardResponse.model_validate(card),
        next_due=card.due_date,
        interval=card.interval,
        ease_factor=card.ease_factor,
        repetitions=card.repetitions,
    )
