"""API routes for individual cards."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend import repository
from backend.api.deps import get_owner_id
from backend.api.schemas import CardResponse, CardUpdate
from backend.database import get_session
from backend.services import cards as card_service

router = APIRouter(prefix="/api/cards", tags=["cards"])


@router.get("/{card_id}", response_model=CardResponse)
async def get_card(
    card_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> CardResponse:
    card = await repository.get_owned_card(db, owner_id, card_id)
    return CardResponse.model_validate(card)


@router.patch("/{card_id}", response_model=CardResponse)
async def update_card(
    card_id: int,
    request: CardUpdate,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> CardResponse:
    """Edit card content; the review schedule is left alone."""
    card = await card_service.update_card(
        db,
        owner_id,
        card_id,
        front=request.front,
        back=request.back,
        tags=request.tags,
        front_media=[m.model_dump() for m in request.front_media] if request.front_media is not None else None,
        back_media=[m.model_dump() for m in request.back_media] if request.back_media is not None else None,
    )
    return CardResponse.model_validate(card)


@router.delete("/{card_id}")
async def delete_card(
    card_id: int,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> dict:
    await card_service.delete_card(db, owner_id, card_id)
    return {"status": "deleted", "card_id": card_id}
