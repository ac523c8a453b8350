"""Read-only access to published decks; no caller identity required."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import tree_response
from backend.api.schemas import PublicDeckResponse
from backend.database import get_session
from backend.services.decks import get_public_deck

router = APIRouter(prefix="/api/public", tags=["public"])


@router.get("/{public_id}", response_model=PublicDeckResponse)
async def public_deck(
    public_id: str,
    db: AsyncSession = Depends(get_session),
) -> PublicDeckResponse:
    deck_tree = await get_public_deck(db, public_id)
    deck = deck_tree.deck
    return PublicDeckResponse(
        id=deck.id,
        title=deck.title,
        public_id=deck.public_id,
        created_at=deck.created_at,
        items=tree_response(deck_tree.items),
    )
