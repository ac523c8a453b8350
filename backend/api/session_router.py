"""API routes for review sessions."""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_owner_id
from backend.api.schemas import (
    CardResponse,
    SessionAnswerRequest,
    SessionAnswerResponse,
    SessionCardResponse,
    SessionStartRequest,
    SessionStartResponse,
    SessionStatsResponse,
)
from backend.database import get_session
from backend.srs.session import ReviewSession, start_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])

# In-memory session store; sessions are lost on restart
_active_sessions: dict[str, ReviewSession] = {}


def _get_owned_session(session_id: str, owner_id: str) -> ReviewSession:
    review_session = _active_sessions.get(session_id)
    if not review_session or review_session.owner_id != owner_id:
        raise HTTPException(status_code=404, detail="Session not found")
    return review_session


@router.post("/start", response_model=SessionStartResponse)
async def session_start(
    request: SessionStartRequest,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> SessionStartResponse:
    """Start a new review session over today's due cards."""
    review_session = await start_session(
        db,
        owner_id,
        deck_id=request.deck_id,
        item_id=request.item_id,
        include_all=request.include_all,
        include_tree_cards=request.include_tree_cards,
    )

    if review_session.total == 0:
        raise HTTPException(status_code=404, detail="No cards available for review")

    session_id = str(uuid.uuid4())
    _active_sessions[session_id] = review_session

    return SessionStartResponse(session_id=session_id, total_cards=review_session.total)


@router.get("/next/{session_id}", response_model=SessionCardResponse)
async def session_next(
    session_id: str,
    owner_id: str = Depends(get_owner_id),
) -> SessionCardResponse:
    """Get the card at the head of the session queue."""
    review_session = _get_owned_session(session_id, owner_id)

    card = review_session.current_card
    if card is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    return SessionCardResponse(
        card=CardResponse.model_validate(card), remaining=review_session.remaining
    )


@router.post("/answer/{session_id}", response_model=SessionAnswerResponse)
async def session_answer(
    session_id: str,
    request: SessionAnswerRequest,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_session),
) -> SessionAnswerResponse:
    """Submit an answer for the current card."""
    review_session = _get_owned_session(session_id, owner_id)

    current = review_session.current_card
    if current is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    # Verify the card matches the head of the queue
    if current.id != request.card_id:
        raise HTTPException(status_code=400, detail="Card ID mismatch")

    result = await review_session.submit_answer(db, request.quality)

    return SessionAnswerResponse(
        card=CardResponse.model_validate(result.card),
        next_due=result.card.due_date,
        interval=result.card.interval,
        requeued_at=result.requeued_at,
        remaining=review_session.remaining,
        session_complete=review_session.is_complete,
    )


@router.get("/stats/{session_id}", response_model=SessionStatsResponse)
async def session_stats(
    session_id: str,
    owner_id: str = Depends(get_owner_id),
) -> SessionStatsResponse:
    """Get stats for the current session."""
    review_session = _get_owned_session(session_id, owner_id)

    s = review_session.stats
    return SessionStatsResponse(
        cards_reviewed=s.cards_reviewed,
        again=s.again,
        hard=s.hard,
        good=s.good,
        easy=s.easy,
        requeued=s.requeued,
        remaining=review_session.remaining,
    )


@router.post("/end/{session_id}")
async def session_end(
    session_id: str,
    owner_id: str = Depends(get_owner_id),
) -> dict:
    """End a session and clean up."""
    _get_owned_session(session_id, owner_id)
    review_session = _active_sessions.pop(session_id)

    s = review_session.stats
    return {
        "status": "ended",
        "cards_reviewed": s.cards_reviewed,
        "again": s.again,
        "remaining": review_session.remaining,
    }
