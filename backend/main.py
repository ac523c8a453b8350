"""FastAPI application entry point and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.card_router import router as card_router
from backend.api.deck_router import router as deck_router
from backend.api.item_router import router as item_router
from backend.api.public_router import router as public_router
from backend.api.review_router import router as review_router
from backend.api.session_router import router as session_router
from backend.config import settings
from backend.database import engine, get_session
from backend.errors import (
    AlreadyExists,
    CyclicMove,
    Forbidden,
    IdSpaceExhausted,
    InvalidInput,
    NoChildren,
    NotFound,
    TreeDeckError,
)
from backend.models import Base

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[TreeDeckError], int] = {
    NotFound: 404,
    Forbidden: 403,
    InvalidInput: 400,
    CyclicMove: 400,
    NoChildren: 400,
    AlreadyExists: 409,
    IdSpaceExhausted: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialize database on startup and cleanup on shutdown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Hierarchical flashcard decks with SM-2 spaced repetition",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TreeDeckError)
async def treedeck_error_handler(request: Request, exc: TreeDeckError) -> JSONResponse:
    """Translate typed failures into status codes."""
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    body: dict = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, AlreadyExists):
        body["existing_card_id"] = exc.existing_card_id
    if status >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=status, content=body)


app.include_router(deck_router)
app.include_router(item_router)
app.include_router(card_router)
app.include_router(review_router)
app.include_router(session_router)
app.include_router(public_router)


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_session)) -> dict[str, str]:
    """Check database connectivity and return status."""
    await db.execute(text("SELECT 1"))
    return {"status": "ok"}
