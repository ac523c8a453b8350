"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class _ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Decks ---


class DeckCreate(BaseModel):
    title: str


class DeckUpdate(BaseModel):
    title: str | None = None
    is_public: bool | None = None


class DeckResponse(_ORMModel):
    id: int
    title: str
    is_public: bool
    public_id: str | None
    created_at: datetime


class TreeNodeResponse(BaseModel):
    """An item with its nested children."""

    id: int
    title: str
    parent_id: int | None
    order: int
    level: int
    children: list[TreeNodeResponse] = Field(default_factory=list)


class DeckTreeResponse(DeckResponse):
    items: list[TreeNodeResponse]


class PublicDeckResponse(BaseModel):
    id: int
    title: str
    public_id: str
    created_at: datetime
    items: list[TreeNodeResponse]


# --- Items ---


class ItemCreate(BaseModel):
    title: str
    parent_id: int | None = None
    order: int = 0


class ItemUpdate(BaseModel):
    """Partial update; sending ``parent_id`` (even null) moves the item."""

    title: str | None = None
    parent_id: int | None = None
    order: int | None = None


class ItemResponse(_ORMModel):
    id: int
    deck_id: int
    title: str
    parent_id: int | None
    order: int
    level: int


class ItemWithChildrenResponse(ItemResponse):
    children: list[ItemResponse]


class PathEntryResponse(_ORMModel):
    id: int
    title: str
    level: int


class DeleteItemResponse(BaseModel):
    deleted_item_ids: list[int]
    cards_deleted: int


# --- Cards ---


class MediaRef(BaseModel):
    kind: Literal["image", "audio", "video"]
    locator: str
    display_name: str = ""


class CardCreate(BaseModel):
    front: str
    back: str
    tags: list[str] = Field(default_factory=list)
    front_media: list[MediaRef] = Field(default_factory=list)
    back_media: list[MediaRef] = Field(default_factory=list)
    is_tree_generated: bool = False


class CardUpdate(BaseModel):
    front: str | None = None
    back: str | None = None
    tags: list[str] | None = None
    front_media: list[MediaRef] | None = None
    back_media: list[MediaRef] | None = None


class CardResponse(_ORMModel):
    id: int
    item_id: int
    deck_id: int
    front: str
    back: str
    tags: list[str]
    front_media: list[MediaRef]
    back_media: list[MediaRef]
    is_tree_generated: bool
    interval: float
    ease_factor: float
    repetitions: int
    due_date: datetime


# --- Review ---


class AnswerRequest(BaseModel):
    """Quality of recall: 0=Again, 1=Hard, 2=Good, 3=Easy."""

    quality: int


class AnswerResponse(BaseModel):
    card: CardResponse
    next_due: datetime
    interval: float
    ease_factor: float
    repetitions: int


class ReviewCardResponse(CardResponse):
    item_path: list[PathEntryResponse]


class SubtreeItemResponse(ItemResponse):
    path: list[PathEntryResponse]


class SubtreeReviewResponse(BaseModel):
    item: SubtreeItemResponse
    cards: list[ReviewCardResponse]
    total_cards: int


# --- Tree cards ---


class TreeCardsRequest(BaseModel):
    item_id: int | None = None


class TreeCardCreated(BaseModel):
    item: str
    front: str
    back: str
    children_count: int


class TreeCardSkipped(BaseModel):
    item: str
    existing_card_id: int
    reason: str


class TreeCardsResponse(BaseModel):
    cards_created: list[TreeCardCreated]
    cards_skipped: list[TreeCardSkipped]
    cards_failed: int
    total: int


class ItemCardRequest(BaseModel):
    overwrite: bool = False


class ItemCardResponse(BaseModel):
    updated: bool
    card: CardResponse
    item: str
    children: list[str]


# --- Import ---


class SkippedCardResponse(BaseModel):
    item_id: str | None
    item_title: str | None
    front: str
    reason: str


class ImportResponse(BaseModel):
    deck: DeckTreeResponse
    items_created: int
    cards_imported: int
    cards_failed: int
    cards_skipped: list[SkippedCardResponse]


# --- Session ---


class SessionStartRequest(BaseModel):
    deck_id: int | None = None
    item_id: int | None = None
    include_all: bool = False
    include_tree_cards: bool = True


class SessionStartResponse(BaseModel):
    """Response when starting a new review session."""

    session_id: str
    total_cards: int


class SessionCardResponse(BaseModel):
    card: CardResponse
    remaining: int


class SessionAnswerRequest(BaseModel):
    card_id: int
    quality: int


class SessionAnswerResponse(BaseModel):
    """Response after an answer: new schedule and where the card went in the queue."""

    card: CardResponse
    next_due: datetime
    interval: float
    requeued_at: int | None
    remaining: int
    session_complete: bool


class SessionStatsResponse(BaseModel):
    """Statistics for the current review session."""

    cards_reviewed: int
    again: int
    hard: int
    good: int
    easy: int
    requeued: int
    remaining: int
