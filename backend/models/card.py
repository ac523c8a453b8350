"""Flashcard model with SM-2 scheduling state."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import utcnow
from backend.models.base import Base, TimestampMixin
from backend.srs.sm2 import DEFAULT_EASE_FACTOR


class Card(Base, TimestampMixin):
    """A front/back card attached to an item, carrying its own review schedule."""

    __tablename__ = "cards"
    __table_args__ = (Index("ix_cards_deck_due", "deck_id", "due_date"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    deck_id: Mapped[int] = mapped_column(ForeignKey("decks.id"), nullable=False)
    front: Mapped[str] = mapped_column(Text, nullable=False)
    back: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # [{"kind": "image"|"audio"|"video", "locator": ..., "display_name": ...}]
    front_media: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    back_media: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    is_tree_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    interval: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # days
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=DEFAULT_EASE_FACTOR)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    deck: Mapped["Deck"] = relationship(back_populates="cards")  # type: ignore[name-defined] # noqa: F821
