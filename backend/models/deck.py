"""Deck model: the owner of one item forest."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class Deck(Base, TimestampMixin):
    __tablename__ = "decks"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # 6-char share token, only set while the deck is public
    public_id: Mapped[str | None] = mapped_column(String(6), unique=True, nullable=True)

    items: Mapped[list["Item"]] = relationship(back_populates="deck", passive_deletes=True)  # type: ignore[name-defined] # noqa: F821
    cards: Mapped[list["Card"]] = relationship(back_populates="deck", passive_deletes=True)  # type: ignore[name-defined] # noqa: F821
