"""Tree node model. Items of one deck form a forest through ``parent_id``."""

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class Item(Base, TimestampMixin):
    __tablename__ = "items"
    __table_args__ = (Index("ix_items_deck_parent_order", "deck_id", "parent_id", "order"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    deck_id: Mapped[int] = mapped_column(ForeignKey("decks.id"), nullable=False)
    # No FK constraint: the tree is maintained by the mutator, and imports
    # write parents in a second pass.
    parent_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # root = 0
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False)

    deck: Mapped["Deck"] = relationship(back_populates="items")  # type: ignore[name-defined] # noqa: F821
