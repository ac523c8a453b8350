"""SQLAlchemy ORM models for the TreeDeck database."""

from backend.models.base import Base
from backend.models.card import Card
from backend.models.deck import Deck
from backend.models.item import Item

__all__ = ["Base", "Card", "Deck", "Item"]
