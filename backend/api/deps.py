"""Shared dependencies and response builders for the routers."""

from fastapi import Header, HTTPException

from backend.api.schemas import DeckTreeResponse, TreeNodeResponse
from backend.models.deck import Deck
from backend.tree.index import TreeNode


async def get_owner_id(x_owner_id: str | None = Header(default=None)) -> str:
    """The caller identity, already authenticated upstream."""
    if not x_owner_id:
        raise HTTPException(status_code=401, detail="Missing X-Owner-Id header")
    return x_owner_id


def tree_response(nodes: list[TreeNode]) -> list[TreeNodeResponse]:
    return [TreeNodeResponse.model_validate(node.to_dict()) for node in nodes]


def deck_tree_response(deck: Deck, nodes: list[TreeNode]) -> DeckTreeResponse:
    return DeckTreeResponse(
        id=deck.id,
        title=deck.title,
        is_public=deck.is_public,
        public_id=deck.public_id,
        created_at=deck.created_at,
        items=tree_response(nodes),
    )
