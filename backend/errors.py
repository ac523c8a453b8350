"""Typed failures raised by the core and services.

The API layer maps each class to an HTTP status; nothing here formats
user-facing text beyond a short message.
"""


class TreeDeckError(Exception):
    """Base class for all expected, typed failures."""


class NotFound(TreeDeckError):
    """A deck, item or card is absent or not owned by the caller."""


class Forbidden(TreeDeckError):
    """The resource exists but the caller may not see it (e.g. a private deck)."""


class InvalidInput(TreeDeckError):
    """A required field is missing or a value is out of range."""


class CyclicMove(TreeDeckError):
    """Re-parenting would make an item its own ancestor."""

    def __init__(self, item_id: int, new_parent_id: int) -> None:
        super().__init__(f"Cannot move item {item_id} under its own descendant {new_parent_id}")
        self.item_id = item_id
        self.new_parent_id = new_parent_id


class NoChildren(TreeDeckError):
    """Tree-card generation was requested on a leaf item."""

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Item {item_id} has no children")
        self.item_id = item_id


class AlreadyExists(TreeDeckError):
    """A generated card already exists for the item and overwrite was not requested."""

    def __init__(self, item_id: int, existing_card_id: int) -> None:
        super().__init__(f"Card already exists for item {item_id}")
        self.item_id = item_id
        self.existing_card_id = existing_card_id


class IdSpaceExhausted(TreeDeckError):
    """No free public id was found within the allowed number of attempts."""
