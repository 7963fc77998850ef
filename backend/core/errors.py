"""
Error taxonomy raised by the inventory services.

Routers never translate these by hand: main.py registers a single handler
that turns any InventoryError into a JSON body of the form
{"detail": <message>, "error": <class name>} with the class's status code.
"""
from fastapi import status


class InventoryError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def label(self) -> str:
        return type(self).__name__


class NotFound(InventoryError):
    """A referenced id (or QR code) does not resolve."""
    status_code = status.HTTP_404_NOT_FOUND


class InvalidParent(InventoryError):
    """parent_id supplied on create does not reference an existing location."""
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidConfig(InventoryError):
    """Malformed label or sync configuration."""
    status_code = status.HTTP_400_BAD_REQUEST


class EmptySelection(InventoryError):
    """Label generation requested with no items."""
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidQuantity(InventoryError):
    """A quantity change would drive stock negative or is otherwise not allowed."""
    status_code = status.HTTP_409_CONFLICT


class IntegrityError(InventoryError):
    """Unexpected structural violation in stored data, e.g. a parent cycle."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
