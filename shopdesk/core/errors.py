class ShopDeskError(Exception):
    """Base class for domain errors raised by the storage layer."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(ShopDeskError):
    """A referenced entity does not exist."""


class InvalidArgument(ShopDeskError):
    """Input was malformed or semantically invalid; never retried."""


class InsufficientStock(InvalidArgument):
    """A sale line would drive a product's stock below zero."""


class ReferentialConflict(ShopDeskError):
    """An entity cannot be removed while other rows still reference it."""


class StorageError(ShopDeskError):
    """The persistence boundary failed; the operation was rolled back."""


__all__ = [
    "InsufficientStock",
    "InvalidArgument",
    "NotFound",
    "ReferentialConflict",
    "ShopDeskError",
    "StorageError",
]
