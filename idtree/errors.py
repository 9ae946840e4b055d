"""Error types raised by the store."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for failures the store reports to callers."""


class OutOfRangeError(StoreError, IndexError):
    def __init__(self, item_id: int, next_id: int) -> None:
        super().__init__(f"id {item_id} is outside the allocated range [0, {next_id})")
        self.item_id = item_id
        self.next_id = next_id


class NotFoundError(StoreError, LookupError):
    pass


class CorruptDataError(StoreError, ValueError):
    pass


class LayoutError(StoreError):
    """The directory tree does not follow the store's layout rules."""
