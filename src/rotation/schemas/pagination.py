"""Cursor-based pagination schemas."""

import base64
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Page of items plus an opaque cursor for the next page.

    The cursor encodes the timestamp of the last item returned; clients pass
    it back unchanged.
    """

    items: list[T]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for fetching the next page. None if no more pages.",
    )
    has_more: bool = Field(default=False, description="Whether more items follow this page.")


def encode_cursor(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode()).decode()


def decode_cursor(cursor: str) -> str:
    """Decode a cursor produced by ``encode_cursor``.

    Raises:
        ValueError: If cursor is not valid base64 text.
    """
    try:
        return base64.urlsafe_b64decode(cursor.encode()).decode()
    except (ValueError, UnicodeDecodeError) as e:
        raise ValueError("Invalid cursor") from e
