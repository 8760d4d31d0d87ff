"""Cursor pagination shared by every list endpoint."""

import base64
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


class Page(BaseModel, Generic[T]):
    """One page of results.

    ``next_cursor`` is opaque to clients; pass it back unchanged to continue.
    """

    items: list[T]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for the next page. None on the last page.",
    )
    has_more: bool = Field(default=False, description="Whether more items follow this page.")


def encode_cursor(value: str) -> str:
    return base64.urlsafe_b64encode(value.encode()).decode()


def decode_cursor(cursor: str) -> str:
    """Decode a cursor produced by ``encode_cursor``.

    Raises:
        ValueError: If the cursor is not valid base64 text.
    """
    try:
        return base64.urlsafe_b64decode(cursor.encode()).decode()
    except Exception as e:
        raise ValueError("Invalid cursor") from e
