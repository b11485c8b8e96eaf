"""Composite cursor and its opaque wire format.

A composite cursor is the single continuation token threaded through every page
request. On the wire it is ``base64(JSON)`` with absent fields omitted, e.g.
``{"cursor":1,"collectionId":"1","collectionCursor":1}``. An empty string is the
first page.
"""

import base64
import binascii
from typing import Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pullkit.core.exceptions import AdapterError, ErrorCode

T = TypeVar("T", int, str)


class CompositeCursor(BaseModel, Generic[T]):
    """Page position within an entity, and within its parent collection for members.

    ``T`` is the vendor's native page token type: ``int`` for numeric offsets
    (``startAt``, ``offset``) or ``str`` for opaque tokens and URLs.

    ``collection_id`` and ``collection_cursor`` are only set for entities that are
    members of a parent collection (e.g. group members), or for the entitlement batch
    filler, which reuses them to carry its parent-batch position.
    """

    model_config = ConfigDict(frozen=True, strict=True, populate_by_name=True)

    cursor: Optional[T] = Field(
        default=None,
        description="Identifies the first object of the page to return.",
    )
    collection_id: Optional[str] = Field(
        default=None,
        alias="collectionId",
        description="ID of the parent collection whose members are being synced.",
    )
    collection_cursor: Optional[T] = Field(
        default=None,
        alias="collectionCursor",
        description="Identifies the next parent collection object to request.",
    )

    def is_empty(self) -> bool:
        """Whether no field is set."""
        return self.cursor is None and self.collection_id is None and self.collection_cursor is None

    def offset(self) -> int:
        """Return ``cursor`` as a numeric offset, 0 if unset.

        String cursors must hold a base-10 integer.
        """
        return parse_offset_value(self)


def parse_offset_value(cursor: Optional[CompositeCursor]) -> int:
    """Parse the numeric offset held by a cursor; 0 for a missing cursor."""
    if cursor is None or cursor.cursor is None:
        return 0

    value = cursor.cursor
    if isinstance(value, int):
        return value

    try:
        return int(value, 10)
    except ValueError:
        raise AdapterError(
            f"Unable to parse cursor: want valid number, got {{{value}}}.",
            ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
        ) from None


def encode_cursor(cursor: Optional[CompositeCursor]) -> str:
    """Serialise a cursor into its opaque string form. ``None`` encodes to ``""``."""
    if cursor is None:
        return ""

    payload = cursor.model_dump_json(by_alias=True, exclude_none=True)
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_cursor(value: str, cursor_type: Type[T]) -> Optional[CompositeCursor[T]]:
    """Parse an opaque cursor string. ``""`` decodes to ``None`` (first page).

    Raises:
        AdapterError: INVALID_PAGE_REQUEST_CONFIG if the value is not base64 or
            does not hold a cursor of the expected type.
    """
    if value == "":
        return None

    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AdapterError(
            f"Failed to decode base64 cursor: {e}.",
            ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
        ) from e

    try:
        return CompositeCursor[cursor_type].model_validate_json(raw)
    except ValidationError as e:
        raise AdapterError(
            f"Failed to unmarshal JSON cursor: {_first_error(e)}.",
            ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
        ) from e


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"{location}: {first['msg']}"
    return first["msg"]
