"""Cursor shape validation."""

from typing import Optional

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.pagination.cursor import CompositeCursor


def validate_composite_cursor(
    cursor: Optional[CompositeCursor], entity_external_id: str, is_member_entity: bool
) -> None:
    """Check that the collection fields of a cursor fit the entity.

    1. A member entity must have ``collection_id`` set before its children are fetched.
    2. Any other entity must have neither ``collection_id`` nor ``collection_cursor``.

    A missing cursor is always valid (first page).

    Raises:
        AdapterError: INVALID_PAGE_REQUEST_CONFIG when a rule is broken.
    """
    if cursor is None:
        return

    if is_member_entity:
        if cursor.collection_id is None:
            raise AdapterError(
                f"Cursor does not have CollectionID set for entity {entity_external_id}.",
                ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
            )
        return

    if cursor.collection_id is not None or cursor.collection_cursor is not None:
        raise AdapterError(
            "Cursor must not contain CollectionID or CollectionCursor fields for entity "
            f"{entity_external_id}.",
            ErrorCode.INVALID_PAGE_REQUEST_CONFIG,
        )
