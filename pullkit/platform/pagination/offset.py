"""Next-page decisions for offset-paginated endpoints."""

from typing import Optional


def next_cursor_from_page_size(
    objects_in_page: int, page_size: int, current_cursor: int
) -> Optional[int]:
    """Compute the offset of the next page, or None if this was the last page.

    A page shorter than ``page_size`` is the last one. A full page MAY be the last
    one, which can't be told from the count alone, so an offset is returned and the
    following request comes back empty. Callers must treat that extra empty page as
    the normal end of the sequence.
    """
    if objects_in_page < page_size:
        return None
    return current_cursor + objects_in_page
