"""Pagination of entities nested in a paginated parent collection.

A member entity (e.g. the members of a group) can only be listed one parent at a time,
while the caller sees a single flat cursor. The cursor carries three positions:

* ``cursor``: offset within the members of the current parent.
* ``collection_id``: the current parent.
* ``collection_cursor``: where to fetch the parent after the current one.

Each page request either continues the current parent, or (when its members are
exhausted) fetches exactly one new parent first. Parents without members still cost
one page request each, so the caller sees an empty page for them.
"""

from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Generic, Optional, Type

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.core.logging import ContextualLogger, logger
from pullkit.platform.entities._base import EntitySpec
from pullkit.platform.pagination.cursor import CompositeCursor, T
from pullkit.schemas.datasource import DatasourceRequest, DatasourceResponse

ParentFetcher = Callable[[DatasourceRequest[T]], Awaitable[DatasourceResponse[T]]]


@dataclass(frozen=True)
class CollectionStep(Generic[T]):
    """Outcome of advancing the parent collection.

    Exactly one of the following holds:

    * ``done`` is True: the parent collection is exhausted, the sync is over.
    * ``response`` is set: the parent fetch failed with a vendor status, return it as is.
    * ``cursor`` is set: fetch members at ``cursor.cursor`` of parent ``cursor.collection_id``.
    """

    cursor: Optional[CompositeCursor[T]] = None
    done: bool = False
    response: Optional[DatasourceResponse[T]] = None


class CollectionAdvancer(Generic[T]):
    """Walks a parent collection one parent per page request.

    Args:
        fetch_parent: Performs a flat page request for the parent entity.
        parent: Spec of the parent entity. Its unique ID attribute becomes the
            ``collection_id``.
        cursor_type: ``int`` or ``str``, the cursor type of the datasource.
        start: First cursor value of both the parent and member sequences, e.g. ``0``
            or ``"0"``.
        vendor: Datasource name, used in error messages.
    """

    def __init__(
        self,
        fetch_parent: ParentFetcher,
        parent: EntitySpec,
        cursor_type: Type[T],
        start: T,
        vendor: str,
        log: Optional[ContextualLogger] = None,
    ):
        self._fetch_parent = fetch_parent
        self._parent = parent
        self._cursor_model = CompositeCursor[cursor_type]
        self._start = start
        self._vendor = vendor
        self._logger = log or logger

    async def advance(self, request: DatasourceRequest[T]) -> CollectionStep[T]:
        """Resolve the parent whose members the request should fetch.

        If the request cursor already points inside a parent's members, it is returned
        unchanged and no call is made. Otherwise a single parent is fetched at
        ``collection_cursor`` (or the start of the collection).

        Raises:
            AdapterError: DATASOURCE_FAILED if the parent has no usable unique ID,
                INTERNAL if the vendor returned more than one parent.
        """
        cursor = request.cursor
        if cursor is not None and cursor.cursor is not None:
            return CollectionStep(cursor=cursor)

        parent_position = self._start
        if cursor is not None and cursor.collection_cursor is not None:
            parent_position = cursor.collection_cursor

        parent_request = replace(
            request,
            entity_external_id=self._parent.external_id,
            unique_id_attribute=self._parent.unique_id_attribute,
            page_size=1,
            cursor=self._cursor_model(cursor=parent_position),
        )
        parent_response = await self._fetch_parent(parent_request)

        if parent_response.status_code != 200:
            return CollectionStep(response=parent_response)

        if not parent_response.objects:
            self._logger.debug(
                f"{self._vendor} {self._parent.external_id} collection exhausted, ending sync"
            )
            return CollectionStep(done=True)

        if len(parent_response.objects) > 1:
            raise AdapterError(
                "Too many collection objects returned in response; "
                f"expected 1, got {len(parent_response.objects)}.",
                ErrorCode.INTERNAL,
            )

        collection_id = self._collection_id(parent_response.objects[0])
        next_parent = None
        if parent_response.next_cursor is not None:
            next_parent = parent_response.next_cursor.cursor

        return CollectionStep(
            cursor=self._cursor_model(
                cursor=self._start,
                collection_id=collection_id,
                collection_cursor=next_parent,
            )
        )

    def compose(
        self, step_cursor: CompositeCursor[T], child_next: Optional[T]
    ) -> Optional[CompositeCursor[T]]:
        """Build the outgoing cursor after the member page of ``step_cursor``.

        Returns None once both the members of the current parent and the parent
        collection are exhausted.
        """
        if child_next is None and step_cursor.collection_cursor is None:
            return None
        return self._cursor_model(
            cursor=child_next,
            collection_id=step_cursor.collection_id,
            collection_cursor=step_cursor.collection_cursor,
        )

    def _collection_id(self, parent: dict) -> str:
        attribute = self._parent.unique_id_attribute
        if attribute not in parent or parent[attribute] is None:
            raise AdapterError(
                f"{self._vendor} {self._parent.external_id} object contains no {attribute} field.",
                ErrorCode.DATASOURCE_FAILED,
            )
        value = parent[attribute]
        if not isinstance(value, str):
            raise AdapterError(
                f"{self._vendor} {self._parent.external_id} object has an invalid {attribute} "
                f"field: expected a string, got {type(value).__name__}.",
                ErrorCode.DATASOURCE_FAILED,
            )
        return value
