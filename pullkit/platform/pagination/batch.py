"""Pages of per-parent children, filled from batches of parents.

Used for account entitlements: entitlements can only be listed per account, but a page
should hold up to ``page_size`` entitlements no matter how many accounts they span.

Each page request fetches one batch of parents (its own, independent batch size) and
walks it in order, fetching the children of each parent until the page is full. The
outgoing cursor carries:

* ``collection_cursor``: offset, in the parent collection, of the parent to visit next.
* ``collection_id``: the last parent visited.
* ``cursor``: offset within that parent's children when it still has children left.
"""

from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.core.logging import ContextualLogger, logger
from pullkit.platform.pagination.cursor import CompositeCursor
from pullkit.platform.pagination.offset import next_cursor_from_page_size
from pullkit.schemas.datasource import DatasourceRequest, DatasourceResponse

ParentBatchFetcher = Callable[[DatasourceRequest[int]], Awaitable[DatasourceResponse[int]]]
ChildFetcher = Callable[[DatasourceRequest[int], str], Awaitable[DatasourceResponse[int]]]

IntCursor = CompositeCursor[int]


class BatchParent(BaseModel):
    """The fields of a parent the filler relies on."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    has_entitlements: bool = Field(default=False, alias="hasEntitlements")


class BatchEntitlementFiller:
    """Fills one page of entitlements from a batch of accounts.

    Args:
        fetch_parents: Flat page request for the parent entity. Called with the parent
            batch size as page size and the batch offset as cursor.
        fetch_children: Page request for the children of one parent. Called with the
            output page size as page size and the child offset as cursor.
        parent_batch_size: Number of parents fetched per page request.
        vendor: Datasource name, used in logs and error messages.
    """

    def __init__(
        self,
        fetch_parents: ParentBatchFetcher,
        fetch_children: ChildFetcher,
        parent_batch_size: int,
        vendor: str,
        log: Optional[ContextualLogger] = None,
    ):
        self._fetch_parents = fetch_parents
        self._fetch_children = fetch_children
        self._parent_batch_size = parent_batch_size
        self._vendor = vendor
        self._logger = log or logger

    async def fill(self, request: DatasourceRequest[int]) -> DatasourceResponse[int]:
        """Return up to ``request.page_size`` child records and the cursor to resume at.

        Non-200 vendor responses are returned as they are, without any records. A page
        is answered with 204 when the batch held no children at all.
        """
        cursor = request.cursor
        batch_offset = 0
        if cursor is not None and cursor.collection_cursor is not None:
            batch_offset = cursor.collection_cursor
        resume_offset = cursor.offset() if cursor is not None else 0

        batch = await self._fetch_parents(
            replace(
                request,
                page_size=self._parent_batch_size,
                cursor=IntCursor(cursor=batch_offset),
            )
        )
        if batch.status_code != 200:
            return batch

        if not batch.objects:
            self._logger.debug(f"{self._vendor} parent batch at {batch_offset} is empty")
            return DatasourceResponse(status_code=204)

        next_batch_offset = batch.next_cursor.cursor if batch.next_cursor is not None else None

        records: List[Dict[str, Any]] = []
        next_cursor: Optional[IntCursor] = None
        filled = False
        position = batch_offset
        last_index = len(batch.objects) - 1

        for index, raw_parent in enumerate(batch.objects):
            parent = self._parse_parent(raw_parent)
            if not parent.has_entitlements:
                position += 1
                continue

            child_offset = resume_offset if index == 0 else 0
            children = await self._fetch_children(
                replace(request, cursor=IntCursor(cursor=child_offset)), parent.id
            )
            if children.status_code != 200:
                return children

            records.extend(self._child_record(parent.id, child) for child in children.objects)
            child_next = next_cursor_from_page_size(
                len(children.objects), request.page_size, child_offset
            )

            if len(records) > request.page_size:
                excess = len(records) - request.page_size
                records = records[: request.page_size]
                next_cursor = IntCursor(
                    cursor=child_offset + len(children.objects) - excess,
                    collection_id=parent.id,
                    collection_cursor=position,
                )
                filled = True
                break

            if len(records) == request.page_size:
                if child_next is not None:
                    resume_at = position
                elif index < last_index:
                    resume_at = position + 1
                else:
                    resume_at = next_batch_offset

                if child_next is not None or resume_at is not None:
                    next_cursor = IntCursor(
                        cursor=child_next, collection_id=parent.id, collection_cursor=resume_at
                    )
                filled = True
                break

            position += 1

        if not filled and next_batch_offset is not None:
            next_cursor = IntCursor(collection_cursor=next_batch_offset)

        self._logger.debug(
            f"{self._vendor} filled page with {len(records)} records from parents "
            f"{batch_offset}..{position}"
        )

        return DatasourceResponse(
            status_code=200 if records else 204,
            objects=records,
            next_cursor=next_cursor,
        )

    def _parse_parent(self, raw_parent: Any) -> BatchParent:
        try:
            return BatchParent.model_validate(raw_parent)
        except ValidationError as e:
            raise AdapterError(
                f"Failed to parse {self._vendor} account in response: {e.errors()[0]['msg']}.",
                ErrorCode.INTERNAL,
            ) from e

    def _child_record(self, parent_id: str, child: Dict[str, Any]) -> Dict[str, Any]:
        child_id = child.get("id")
        if not isinstance(child_id, str):
            raise AdapterError(
                f"Failed to convert {self._vendor} entitlement id to string for account "
                f"{parent_id}.",
                ErrorCode.INTERNAL,
            )
        return {
            "id": f"{parent_id}-{child_id}",
            "accountId": parent_id,
            "entitlementId": child_id,
        }
