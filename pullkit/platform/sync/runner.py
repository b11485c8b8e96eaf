"""Full sync runner.

Drives an adapter from the first page to the last, feeding each returned cursor back
into the next request. A page is retried only while its cursor has not been handed to
the caller yet, so no page is skipped or emitted twice.
"""

from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from tenacity import AsyncRetrying, stop_after_attempt

from pullkit.core.config import settings
from pullkit.core.exceptions import UpstreamStatusError
from pullkit.core.logging import ContextualLogger, logger
from pullkit.platform.adapter import Adapter
from pullkit.platform.sync.retry_helpers import (
    log_retry_attempt,
    retry_if_page_failed,
    wait_rate_limit_with_backoff,
)
from pullkit.schemas.page import PageRequest, PageResponse


class FullSyncRunner:
    """Runs one full sync of an entity through an adapter.

    Usage:
        runner = FullSyncRunner(Adapter(PagerDutyDatasource()))
        async for page in runner.pages(request):
            store(page.objects)
    """

    def __init__(
        self,
        adapter: Adapter,
        max_attempts: Optional[int] = None,
        wait: Callable[..., float] = wait_rate_limit_with_backoff,
        log: Optional[ContextualLogger] = None,
    ):
        """Initialize the runner.

        Args:
            adapter: Adapter serving the page requests.
            max_attempts: Attempts per page. Defaults to SYNC_MAX_ATTEMPTS.
            wait: tenacity wait strategy between attempts.
            log: Logger, defaults to the pullkit logger.
        """
        self.adapter = adapter
        self.max_attempts = max_attempts or settings.SYNC_MAX_ATTEMPTS
        self._wait = wait
        self._logger = log or logger.with_context(datasource=adapter.datasource.short_name)

    async def pages(self, request: PageRequest) -> AsyncIterator[PageResponse]:
        """Yield every page of a full sync, starting at ``request.cursor``.

        Raises:
            UpstreamStatusError: When the vendor answers with a status that is not
                retried, or keeps failing until attempts run out.
            AdapterError: When the request is invalid, or a local failure persists.
        """
        current = request
        page_number = 0
        while True:
            page = await self._get_page(current)
            page_number += 1
            yield page

            if not page.next_cursor:
                self._logger.info(
                    f"Full sync of {request.entity_id} completed after {page_number} pages"
                )
                return
            current = current.model_copy(update={"cursor": page.next_cursor})

    async def collect(self, request: PageRequest) -> List[Dict[str, Any]]:
        """Run a full sync and return all objects in order."""
        objects: List[Dict[str, Any]] = []
        async for page in self.pages(request):
            objects.extend(page.objects)
        return objects

    async def _get_page(self, request: PageRequest) -> PageResponse:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_page_failed,
            wait=self._wait,
            before_sleep=log_retry_attempt(
                self._logger, self.max_attempts, self.adapter.datasource.source_name
            ),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                page = await self.adapter.get_page(request)
                if not page.success:
                    raise UpstreamStatusError(page.status_code, page.retry_after_header)
        return page
