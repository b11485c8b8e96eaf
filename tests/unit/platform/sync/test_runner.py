"""Unit tests for the full sync runner."""

from typing import List
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from tenacity import wait_none

from pullkit.core.exceptions import AdapterError, ErrorCode, UpstreamStatusError
from pullkit.platform.adapter import Adapter
from pullkit.platform.sources.pagerduty import PagerDutyDatasource
from pullkit.platform.sync.runner import FullSyncRunner
from pullkit.schemas.page import PageRequest, PageRequestAuth, PageResponse


def _request() -> PageRequest:
    return PageRequest(
        entity_id="users",
        page_size=2,
        address="api.pagerduty.com",
        auth=PageRequestAuth(http_authorization="Token token=secret"),
        attributes=["id"],
    )


def _adapter(*pages) -> MagicMock:
    adapter = MagicMock()
    adapter.datasource.short_name = "pagerduty"
    adapter.datasource.source_name = "PagerDuty"
    adapter.get_page = AsyncMock(side_effect=list(pages))
    return adapter


def _cursors(adapter: MagicMock) -> List[str]:
    return [call.args[0].cursor for call in adapter.get_page.call_args_list]


@pytest.mark.asyncio
async def test_cursors_are_fed_back_until_empty():
    adapter = _adapter(
        PageResponse(objects=[{"id": "1"}], next_cursor="c1"),
        PageResponse(objects=[{"id": "2"}], next_cursor="c2"),
        PageResponse(objects=[]),
    )
    runner = FullSyncRunner(adapter, wait=wait_none())

    objects = await runner.collect(_request())

    assert objects == [{"id": "1"}, {"id": "2"}]
    assert _cursors(adapter) == ["", "c1", "c2"]


@pytest.mark.asyncio
async def test_sync_resumes_from_request_cursor():
    adapter = _adapter(PageResponse(objects=[{"id": "9"}]))
    runner = FullSyncRunner(adapter, wait=wait_none())

    pages = [page async for page in runner.pages(_request().model_copy(update={"cursor": "c8"}))]

    assert len(pages) == 1
    assert _cursors(adapter) == ["c8"]


@pytest.mark.asyncio
async def test_rate_limited_page_is_retried_with_same_cursor():
    adapter = _adapter(
        PageResponse(objects=[{"id": "1"}], next_cursor="c1"),
        PageResponse(status_code=429, retry_after_header="1"),
        PageResponse(objects=[{"id": "2"}]),
    )
    runner = FullSyncRunner(adapter, wait=wait_none())

    objects = await runner.collect(_request())

    assert objects == [{"id": "1"}, {"id": "2"}]
    assert _cursors(adapter) == ["", "c1", "c1"]


@pytest.mark.asyncio
async def test_retryable_adapter_error_is_retried():
    adapter = _adapter(
        AdapterError("Failed to execute PagerDuty request: timeout.", retryable=True),
        PageResponse(objects=[{"id": "1"}]),
    )
    runner = FullSyncRunner(adapter, wait=wait_none())

    assert await runner.collect(_request()) == [{"id": "1"}]
    assert adapter.get_page.await_count == 2


@pytest.mark.asyncio
async def test_client_error_status_is_not_retried():
    adapter = _adapter(PageResponse(status_code=404))
    runner = FullSyncRunner(adapter, wait=wait_none())

    with pytest.raises(UpstreamStatusError) as exc_info:
        await runner.collect(_request())

    assert exc_info.value.status_code == 404
    assert adapter.get_page.await_count == 1


@pytest.mark.asyncio
async def test_invalid_request_is_not_retried():
    adapter = _adapter(
        AdapterError("PagerDuty Ordered property must be false.", ErrorCode.INVALID_ENTITY_CONFIG)
    )
    runner = FullSyncRunner(adapter, wait=wait_none())

    with pytest.raises(AdapterError):
        await runner.collect(_request())

    assert adapter.get_page.await_count == 1


@pytest.mark.asyncio
async def test_attempts_are_bounded():
    adapter = _adapter(*[PageResponse(status_code=503)] * 3)
    runner = FullSyncRunner(adapter, max_attempts=3, wait=wait_none())

    with pytest.raises(UpstreamStatusError) as exc_info:
        await runner.collect(_request())

    assert exc_info.value.status_code == 503
    assert adapter.get_page.await_count == 3


@pytest.mark.asyncio
async def test_full_sync_through_pagerduty_adapter(mock_http):
    users = [{"id": f"P{i}"} for i in range(4)]
    offsets = []

    def handler(request: httpx.Request) -> httpx.Response:
        offset = int(request.url.params["offset"])
        limit = int(request.url.params["limit"])
        offsets.append(offset)
        # No "more" flag: the page count decides, and a full last page costs one extra call.
        return httpx.Response(200, json={"users": users[offset : offset + limit]})

    adapter = Adapter(PagerDutyDatasource(http_client_factory=mock_http(handler)))
    runner = FullSyncRunner(adapter, wait=wait_none())

    pages = [page async for page in runner.pages(_request())]

    assert [len(page.objects) for page in pages] == [2, 2, 0]
    assert [user["id"] for page in pages for user in page.objects] == ["P0", "P1", "P2", "P3"]
    assert offsets == [0, 2, 4]
    assert pages[-1].next_cursor == ""
