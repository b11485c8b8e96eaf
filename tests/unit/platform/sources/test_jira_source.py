"""Unit tests for the Jira datasource, served by a fake Jira over httpx.MockTransport."""

import base64
import json
from typing import Any, Dict, Optional

import httpx
import pytest

from pullkit.core.exceptions import AdapterError, ErrorCode
from pullkit.platform.configs.config import JiraConfig
from pullkit.platform.pagination.cursor import CompositeCursor
from pullkit.platform.sources.jira import JiraDatasource
from pullkit.schemas.datasource import DatasourceRequest

StrCursor = CompositeCursor[str]

BASE_URL = "https://example.atlassian.net"


def _request(
    entity: str,
    page_size: int = 2,
    cursor: Optional[StrCursor] = None,
    config: Optional[Dict[str, Any]] = None,
    unique_id_attribute: str = "id",
) -> DatasourceRequest[str]:
    return DatasourceRequest(
        entity_external_id=entity,
        page_size=page_size,
        base_url=BASE_URL,
        config=JiraConfig.model_validate(config or {}),
        unique_id_attribute=unique_id_attribute,
        cursor=cursor,
        basic_auth=("admin@example.com", "api-token"),
        request_timeout_seconds=30,
    )


def _page(values, params) -> Dict[str, Any]:
    start = int(params["startAt"])
    size = int(params["maxResults"])
    return {"values": values[start : start + size], "isLast": start + size >= len(values)}


@pytest.mark.asyncio
async def test_users_first_page(mock_http):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"accountId": "u1"}, {"accountId": "u2"}])

    datasource = JiraDatasource(http_client_factory=mock_http(handler))
    response = await datasource.get_page(_request("User", unique_id_attribute="accountId"))

    assert response.status_code == 200
    assert [user["accountId"] for user in response.objects] == ["u1", "u2"]
    assert response.next_cursor == StrCursor(cursor="2")

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/api/3/users/search"
    assert request.url.params["startAt"] == "0"
    assert request.url.params["maxResults"] == "2"
    credentials = base64.b64encode(b"admin@example.com:api-token").decode()
    assert request.headers["Authorization"] == f"Basic {credentials}"


@pytest.mark.asyncio
async def test_users_short_page_is_last(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["startAt"] == "4"
        return httpx.Response(200, json=[{"accountId": "u5"}])

    datasource = JiraDatasource(http_client_factory=mock_http(handler))
    response = await datasource.get_page(_request("User", cursor=StrCursor(cursor="4")))

    assert len(response.objects) == 1
    assert response.next_cursor is None


@pytest.mark.asyncio
async def test_group_members_walk_every_group(mock_http):
    groups = [{"groupId": "G1", "name": "admins"}, {"groupId": "G2", "name": "devs"}]
    members = {
        "G1": [{"accountId": "u1"}, {"accountId": "u2"}, {"accountId": "u3"}],
        "G2": [{"accountId": "u4"}],
    }

    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if request.url.path == "/rest/api/3/group/bulk":
            return httpx.Response(200, json=_page(groups, params))
        if request.url.path == "/rest/api/3/group/member":
            return httpx.Response(200, json=_page(members[params["groupId"]], params))
        return httpx.Response(404)

    datasource = JiraDatasource(http_client_factory=mock_http(handler))

    pages = []
    cursor = None
    for _ in range(10):
        response = await datasource.get_page(_request("GroupMember", cursor=cursor))
        assert response.status_code == 200
        pages.append(response)
        cursor = response.next_cursor
        if cursor is None:
            break

    assert cursor is None
    assert len(pages) == 3
    assert [member["id"] for page in pages for member in page.objects] == [
        "G1-u1",
        "G1-u2",
        "G1-u3",
        "G2-u4",
    ]
    assert pages[0].objects[0]["groupId"] == "G1"
    assert pages[0].next_cursor == StrCursor(
        cursor="2", collection_id="G1", collection_cursor="1"
    )


@pytest.mark.asyncio
async def test_flat_entity_rejects_collection_cursor(mock_http):
    datasource = JiraDatasource(http_client_factory=mock_http(lambda request: httpx.Response(500)))

    with pytest.raises(AdapterError) as exc_info:
        await datasource.get_page(_request("Group", cursor=StrCursor(collection_id="G1")))

    assert exc_info.value.code == ErrorCode.INVALID_PAGE_REQUEST_CONFIG


@pytest.mark.asyncio
async def test_issues_with_jql_filter_and_custom_fields(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/rest/api/3/search"
        assert request.url.params["jql"] == "project = SGNL"
        assert request.url.params["startAt"] == "0"
        return httpx.Response(
            200,
            json={
                "issues": [
                    {
                        "id": "10001",
                        "fields": {
                            "summary": "Rotate keys",
                            "customfield_10069": [{"value": "red"}, {"value": "blue"}],
                        },
                    }
                ]
            },
        )

    datasource = JiraDatasource(http_client_factory=mock_http(handler))
    response = await datasource.get_page(
        _request("Issue", config={"issuesJqlFilter": "project = SGNL"})
    )

    assert response.objects[0]["fields"]["customfield_10069"] == ["red", "blue"]
    assert response.objects[0]["fields"]["summary"] == "Rotate keys"
    assert response.next_cursor is None


@pytest.mark.asyncio
async def test_enhanced_issue_search_follows_page_tokens(mock_http):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        assert request.url.path == "/rest/api/3/search/jql"
        assert request.url.params["fields"] == "*navigable"
        if "nextPageToken" not in request.url.params:
            return httpx.Response(
                200,
                json={
                    "issues": [{"id": "1"}, {"id": "2"}],
                    "nextPageToken": "token-2",
                    "isLast": False,
                },
            )
        assert request.url.params["nextPageToken"] == "token-2"
        return httpx.Response(200, json={"issues": [{"id": "3"}], "isLast": True})

    datasource = JiraDatasource(http_client_factory=mock_http(handler))
    config = {"enhancedIssueSearch": True, "issuesJqlFilter": "project = SGNL"}

    first = await datasource.get_page(_request("Issue", config=config))
    assert first.next_cursor == StrCursor(cursor="token-2")

    second = await datasource.get_page(_request("Issue", config=config, cursor=first.next_cursor))
    assert [issue["id"] for issue in second.objects] == ["3"]
    assert second.next_cursor is None

    assert seen[0].url.params["jql"] == "project = SGNL"
    assert seen[0].url.params["maxResults"] == "2"


@pytest.mark.asyncio
async def test_objects_are_queried_per_workspace(mock_http):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/rest/servicedeskapi/assets/workspace":
            return httpx.Response(
                200, json={"values": [{"workspaceId": "ws-1"}], "isLastPage": True}
            )
        if request.url.path == "/jsm/assets/workspace/ws-1/v1/object/aql":
            return httpx.Response(
                200, json={"values": [{"globalId": "ws-1:1"}], "isLast": True}
            )
        return httpx.Response(404)

    datasource = JiraDatasource(http_client_factory=mock_http(handler))
    response = await datasource.get_page(
        _request("Object", config={"objectsQlQuery": "objectType = Host"})
    )

    assert response.objects == [{"globalId": "ws-1:1"}]
    assert response.next_cursor is None

    object_request = seen[1]
    assert object_request.method == "POST"
    assert object_request.url.host == "api.atlassian.com"
    assert object_request.url.params["includeAttributes"] == "true"
    assert json.loads(object_request.content) == {"qlQuery": "objectType = Host"}


@pytest.mark.asyncio
async def test_error_status_is_passed_through(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"Retry-After": "30"}, json={"message": "slow down"})

    datasource = JiraDatasource(http_client_factory=mock_http(handler))
    response = await datasource.get_page(_request("User"))

    assert response.status_code == 429
    assert response.retry_after_header == "30"
    assert response.objects == []
    assert response.next_cursor is None


@pytest.mark.asyncio
async def test_timeout_is_retryable_adapter_error(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    datasource = JiraDatasource(http_client_factory=mock_http(handler))

    with pytest.raises(AdapterError) as exc_info:
        await datasource.get_page(_request("User"))

    assert exc_info.value.code == ErrorCode.INTERNAL
    assert exc_info.value.retryable
    assert exc_info.value.message.startswith("Failed to execute Jira request:")
    assert "configured timeout of 30 seconds" in exc_info.value.message


@pytest.mark.asyncio
async def test_malformed_body(mock_http):
    datasource = JiraDatasource(
        http_client_factory=mock_http(lambda request: httpx.Response(200, content=b"<html>"))
    )

    with pytest.raises(AdapterError) as exc_info:
        await datasource.get_page(_request("User"))

    assert exc_info.value.code == ErrorCode.INTERNAL
    assert exc_info.value.message.startswith("Failed to unmarshal Jira User response:")


@pytest.mark.asyncio
async def test_unknown_entity(mock_http):
    datasource = JiraDatasource(http_client_factory=mock_http(lambda request: httpx.Response(200)))

    with pytest.raises(AdapterError) as exc_info:
        await datasource.get_page(_request("Project"))

    assert exc_info.value.code == ErrorCode.INVALID_ENTITY_CONFIG
    assert exc_info.value.message == "Provided entity external ID is invalid: Project."
